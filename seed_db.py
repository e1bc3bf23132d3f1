import sys
import os

# Add the current directory to sys.path to import app
sys.path.append(os.getcwd())

from app.core.database import SessionLocal, engine, Base
from app.core.enums import UserRole
from app.core.security import Security
from app.models import user as _user, password_reset as _password_reset, auditoria as _auditoria  # noqa: F401
from app.models.user import User
from app.schemas.user import UserCreate

DEMO_USERS = [
    UserCreate(name="Administrador", email="admin@fitnessplatform.com", password="Admin12345!", role=UserRole.ADMIN.value),
    UserCreate(name="Entrenador Demo", email="trainer@fitnessplatform.com", phone="+15550000001", password="Trainer12345!", role=UserRole.TRAINER.value),
    UserCreate(name="Cliente Demo", email="client@fitnessplatform.com", phone="+15550000002", password="Client12345!", role=UserRole.CLIENT.value),
]

def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        for data in DEMO_USERS:
            existing = db.query(User).filter(User.email == data.email).first()
            if existing:
                print(f"ℹ️ Usuario ya existe: {data.email}")
                continue

            db.add(User(
                name=data.name,
                email=data.email,
                phone=data.phone,
                hashed_password=Security.hash_password(data.password),
                role_name=UserRole(data.role).value,
                is_active=True
            ))
            db.commit()
            print(f"✅ Usuario creado: {data.email} ({data.role})")

        print("\n🚀 Inicialización completada con éxito!")

    except Exception as e:
        print(f"❌ Error durante la inicialización: {e}")
        db.rollback()
    finally:
        db.close()

if __name__ == "__main__":
    seed()
