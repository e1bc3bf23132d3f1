from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from app.core.utils import get_utc_now
from app.core.database import Base
from app.core.enums import UserRole

class User(Base):
    """
    Cuenta de la plataforma: administradores, entrenadores y clientes.
    Se puede ubicar por email o por teléfono.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=True)
    hashed_password = Column(String, nullable=False)

    role_name = Column(String(20), nullable=False, default=UserRole.CLIENT.value)
    is_active = Column(Boolean, default=True, nullable=False)

    # Se incrementa en cada cambio de contraseña: invalida los JWT emitidos antes
    token_version = Column(Integer, default=0, nullable=False)
    password_changed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=get_utc_now)

    password_resets = relationship("PasswordReset", back_populates="user", cascade="all, delete-orphan")

    @property
    def role(self) -> UserRole:
        return UserRole(self.role_name)
