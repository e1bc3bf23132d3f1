import sys
import os
from datetime import timedelta

sys.path.append(os.getcwd())

from app.core.database import SessionLocal
from app.models import user as _user, auditoria as _auditoria  # noqa: F401
from app.services.password_reset_service import PasswordResetService

def purge(days: int = 1):
    """Elimina solicitudes de recuperación consumidas o vencidas hace más de `days` días"""
    db = SessionLocal()
    try:
        deleted = PasswordResetService(db).purge_expired(older_than=timedelta(days=days))
        print(f"🧹 Solicitudes eliminadas: {deleted}")
    finally:
        db.close()

if __name__ == "__main__":
    purge(int(sys.argv[1]) if len(sys.argv) > 1 else 1)
