from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from app.core.database import Base
from app.core.utils import get_utc_now

class AuditoriaSeguridad(Base):
    """
    Tabla para registrar eventos de seguridad de las cuentas.
    Ejemplo: solicitud de código, verificación, bloqueo, cambio de contraseña.
    Nunca guarda códigos ni tokens.
    """
    __tablename__ = "auditoria_seguridad"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    accion = Column(String(100), nullable=False)  # 'OTP_SOLICITADO', 'PASSWORD_RESTABLECIDO', etc.
    descripcion = Column(Text, nullable=False)
    tabla_afectada = Column(String(50), nullable=True)
    registro_id = Column(Integer, nullable=True)  # ID de la solicitud de recuperación

    fecha_evento = Column(DateTime, nullable=False, default=get_utc_now)
    ip_origen = Column(String(45), nullable=True)

    def __repr__(self):
        return f"<AuditoriaSeguridad(accion={self.accion}, fecha={self.fecha_evento})>"
