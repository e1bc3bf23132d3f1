from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.enums import ResetChannel, ResetState

class PasswordReset(Base):
    """
    Un intento de recuperación de contraseña para un email o teléfono.

    `active_identifier` es igual a `identifier` mientras la solicitud está viva y
    pasa a NULL cuando se consume, se reemplaza o se bloquea. La restricción UNIQUE
    garantiza una sola solicitud activa por identificador aunque lleguen pedidos
    concurrentes.
    """
    __tablename__ = "password_resets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    identifier = Column(String(255), nullable=False, index=True)
    channel = Column(String(10), nullable=False, default=ResetChannel.EMAIL.value)
    active_identifier = Column(String(255), unique=True, nullable=True)

    code_hash = Column(String(64), nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    verified_at = Column(DateTime, nullable=True)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)

    is_used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="password_resets")

    def is_expired(self, now: datetime) -> bool:
        # El código expira automáticamente a los OTP_TTL_MINUTES
        return now > self.expires_at

    def is_token_expired(self, now: datetime) -> bool:
        return self.reset_token_expires_at is None or now > self.reset_token_expires_at

    def state(self, now: datetime) -> ResetState:
        if self.is_used:
            return ResetState.CONSUMED
        if self.verified_at is not None:
            return ResetState.EXPIRED if self.is_token_expired(now) else ResetState.VERIFIED
        return ResetState.EXPIRED if self.is_expired(now) else ResetState.ISSUED

    def __repr__(self):
        return f"<PasswordReset(id={self.id}, channel={self.channel}, is_used={self.is_used})>"
