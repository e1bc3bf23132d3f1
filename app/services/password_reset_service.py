"""
🔑 Recuperación de contraseña por código de un solo uso (OTP)

Flujo por identificador (email o teléfono):
    NONE -> ISSUED -> VERIFIED -> CONSUMED
con EXPIRED alcanzable desde ISSUED (vence el código) o VERIFIED (vence el token).
Una nueva solicitud siempre reemplaza a la anterior y vuelve a ISSUED.

Los vencimientos se evalúan al momento de verificar o confirmar, no hay timers.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import firebase
from app.core.config import settings
from app.core.enums import ResetChannel, ResetState
from app.core.exceptions import (
    ExpiredOtp,
    InvalidIdentifier,
    InvalidOtp,
    OtpNotRequested,
    PasswordMismatch,
    RateLimited,
    TooManyAttempts,
    UnauthorizedReset,
    UnknownIdentifier,
    WeakPassword,
)
from app.core.logger import get_logger, mask_identifier
from app.core.security import security
from app.core.utils import (
    detect_channel,
    get_utc_now,
    is_valid_email,
    is_valid_phone,
    normalize_identifier,
)
from app.models.auditoria import AuditoriaSeguridad
from app.models.password_reset import PasswordReset
from app.models.user import User
from app.services.notification_service import NotificationDispatcher, dispatcher as default_dispatcher

logger = get_logger(__name__)


@dataclass(frozen=True)
class IssuedCode:
    reset_id: int
    identifier: str
    channel: ResetChannel
    expires_at: datetime
    message_id: Optional[str] = None
    queued: bool = False


@dataclass(frozen=True)
class VerifiedCode:
    reset_token: str
    expires_at: datetime
    expires_in: int


@dataclass(frozen=True)
class ResetStatus:
    identifier: str
    channel: ResetChannel
    state: ResetState
    expires_in: int
    attempts_remaining: int


class PasswordResetService:
    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = get_utc_now,
        code_generator: Callable[[], str] = security.generate_otp_code,
        token_generator: Callable[[], str] = security.generate_reset_token,
        password_mirror: Callable[[str, str], bool] = firebase.sync_password,
    ):
        self.db = db
        self.dispatcher = dispatcher or default_dispatcher
        self.clock = clock
        self.code_generator = code_generator
        self.token_generator = token_generator
        self.password_mirror = password_mirror

    # --------------------------------------------------
    # IDENTIFICADORES Y DIRECTORIO DE USUARIOS
    # --------------------------------------------------

    @staticmethod
    def resolve_identifier(raw: str, channel: Optional[ResetChannel] = None) -> Tuple[str, ResetChannel]:
        channel = ResetChannel(channel) if channel else detect_channel(raw)
        identifier = normalize_identifier(raw, channel)
        is_valid = is_valid_email if channel == ResetChannel.EMAIL else is_valid_phone
        if not identifier or not is_valid(identifier):
            raise InvalidIdentifier()
        return identifier, channel

    @staticmethod
    def lookup_key(raw: str) -> str:
        """Normaliza sin validar: un identificador mal escrito simplemente no tiene solicitud"""
        return normalize_identifier(raw, detect_channel(raw))

    def find_user(self, identifier: str, channel: ResetChannel) -> Optional[User]:
        query = self.db.query(User).filter(User.is_active.is_(True))
        if channel == ResetChannel.EMAIL:
            query = query.filter(func.lower(User.email) == identifier)
        else:
            query = query.filter(User.phone == identifier)
        return query.first()

    # --------------------------------------------------
    # 1. EMISIÓN DEL CÓDIGO
    # --------------------------------------------------

    def request_code(
        self,
        raw_identifier: str,
        channel: Optional[ResetChannel] = None,
        background_tasks: Optional[BackgroundTasks] = None,
        ip: Optional[str] = None,
    ) -> IssuedCode:
        identifier, channel = self.resolve_identifier(raw_identifier, channel)
        masked = mask_identifier(identifier)

        user = self.find_user(identifier, channel)
        if not user:
            logger.warning(f"⚠️ Solicitud de código para cuenta inexistente: {masked}")
            raise UnknownIdentifier()

        now = self.clock()
        self._check_cooldown(identifier, now)

        code = self.code_generator()
        reset = self._issue(user, identifier, channel, code, now)
        self._audit(user.id, "OTP_SOLICITADO", f"Código de recuperación emitido por {channel.value}", reset.id, ip)
        self.db.commit()

        logger.info(f"✅ Código de recuperación emitido para {masked} (expira en {settings.OTP_TTL_MINUTES} min)")

        if background_tasks is not None:
            background_tasks.add_task(self.dispatcher.dispatch, channel, identifier, code, user.name)
            return IssuedCode(reset.id, identifier, channel, reset.expires_at, queued=True)

        message_id = self.dispatcher.dispatch(channel, identifier, code, user.name)
        return IssuedCode(reset.id, identifier, channel, reset.expires_at, message_id=message_id)

    def _check_cooldown(self, identifier: str, now: datetime) -> None:
        latest = (
            self.db.query(PasswordReset)
            .filter(PasswordReset.identifier == identifier)
            .order_by(PasswordReset.created_at.desc(), PasswordReset.id.desc())
            .first()
        )
        if latest is None:
            return
        elapsed = (now - latest.created_at).total_seconds()
        cooldown = settings.OTP_RESEND_COOLDOWN_SECONDS
        if elapsed < cooldown:
            retry_after = max(1, math.ceil(cooldown - elapsed))
            logger.warning(f"⏳ Código solicitado de nuevo antes de tiempo para {mask_identifier(identifier)}")
            raise RateLimited(retry_after, f"Espera {retry_after} segundos antes de solicitar otro código")

    def _issue(self, user: User, identifier: str, channel: ResetChannel, code: str, now: datetime) -> PasswordReset:
        # Invalidar y crear en la misma transacción; el UNIQUE de active_identifier
        # detecta una emisión concurrente y se reintenta una vez (gana el último)
        for attempt in range(2):
            try:
                (
                    self.db.query(PasswordReset)
                    .filter(PasswordReset.active_identifier == identifier)
                    .update(
                        {
                            PasswordReset.active_identifier: None,
                            PasswordReset.is_used: True,
                            PasswordReset.used_at: now,
                        },
                        synchronize_session=False,
                    )
                )
                reset = PasswordReset(
                    user_id=user.id,
                    identifier=identifier,
                    channel=channel.value,
                    active_identifier=identifier,
                    code_hash=security.hash_otp_code(identifier, code),
                    attempts=0,
                    created_at=now,
                    expires_at=now + timedelta(minutes=settings.OTP_TTL_MINUTES),
                )
                self.db.add(reset)
                self.db.flush()
                return reset
            except IntegrityError:
                self.db.rollback()
                if attempt:
                    raise
                logger.warning(f"🔁 Emisión concurrente detectada para {mask_identifier(identifier)}, reintentando")

    # --------------------------------------------------
    # 2. VERIFICACIÓN DEL CÓDIGO
    # --------------------------------------------------

    def verify_code(self, raw_identifier: str, code: str, ip: Optional[str] = None) -> VerifiedCode:
        identifier = self.lookup_key(raw_identifier)
        masked = mask_identifier(identifier)
        now = self.clock()

        reset = (
            self.db.query(PasswordReset)
            .filter(
                PasswordReset.active_identifier == identifier,
                PasswordReset.verified_at.is_(None),
            )
            .first()
        )
        if reset is None:
            logger.warning(f"❌ Verificación sin código pendiente para {masked}")
            raise InvalidOtp()

        if reset.is_expired(now):
            logger.warning(f"❌ Código expirado para {masked}")
            raise ExpiredOtp()

        submitted = (code or "").strip()
        if not security.constant_time_equals(security.hash_otp_code(identifier, submitted), reset.code_hash):
            self._register_failed_attempt(reset, now, ip)

        reset_token = self.token_generator()
        token_expires_at = now + timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES)

        # Check-and-set: solo una verificación concurrente puede obtener el token
        updated = (
            self.db.query(PasswordReset)
            .filter(
                PasswordReset.id == reset.id,
                PasswordReset.verified_at.is_(None),
                PasswordReset.is_used.is_(False),
            )
            .update(
                {
                    PasswordReset.verified_at: now,
                    PasswordReset.reset_token_hash: security.hash_reset_token(reset_token),
                    PasswordReset.reset_token_expires_at: token_expires_at,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            logger.warning(f"❌ El código ya fue utilizado para {masked}")
            raise InvalidOtp()

        self._audit(reset.user_id, "OTP_VERIFICADO", "Código de recuperación verificado", reset.id, ip)
        self.db.commit()

        logger.info(f"✅ Código verificado para {masked}, token de restablecimiento emitido")
        return VerifiedCode(
            reset_token=reset_token,
            expires_at=token_expires_at,
            expires_in=settings.RESET_TOKEN_TTL_MINUTES * 60,
        )

    def _register_failed_attempt(self, reset: PasswordReset, now: datetime, ip: Optional[str]) -> None:
        reset_id, user_id = reset.id, reset.user_id
        (
            self.db.query(PasswordReset)
            .filter(PasswordReset.id == reset_id)
            .update({PasswordReset.attempts: PasswordReset.attempts + 1}, synchronize_session=False)
        )
        attempts = self.db.query(PasswordReset.attempts).filter(PasswordReset.id == reset_id).scalar()

        if attempts >= settings.OTP_MAX_ATTEMPTS:
            (
                self.db.query(PasswordReset)
                .filter(PasswordReset.id == reset_id)
                .update(
                    {
                        PasswordReset.active_identifier: None,
                        PasswordReset.is_used: True,
                        PasswordReset.used_at: now,
                    },
                    synchronize_session=False,
                )
            )
            self._audit(user_id, "OTP_BLOQUEADO", f"Código bloqueado tras {attempts} intentos fallidos", reset_id, ip)
            self.db.commit()
            logger.warning(f"🔒 Código bloqueado por intentos fallidos (solicitud {reset_id})")
            raise TooManyAttempts()

        self.db.commit()
        logger.warning(f"❌ Código incorrecto (intento {attempts}/{settings.OTP_MAX_ATTEMPTS}, solicitud {reset_id})")
        raise InvalidOtp()

    # --------------------------------------------------
    # 3. CAMBIO DE CONTRASEÑA
    # --------------------------------------------------

    @staticmethod
    def validate_new_password(password: str, confirmation: str) -> None:
        if len(password or "") < settings.PASSWORD_MIN_LENGTH:
            raise WeakPassword(f"La contraseña debe tener al menos {settings.PASSWORD_MIN_LENGTH} caracteres")
        if password != confirmation:
            raise PasswordMismatch()

    def reset_password(
        self,
        raw_identifier: str,
        reset_token: str,
        password: str,
        password_confirmation: str,
        ip: Optional[str] = None,
    ) -> User:
        self.validate_new_password(password, password_confirmation)

        identifier = self.lookup_key(raw_identifier)
        masked = mask_identifier(identifier)
        now = self.clock()

        reset = (
            self.db.query(PasswordReset)
            .filter(
                PasswordReset.active_identifier == identifier,
                PasswordReset.verified_at.isnot(None),
            )
            .first()
        )
        if (
            reset is None
            or not reset_token
            or not reset.reset_token_hash
            or not security.constant_time_equals(security.hash_reset_token(reset_token), reset.reset_token_hash)
        ):
            logger.warning(f"❌ Token de restablecimiento inválido para {masked}")
            raise UnauthorizedReset()

        if reset.is_token_expired(now):
            logger.warning(f"❌ Token de restablecimiento expirado para {masked}")
            raise UnauthorizedReset("La autorización expiró. Solicita un nuevo código")

        user = reset.user
        if user is None or not user.is_active:
            raise UnauthorizedReset()

        # Consumir la solicitud de forma atómica: el token sirve una sola vez
        updated = (
            self.db.query(PasswordReset)
            .filter(PasswordReset.id == reset.id, PasswordReset.is_used.is_(False))
            .update(
                {
                    PasswordReset.is_used: True,
                    PasswordReset.used_at: now,
                    PasswordReset.active_identifier: None,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            raise UnauthorizedReset()

        user.hashed_password = security.hash_password(password)
        user.token_version = (user.token_version or 0) + 1
        user.password_changed_at = now
        self._audit(user.id, "PASSWORD_RESTABLECIDO", "Contraseña restablecida con código de recuperación", reset.id, ip)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"✅ Contraseña actualizada para {masked}, sesiones anteriores revocadas")
        self.password_mirror(user.email, password)
        return user

    # --------------------------------------------------
    # CONSULTAS Y MANTENIMIENTO
    # --------------------------------------------------

    def current_state(self, raw_identifier: str) -> ResetState:
        identifier = self.lookup_key(raw_identifier)
        reset = (
            self.db.query(PasswordReset)
            .filter(PasswordReset.identifier == identifier)
            .order_by(PasswordReset.created_at.desc(), PasswordReset.id.desc())
            .first()
        )
        if reset is None:
            return ResetState.NONE
        return reset.state(self.clock())

    def status(self, raw_identifier: str) -> ResetStatus:
        identifier = self.lookup_key(raw_identifier)
        reset = self.db.query(PasswordReset).filter(PasswordReset.active_identifier == identifier).first()
        if reset is None:
            raise OtpNotRequested()

        now = self.clock()
        state = reset.state(now)
        expires_at = reset.reset_token_expires_at if reset.verified_at is not None else reset.expires_at
        return ResetStatus(
            identifier=identifier,
            channel=ResetChannel(reset.channel),
            state=state,
            expires_in=max(0, int((expires_at - now).total_seconds())),
            attempts_remaining=max(0, settings.OTP_MAX_ATTEMPTS - reset.attempts),
        )

    def purge_expired(self, older_than: timedelta = timedelta(days=1)) -> int:
        """Borra solicitudes muertas (consumidas o vencidas) creadas antes del corte"""
        now = self.clock()
        cutoff = now - older_than
        deleted = (
            self.db.query(PasswordReset)
            .filter(
                PasswordReset.created_at < cutoff,
                or_(
                    PasswordReset.is_used.is_(True),
                    (PasswordReset.expires_at < now)
                    & or_(
                        PasswordReset.reset_token_expires_at.is_(None),
                        PasswordReset.reset_token_expires_at < now,
                    ),
                ),
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"🧹 {deleted} solicitudes de recuperación eliminadas")
        return deleted

    def _audit(self, user_id: Optional[int], accion: str, descripcion: str, registro_id: Optional[int], ip: Optional[str]) -> None:
        self.db.add(
            AuditoriaSeguridad(
                user_id=user_id,
                accion=accion,
                descripcion=descripcion,
                tabla_afectada=PasswordReset.__tablename__,
                registro_id=registro_id,
                ip_origen=ip,
            )
        )
