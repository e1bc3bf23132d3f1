from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import timedelta
from app.core.database import get_db
from app.core.enums import ResetChannel
from app.core.exceptions import PasswordResetError, ServiceUnavailable
from app.core.logger import get_logger, mask_identifier
from app.core.security import security
from app.core.utils import detect_channel, normalize_identifier
from app.models.user import User
from app.schemas.user import (
    ApiResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    UserLogin,
    UserResponse,
    VerifyOtpRequest,
)
from app.services.password_reset_service import PasswordResetService

logger = get_logger(__name__)

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def get_password_reset_service(db: Session = Depends(get_db)) -> PasswordResetService:
    return PasswordResetService(db)


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("/login")
async def login(credentials: UserLogin, db: Session = Depends(get_db)):
    channel = detect_channel(credentials.identifier)
    identifier = normalize_identifier(credentials.identifier, channel)
    logger.info(f"🔐 Intento de login: {mask_identifier(identifier)}")

    if channel == ResetChannel.EMAIL:
        user = db.query(User).filter(func.lower(User.email) == identifier).first()
    else:
        user = db.query(User).filter(User.phone == identifier).first()

    if not user or not user.is_active or not security.verify_password(credentials.password, user.hashed_password):
        logger.warning(f"❌ Login fallido para {mask_identifier(identifier)}")
        raise HTTPException(status_code=401, detail="Correo, teléfono o contraseña incorrectos")

    expires_delta = timedelta(days=30) if credentials.remember_me else None
    access_token = security.create_access_token(
        data={
            "sub": user.email,
            "user_id": user.id,
            "role": user.role.value,
            "ver": user.token_version,
        },
        expires_delta=expires_delta,
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "redirect_to": user.role.dashboard_path,
        "user_info": UserResponse.model_validate(user).model_dump(),
    }


async def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token inválido o expirado",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = security.decode_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("user_id")
    version = payload.get("ver")
    if user_id is None or version is None:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise credentials_exception

    # Un cambio de contraseña incrementa token_version y revoca los tokens anteriores
    if version != user.token_version:
        logger.warning(f"⚠️ Token revocado por cambio de contraseña (user_id={user.id})")
        raise credentials_exception

    return user


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user


# --------------------------------------------------
# RECUPERACIÓN DE CONTRASEÑA POR CÓDIGO
# --------------------------------------------------

def _send_code(
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: PasswordResetService,
) -> ApiResponse:
    try:
        issued = service.request_code(
            payload.identifier,
            payload.channel,
            background_tasks=background_tasks,
            ip=_client_ip(request),
        )
    except PasswordResetError:
        raise
    except Exception as e:
        service.db.rollback()
        logger.exception(f"❌ Error enviando código de recuperación: {e}")
        raise ServiceUnavailable()

    if issued.channel == ResetChannel.PHONE:
        message = "Te enviamos un código a tu teléfono. Revisa tus mensajes"
    else:
        message = "Te enviamos un código a tu correo. Revisa tu bandeja de entrada"
    return ApiResponse(
        message=message,
        data={
            "channel": issued.channel.value,
            "expires_in": int((issued.expires_at - service.clock()).total_seconds()),
        },
    )


@router.post("/password/send-otp", response_model=ApiResponse)
def send_otp(
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: PasswordResetService = Depends(get_password_reset_service),
):
    """
    Solicita un código de 6 dígitos para restablecer la contraseña.

    Body:
    - identifier: email o teléfono de la cuenta
    - channel: 'email' o 'phone' (opcional)
    """
    return _send_code(payload, background_tasks, request, service)


@router.post("/password/resend-otp", response_model=ApiResponse)
def resend_otp(
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: PasswordResetService = Depends(get_password_reset_service),
):
    """Reenvía un código nuevo; el anterior deja de servir. Respeta el mismo tiempo de espera."""
    return _send_code(payload, background_tasks, request, service)


@router.get("/password/otp-form", response_model=ApiResponse)
def otp_form(identifier: str, service: PasswordResetService = Depends(get_password_reset_service)):
    """Estado del código pendiente para mostrar el formulario de verificación"""
    reset_status = service.status(identifier)
    return ApiResponse(
        message="Ingresa el código que te enviamos",
        data={
            "identifier": reset_status.identifier,
            "channel": reset_status.channel.value,
            "state": reset_status.state.value,
            "expires_in": reset_status.expires_in,
            "attempts_remaining": reset_status.attempts_remaining,
        },
    )


@router.post("/password/verify-otp", response_model=ApiResponse)
def verify_otp(
    payload: VerifyOtpRequest,
    request: Request,
    service: PasswordResetService = Depends(get_password_reset_service),
):
    try:
        verified = service.verify_code(payload.identifier, payload.otp, ip=_client_ip(request))
    except PasswordResetError:
        raise
    except Exception as e:
        service.db.rollback()
        logger.exception(f"❌ Error verificando código: {e}")
        raise ServiceUnavailable()

    return ApiResponse(
        message="Código verificado. Ahora crea tu nueva contraseña",
        data={"reset_token": verified.reset_token, "expires_in": verified.expires_in},
    )


@router.post("/password/reset", response_model=ApiResponse)
def reset_password(
    payload: ResetPasswordRequest,
    request: Request,
    service: PasswordResetService = Depends(get_password_reset_service),
):
    try:
        service.reset_password(
            payload.identifier,
            payload.reset_token,
            payload.password,
            payload.password_confirmation,
            ip=_client_ip(request),
        )
    except PasswordResetError:
        raise
    except Exception as e:
        service.db.rollback()
        logger.exception(f"❌ Error restableciendo contraseña: {e}")
        raise ServiceUnavailable()

    return ApiResponse(
        message="¡Contraseña restablecida! Inicia sesión con tu nueva contraseña",
        data={"redirect_to": "/auth/login"},
    )
