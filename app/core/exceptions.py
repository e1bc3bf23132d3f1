from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class PasswordResetError(Exception):
    """
    Error base del flujo de recuperación de contraseña.
    Cada subclase define su código HTTP y un error_code estable para el frontend.
    """
    status_code: int = 400
    error_code: str = "BAD_REQUEST"
    message: str = "Solicitud inválida"
    field: Optional[str] = None

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None):
        self.message = message or self.message
        if field is not None:
            self.field = field
        super().__init__(self.message)

    def errors(self) -> Optional[dict]:
        if not self.field:
            return None
        return {self.field: [self.message]}


class InvalidIdentifier(PasswordResetError):
    status_code = 422
    error_code = "INVALID_IDENTIFIER"
    message = "Ingresa un correo o teléfono válido"
    field = "identifier"


class UnknownIdentifier(PasswordResetError):
    status_code = 422
    error_code = "UNKNOWN_IDENTIFIER"
    message = "No existe una cuenta con ese correo o teléfono"
    field = "identifier"


class RateLimited(PasswordResetError):
    status_code = 429
    error_code = "RATE_LIMITED"
    message = "Espera unos segundos antes de solicitar otro código"
    field = "identifier"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after = retry_after


class InvalidOtp(PasswordResetError):
    status_code = 400
    error_code = "INVALID_OTP"
    message = "Código inválido. Inténtalo nuevamente"
    field = "otp"


class ExpiredOtp(PasswordResetError):
    status_code = 400
    error_code = "EXPIRED_OTP"
    message = "El código expiró. Solicita uno nuevo"
    field = "otp"


class TooManyAttempts(PasswordResetError):
    status_code = 429
    error_code = "TOO_MANY_ATTEMPTS"
    message = "Demasiados intentos fallidos. Solicita un nuevo código"
    field = "otp"


class OtpNotRequested(PasswordResetError):
    status_code = 404
    error_code = "OTP_NOT_REQUESTED"
    message = "No hay un código pendiente. Solicita uno nuevo"


class UnauthorizedReset(PasswordResetError):
    status_code = 401
    error_code = "UNAUTHORIZED_RESET"
    message = "Acceso no autorizado. Solicita un nuevo código"


class WeakPassword(PasswordResetError):
    status_code = 422
    error_code = "WEAK_PASSWORD"
    message = "La contraseña es demasiado corta"
    field = "password"


class PasswordMismatch(PasswordResetError):
    status_code = 422
    error_code = "PASSWORD_MISMATCH"
    message = "Las contraseñas no coinciden"
    field = "password_confirmation"


class ServiceUnavailable(PasswordResetError):
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"
    message = "No pudimos procesar tu solicitud. Inténtalo más tarde"


class DeliveryFailure(Exception):
    """Fallo del proveedor de email/SMS. Solo se registra en logs, nunca llega al cliente."""


# --------------------------------------------------
# HANDLER GLOBAL
# --------------------------------------------------

async def password_reset_exception_handler(request: Request, exc: PasswordResetError):
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message,
            "error_code": exc.error_code,
            "path": request.url.path,
            "errors": exc.errors(),
        },
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Errores de Pydantic con el mismo formato que el resto de la API"""
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "__root__"
        errors.setdefault(field, []).append(error.get("msg", "Valor inválido"))
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Los datos enviados no son válidos",
            "error_code": "VALIDATION_ERROR",
            "path": request.url.path,
            "errors": errors,
        },
    )
