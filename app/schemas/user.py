from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Any
from app.core.enums import ResetChannel

class UserLogin(BaseModel):
    identifier: str = Field(..., description="Email o teléfono")
    password: str
    remember_me: bool = False

class UserCreate(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None
    password: str
    role: str = "client"

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role_name: str
    is_active: bool = True

    class Config:
        from_attributes = True

# --- 🛡️ ESQUEMAS PARA LA RECUPERACIÓN POR CÓDIGO OTP ---

class ForgotPasswordRequest(BaseModel):
    """Para cuando el usuario ingresa su email o teléfono para recibir el código"""
    identifier: str = Field(..., min_length=1)
    channel: Optional[ResetChannel] = None  # Si no se envía se deduce del identificador

class VerifyOtpRequest(BaseModel):
    """Para cuando el usuario ingresa el código de 6 dígitos"""
    identifier: str
    otp: str = Field(..., min_length=1, max_length=12)

class ResetPasswordRequest(BaseModel):
    """Para cambiar la contraseña con el token obtenido al verificar el código"""
    identifier: str
    reset_token: str
    password: str
    password_confirmation: str

class ApiResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[Any] = None
