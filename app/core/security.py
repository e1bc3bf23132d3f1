import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings
from app.core.utils import get_utc_now

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

class Security:
    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
        to_encode = data.copy()
        if expires_delta:
            expire = get_utc_now() + expires_delta
        else:
            expire = get_utc_now() + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)

        to_encode.update({"exp": expire})

        encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        return encoded_jwt

    @staticmethod
    def decode_access_token(token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            return None

    @staticmethod
    def generate_otp_code(length: int = None) -> str:
        """Código numérico criptográficamente aleatorio (conserva ceros a la izquierda)"""
        length = length or settings.OTP_LENGTH
        return "".join(str(secrets.randbelow(10)) for _ in range(length))

    @staticmethod
    def hash_otp_code(identifier: str, code: str) -> str:
        # HMAC con la clave del servidor: el código nunca se guarda en claro
        message = f"{identifier}:{code}".encode()
        return hmac.new(settings.SECRET_KEY.encode(), message, hashlib.sha256).hexdigest()

    @staticmethod
    def generate_reset_token() -> str:
        return secrets.token_urlsafe(48)

    @staticmethod
    def hash_reset_token(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    @staticmethod
    def constant_time_equals(a: str, b: str) -> bool:
        return hmac.compare_digest(a.encode(), b.encode())

security = Security()
