from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    TRAINER = "trainer"
    CLIENT = "client"

    @property
    def dashboard_path(self) -> str:
        if self is UserRole.ADMIN:
            return "/admin/dashboard"
        if self is UserRole.TRAINER:
            return "/trainer/dashboard"
        if self is UserRole.CLIENT:
            return "/client/dashboard"
        raise ValueError(f"Rol sin panel asignado: {self.value}")


class ResetChannel(str, Enum):
    EMAIL = "email"
    PHONE = "phone"


class ResetState(str, Enum):
    """Estados del flujo de recuperación para un identificador"""
    NONE = "none"
    ISSUED = "issued"
    VERIFIED = "verified"
    CONSUMED = "consumed"
    EXPIRED = "expired"
