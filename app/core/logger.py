import logging
import sys

from app.core.config import settings

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Devuelve un logger con el formato de la API.
    El handler se agrega una sola vez al logger raíz de la aplicación.
    """
    root = logging.getLogger("app")
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        root.setLevel(settings.LOG_LEVEL.upper())
    return logging.getLogger(name)


def mask_identifier(identifier: str) -> str:
    """Oculta parte del email o teléfono antes de escribirlo en los logs"""
    if not identifier:
        return ""
    if "@" in identifier:
        local, _, domain = identifier.partition("@")
        return f"{local[:2]}***@{domain}"
    return f"***{identifier[-4:]}"
