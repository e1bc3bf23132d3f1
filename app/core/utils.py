import re
from datetime import datetime, timezone

from app.core.enums import ResetChannel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def get_utc_now() -> datetime:
    """Retorna la fecha y hora actual en UTC (sin tzinfo, igual que las columnas DateTime)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_email(raw: str) -> str:
    return (raw or "").strip().lower()


def normalize_phone(raw: str) -> str:
    phone = re.sub(r"[\s\-().]+", "", (raw or "").strip())
    if phone.startswith("00"):
        phone = f"+{phone[2:]}"
    return phone


def is_valid_email(email: str) -> bool:
    return len(email) <= 254 and bool(_EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    # E.164: entre 10 y 15 dígitos, con '+' opcional al inicio
    return bool(re.fullmatch(r"\+?\d{10,15}", phone))


def detect_channel(identifier: str) -> ResetChannel:
    return ResetChannel.EMAIL if "@" in (identifier or "") else ResetChannel.PHONE


def normalize_identifier(raw: str, channel: ResetChannel) -> str:
    if channel == ResetChannel.EMAIL:
        return normalize_email(raw)
    return normalize_phone(raw)
