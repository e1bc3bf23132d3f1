import pytest

from app.core.enums import ResetChannel, UserRole
from app.core.logger import mask_identifier
from app.core.security import security
from app.core.utils import detect_channel, is_valid_phone, normalize_identifier, normalize_phone


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+1 (555) 123-4567", "+15551234567"),
        ("0051 987 654 321", "+51987654321"),
        ("987-654-3210", "9876543210"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_phone_validation_bounds():
    assert is_valid_phone("9876543210")
    assert not is_valid_phone("987654321")
    assert not is_valid_phone("+1234567890123456")


def test_channel_detection_and_normalization():
    assert detect_channel("Ana@Gym.com") == ResetChannel.EMAIL
    assert detect_channel("+15551234567") == ResetChannel.PHONE
    assert normalize_identifier(" Ana@Gym.com ", ResetChannel.EMAIL) == "ana@gym.com"


def test_mask_identifier_hides_most_of_the_value():
    assert mask_identifier("user@example.com") == "us***@example.com"
    assert mask_identifier("+15551234567") == "***4567"


def test_generated_codes_are_six_digits():
    codes = {security.generate_otp_code() for _ in range(50)}
    assert all(len(c) == 6 and c.isdigit() for c in codes)
    assert len(codes) > 1


def test_reset_tokens_are_unique_and_hashed():
    first, second = security.generate_reset_token(), security.generate_reset_token()
    assert first != second
    assert security.hash_reset_token(first) != first
    assert len(security.hash_reset_token(first)) == 64


def test_every_role_has_a_dashboard():
    assert {role.dashboard_path for role in UserRole} == {
        "/admin/dashboard",
        "/trainer/dashboard",
        "/client/dashboard",
    }
