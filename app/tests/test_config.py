"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from app.core.config import Settings


def test_prod_settings_rejects_wildcard_origins():
    """Test that production settings reject wildcard origins"""
    settings = Settings(
        DATABASE_URL="postgresql://test",
        APP_ENV="prod",
        ALLOWED_ORIGINS="*"
    )

    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_sqlite():
    """Test that production settings reject a SQLite store"""
    settings = Settings(
        DATABASE_URL="sqlite:///./attendance.db",
        APP_ENV="prod",
        ALLOWED_ORIGINS="https://example.com"
    )

    with pytest.raises(ValueError, match="DATABASE_URL"):
        settings.validate_production()


def test_local_settings_allows_wildcard_origins():
    """Test that local settings allow wildcard origins"""
    settings = Settings(
        DATABASE_URL="postgresql://test",
        APP_ENV="local",
        ALLOWED_ORIGINS="*"
    )

    # Should not raise error
    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list():
    """Test parsing of ALLOWED_ORIGINS"""
    settings = Settings(
        DATABASE_URL="postgresql://test",
        ALLOWED_ORIGINS="https://example.com, https://app.example.com,"
    )
    origins = settings.get_allowed_origins_list()
    assert origins == ["https://example.com", "https://app.example.com"]


def test_attendance_rule_defaults():
    settings = Settings(DATABASE_URL="postgresql://test")
    assert settings.MIN_SESSION_MINUTES == 30
    assert settings.MIN_BREAK_MINUTES == 15
    assert settings.MIN_ACTION_SPACING_MINUTES == 1
    assert settings.FIRST_SESSION_COOLDOWN_MINUTES == 3
    assert settings.SECOND_SESSION_COOLDOWN_MINUTES == 2


@pytest.mark.parametrize(
    "field,value",
    [
        ("APP_ENV", "production"),
        ("LOG_LEVEL", "VERBOSE"),
        ("MIN_BREAK_MINUTES", -1),
        ("PASS_CODE_INSERT_ATTEMPTS", 0),
    ],
)
def test_invalid_settings_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="postgresql://test", **{field: value})
