"""
Unit tests for application settings.
"""

import pytest
from pydantic import ValidationError

from clinicbook.config.settings import Settings, get_settings, reset_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.mark.unit
def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.DEFAULT_APPOINTMENT_DURATION_MINUTES == 20
    assert settings.CONFLICT_RETRY_ATTEMPTS == 3
    assert settings.LOCK_TIMEOUT_SECONDS == 2.0
    assert settings.CURRENCY == "USD"


@pytest.mark.unit
def test_values_come_from_environment(monkeypatch):
    monkeypatch.setenv("DEFAULT_APPOINTMENT_DURATION_MINUTES", "30")
    monkeypatch.setenv("CURRENCY", "kes")

    settings = Settings(_env_file=None)

    assert settings.DEFAULT_APPOINTMENT_DURATION_MINUTES == 30
    assert settings.CURRENCY == "KES"


@pytest.mark.unit
@pytest.mark.parametrize(
    "field,value",
    [
        ("DEFAULT_APPOINTMENT_DURATION_MINUTES", 0),
        ("DEFAULT_APPOINTMENT_DURATION_MINUTES", 24 * 60 + 1),
        ("CONFLICT_RETRY_ATTEMPTS", 0),
        ("CONFLICT_RETRY_ATTEMPTS", 11),
        ("LOCK_TIMEOUT_SECONDS", 0),
        ("CURRENCY", "EURO"),
        ("LOG_FORMAT", "xml"),
        ("DB_POOL_SIZE", 0),
    ],
)
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


@pytest.mark.unit
def test_database_url_with_and_without_password():
    anonymous = Settings(
        _env_file=None, DB_USER="clinic", DB_PASSWORD=None, DB_HOST="db", DB_PORT=5433, DB_NAME="clinic_db"
    )
    secured = Settings(
        _env_file=None, DB_USER="clinic", DB_PASSWORD="s3cret", DB_HOST="db", DB_PORT=5432, DB_NAME="clinic_db"
    )

    assert anonymous.database_url == "postgresql://clinic@db:5433/clinic_db"
    assert secured.database_url == "postgresql://clinic:s3cret@db:5432/clinic_db"


@pytest.mark.unit
def test_is_development():
    assert Settings(_env_file=None, ENVIRONMENT="test").is_development
    assert not Settings(_env_file=None, ENVIRONMENT="production", DEBUG=False).is_development


@pytest.mark.unit
def test_get_settings_is_cached_until_reset():
    first = get_settings()

    assert get_settings() is first
    reset_settings()
    assert get_settings() is not first
