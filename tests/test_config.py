"""Settings, database URL handling and the launcher's command-line overrides."""
import logging

import pytest

import run
from kyc_app.config import DEFAULT_ENCRYPTION_KEY, Settings
from kyc_app.database import sqlite_file_path
from kyc_app.exceptions import ConfigurationError


def test_default_key_refused_in_production():
    settings = Settings(ENCRYPTION_KEY=DEFAULT_ENCRYPTION_KEY, ENVIRONMENT="production")
    assert settings.uses_default_key
    with pytest.raises(ConfigurationError):
        settings.check_encryption_key()


def test_default_key_warns_elsewhere(caplog):
    settings = Settings(ENCRYPTION_KEY=DEFAULT_ENCRYPTION_KEY, ENVIRONMENT="development")
    with caplog.at_level(logging.WARNING, logger="kyc_app.config"):
        settings.check_encryption_key()
    assert "insecure default key" in caplog.text


def test_configured_key_passes_in_production():
    settings = Settings(ENCRYPTION_KEY="a-real-secret", ENVIRONMENT="production")
    assert not settings.uses_default_key
    settings.check_encryption_key()


def test_policy_defaults():
    settings = Settings()
    assert settings.REQUIRE_AADHAAR is False
    assert settings.RECHECK_PAN_ON_UPDATE is True
    assert settings.RELEASE_PAN_ON_DELETE is True


@pytest.mark.parametrize("url, expected", [
    ("sqlite://", None),
    ("sqlite:///:memory:", None),
    ("sqlite:///./data/kyc.db", "./data/kyc.db"),
    ("sqlite:////var/lib/kyc/kyc.db", "/var/lib/kyc/kyc.db"),
    ("postgresql://kyc:secret@db/kyc", None),
])
def test_sqlite_file_path(url, expected):
    assert sqlite_file_path(url) == expected


def test_launcher_options_become_env_overrides():
    args = run.parse_args(["--storage", "memory", "--log-level", "DEBUG", "--port", "9000"])
    environ = {"STORAGE_BACKEND": "sql", "DATABASE_URL": "sqlite:///./data/kyc.db"}

    run.apply_overrides(args, environ)

    assert environ == {
        "STORAGE_BACKEND": "memory",
        "DATABASE_URL": "sqlite:///./data/kyc.db",
        "LOG_LEVEL": "DEBUG",
    }
    assert args.port == 9000


def test_launcher_rejects_unknown_storage():
    with pytest.raises(SystemExit):
        run.parse_args(["--storage", "redis"])
