"""Configuration and fail-closed startup tests."""

import pytest
from pydantic import ValidationError

from identity_service.core.config import Settings, SigningSecrets
from identity_service.core.errors import ConfigurationError
from identity_service import main
from identity_service.main import create_app


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("ACCESS_TOKEN_SECRET", raising=False)
    monkeypatch.delenv("REFRESH_TOKEN_SECRET", raising=False)


def test_settings_require_both_secrets(clean_env):
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

    with pytest.raises(ValidationError):
        Settings(_env_file=None, ACCESS_TOKEN_SECRET="only-access")


def test_settings_read_secrets_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_SECRET", "env-access")
    monkeypatch.setenv("REFRESH_TOKEN_SECRET", "env-refresh")

    settings = Settings(_env_file=None)

    assert SigningSecrets.from_settings(settings).access_key == "env-access"
    assert "env-access" not in repr(settings)


def test_defaults():
    settings = Settings(_env_file=None, ACCESS_TOKEN_SECRET="a", REFRESH_TOKEN_SECRET="b")

    assert settings.ACCESS_TOKEN_EXPIRE_MINUTES == 60
    assert settings.REFRESH_TOKEN_EXPIRE_DAYS == 7
    assert settings.PASSWORD_RESET_EXPIRE_MINUTES == 15
    assert settings.VERIFICATION_EXPIRE_MINUTES == 60
    assert settings.BCRYPT_ROUNDS == 12


@pytest.mark.parametrize(
    ("access_key", "refresh_key"),
    [("", "refresh"), ("access", ""), ("   ", "refresh"), ("same", "same")],
)
def test_signing_secrets_fail_closed(access_key, refresh_key):
    with pytest.raises(ConfigurationError):
        SigningSecrets(access_key=access_key, refresh_key=refresh_key)


def test_signing_secrets_repr_hides_keys(secrets):
    assert secrets.access_key not in repr(secrets)
    assert secrets.refresh_key not in repr(secrets)


def test_create_app_refuses_blank_secret_before_opening_the_database(settings, delivery, monkeypatch):
    engines = []
    monkeypatch.setattr(main, "create_engine", lambda s: engines.append(s))
    broken = settings.model_copy(update={"REFRESH_TOKEN_SECRET": ""})

    with pytest.raises(ConfigurationError):
        create_app(broken, delivery=delivery)

    assert engines == []
