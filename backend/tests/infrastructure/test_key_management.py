"""Key Management — tests for key posture per environment and the cached cipher.

Tests cover:
    - Production refuses missing, placeholder and non-hex keys
    - Development falls back to the placeholder with a WARNING
    - The key value never reaches the logs
    - get_field_cipher caching and module-level encrypt/decrypt
"""

import logging

import pytest

from vetcepi.config import Settings
from vetcepi.core.errors import ConfigurationError
from vetcepi.core.field_cipher import FieldCipher
from vetcepi.infrastructure import key_management
from vetcepi.infrastructure.key_management import (
    PLACEHOLDER_KEY, cipher_self_check, decrypt, encrypt, get_field_cipher,
    resolve_encryption_key,
)

HEX_KEY = "a1b2c3d4e5f60718" * 4


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


@pytest.mark.parametrize("key", [None, "", "   ", PLACEHOLDER_KEY])
def test_production_without_real_key_refuses(key):
    with pytest.raises(ConfigurationError) as exc:
        resolve_encryption_key(_settings(environment="production", encryption_key=key))
    assert exc.value.setting == "ENCRYPTION_KEY"


def test_production_rejects_non_hex_key():
    settings = _settings(environment="production", encryption_key="correct horse battery staple")
    with pytest.raises(ConfigurationError) as exc:
        resolve_encryption_key(settings)
    assert "correct horse" not in exc.value.message


def test_production_accepts_hex_key():
    settings = _settings(environment="production", encryption_key=HEX_KEY)
    assert resolve_encryption_key(settings) == HEX_KEY


def test_development_without_key_warns_and_uses_placeholder(caplog):
    settings = _settings(environment="development", encryption_key=None)
    with caplog.at_level(logging.WARNING, logger=key_management.__name__):
        key = resolve_encryption_key(settings)

    assert key == PLACEHOLDER_KEY
    assert any(
        r.levelno == logging.WARNING and "INSECURE" in r.getMessage()
        for r in caplog.records
    )
    assert PLACEHOLDER_KEY not in caplog.text


def test_development_passphrase_key_warns_without_leaking(caplog):
    secret = "my clinic passphrase"
    with caplog.at_level(logging.WARNING, logger=key_management.__name__):
        key = resolve_encryption_key(_settings(environment="test", encryption_key=secret))

    assert key == secret
    assert caplog.records
    assert secret not in caplog.text


def test_hex_key_in_development_is_silent(caplog):
    with caplog.at_level(logging.WARNING, logger=key_management.__name__):
        resolve_encryption_key(_settings(environment="development", encryption_key=HEX_KEY))
    assert not caplog.records


def test_get_field_cipher_is_cached():
    assert get_field_cipher() is get_field_cipher()


def test_module_level_round_trip():
    token = encrypt("Vaccinated against leptospirosis")
    assert token != "Vaccinated against leptospirosis"
    assert decrypt(token) == "Vaccinated against leptospirosis"
    assert encrypt("") == ""


def test_module_cipher_uses_environment_key():
    token = FieldCipher("0123456789abcdef" * 4).encrypt("Cryptorchid")
    assert decrypt(token) == "Cryptorchid"


def test_production_cipher_refuses_to_build(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        get_field_cipher()


def test_self_check():
    assert cipher_self_check()
    assert not cipher_self_check(FieldCipher(None))
