"""Key Management — process-wide field encryption key and module-level cipher API.

Invariants:
    - The key is resolved once per process (lru_cache) from Settings.encryption_key
    - Production: missing key, the placeholder, or anything but 64 hex chars
      raises ConfigurationError and the process refuses to start
    - Non-production: a missing key logs a WARNING and falls back to the
      publicly known PLACEHOLDER_KEY, so placeholder use is auditable from logs
    - The key value is never logged or put in an error message

Design Decisions:
    - get_field_cipher() mirrors get_settings(): cached accessor, tests call cache_clear()
    - encrypt/decrypt/generate_key exposed as plain functions for the data-access layer
"""

import logging
from functools import lru_cache

from vetcepi.config import Settings, get_settings
from vetcepi.core.errors import ConfigurationError, VetcepiError
from vetcepi.core.field_cipher import FieldCipher, generate_key, is_hex_key

logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "default-key-change-in-production"

_SELF_CHECK_VALUE = "vetcepi cipher self-check"

__all__ = [
    "PLACEHOLDER_KEY", "resolve_encryption_key", "get_field_cipher",
    "encrypt", "decrypt", "generate_key", "cipher_self_check",
]


def resolve_encryption_key(settings: Settings) -> str:
    """Return the secret to key the field cipher with, enforcing the environment's posture."""
    key = settings.encryption_key

    if settings.is_production:
        if key is None or key == PLACEHOLDER_KEY:
            raise ConfigurationError(
                "ENCRYPTION_KEY must be set in production", "ENCRYPTION_KEY",
            )
        if not is_hex_key(key):
            raise ConfigurationError(
                "ENCRYPTION_KEY must be 64 hexadecimal characters (32 bytes) in production",
                "ENCRYPTION_KEY",
            )
        return key

    if key is None or key == PLACEHOLDER_KEY:
        logger.warning(
            "INSECURE: ENCRYPTION_KEY is not set; medical history is being "
            "encrypted with the publicly known placeholder key. "
            "Generate one with scripts/generate_encryption_key.py",
            extra={"environment": settings.environment},
        )
        return PLACEHOLDER_KEY

    if not is_hex_key(key):
        logger.warning(
            "ENCRYPTION_KEY is not 64 hex characters; using it as a passphrase",
            extra={"environment": settings.environment},
        )
    return key


@lru_cache
def get_field_cipher() -> FieldCipher:
    return FieldCipher(resolve_encryption_key(get_settings()))


def encrypt(plaintext: str) -> str:
    """Encrypt one field with the process-wide key."""
    return get_field_cipher().encrypt(plaintext)


def decrypt(ciphertext: str) -> str:
    """Decrypt one field with the process-wide key."""
    return get_field_cipher().decrypt(ciphertext)


def cipher_self_check(cipher: FieldCipher | None = None) -> bool:
    """Round-trip a fixed value (readiness check)."""
    cipher = cipher or get_field_cipher()
    try:
        return cipher.decrypt(cipher.encrypt(_SELF_CHECK_VALUE)) == _SELF_CHECK_VALUE
    except VetcepiError as e:
        logger.error(f"Cipher self-check failed: {e.code}")
        return False
