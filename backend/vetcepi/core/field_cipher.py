"""Field Cipher — symmetric encryption of a single free-text attribute at rest.

Invariants:
    - decrypt(encrypt(x)) == x for every str x
    - "" maps to "" in both directions and never touches the cipher primitive
    - encrypt never returns plaintext: any primitive error becomes EncryptionFailure
    - decrypt never returns garbled text: bad base64, unknown format, failed
      authentication, bad padding or invalid UTF-8 all become DecryptionFailure
    - Two encryptions of the same plaintext differ (fresh salt and nonce each call)
    - No I/O beyond os.urandom; the secret is never part of any message

Token format (current, version 1), standard base64 of:
    0x01 || salt (16) || nonce (12) || AES-256-GCM ciphertext+tag
The message key is HKDF-SHA256(secret, salt). Version byte and salt are bound
as associated data.

Legacy format (read only): OpenSSL "Salted__" || salt (8) || AES-256-CBC
ciphertext, key and IV from EVP_BytesToKey(MD5) over the secret string used as
a passphrase. Rows written by the previous Node deployment use it. These
tokens carry no authentication tag: a wrong key or a tampered row is caught
only by the padding and UTF-8 checks, so a legacy read can never be
authenticated. Each legacy read is logged as a warning.

Design Decisions:
    - Per-message HKDF over one static AES key: salt in the token makes the
      format self-describing, no IV column needed
    - Legacy path kept read-only so old rows stay readable; the next write of
      the field re-encrypts it in the current format
"""

import base64
import binascii
import hashlib
import logging
import os
import secrets
import string

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from vetcepi.core.errors import EncryptionFailure, DecryptionFailure

logger = logging.getLogger(__name__)


KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
FORMAT_VERSION = 0x01
HKDF_INFO = b"vetcepi/medical-field/v1"

LEGACY_MAGIC = b"Salted__"
LEGACY_SALT_SIZE = 8
AES_BLOCK_SIZE = 16

_HEADER_SIZE = 1 + SALT_SIZE
_MIN_TOKEN_SIZE = _HEADER_SIZE + NONCE_SIZE + TAG_SIZE


def generate_key() -> str:
    """Return a fresh 32-byte key, hex-encoded (64 chars), for ENCRYPTION_KEY."""
    return secrets.token_hex(KEY_SIZE)


def is_hex_key(secret: str) -> bool:
    """True when secret is exactly 64 hexadecimal characters."""
    return len(secret) == KEY_SIZE * 2 and all(
        c in string.hexdigits for c in secret
    )


class FieldCipher:
    """Encrypts and decrypts one text field with a fixed process secret.

    A 64-char hex secret is used as raw key material; any other secret is
    used as the UTF-8 bytes of a passphrase. The legacy read path always
    treats the secret as a passphrase string.
    """

    def __init__(self, secret: str | None):
        self._passphrase = (secret or "").encode("utf-8")
        if secret and is_hex_key(secret):
            self._key_material = bytes.fromhex(secret)
        else:
            self._key_material = self._passphrase

    def encrypt(self, plaintext: str) -> str:
        if plaintext == "":
            return ""
        if not self._key_material:
            raise EncryptionFailure("key unavailable")
        try:
            salt = os.urandom(SALT_SIZE)
            nonce = os.urandom(NONCE_SIZE)
            header = bytes([FORMAT_VERSION]) + salt
            aead = AESGCM(self._derive(salt))
            sealed = aead.encrypt(nonce, plaintext.encode("utf-8"), header)
        except (ValueError, TypeError, UnicodeEncodeError) as e:
            raise EncryptionFailure(type(e).__name__) from e
        return base64.b64encode(header + nonce + sealed).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        if ciphertext == "":
            return ""
        if not self._key_material:
            raise DecryptionFailure("key unavailable")
        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionFailure("malformed encoding") from e

        if raw.startswith(LEGACY_MAGIC):
            data = self._open_legacy(raw)
        elif raw[:1] == bytes([FORMAT_VERSION]):
            data = self._open_v1(raw)
        else:
            raise DecryptionFailure("unknown format")

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionFailure("invalid text") from e

    # ─── internals ────────────────────────────────────────────────

    def _derive(self, salt: bytes) -> bytes:
        return HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=salt,
            info=HKDF_INFO,
        ).derive(self._key_material)

    def _open_v1(self, raw: bytes) -> bytes:
        if len(raw) < _MIN_TOKEN_SIZE:
            raise DecryptionFailure("truncated")
        header = raw[:_HEADER_SIZE]
        salt = header[1:]
        nonce = raw[_HEADER_SIZE:_HEADER_SIZE + NONCE_SIZE]
        sealed = raw[_HEADER_SIZE + NONCE_SIZE:]
        try:
            return AESGCM(self._derive(salt)).decrypt(nonce, sealed, header)
        except InvalidTag as e:
            raise DecryptionFailure("authentication failed") from e

    def _open_legacy(self, raw: bytes) -> bytes:
        """Unauthenticated CBC read; the field is re-encrypted when next written."""
        body_start = len(LEGACY_MAGIC) + LEGACY_SALT_SIZE
        salt = raw[len(LEGACY_MAGIC):body_start]
        body = raw[body_start:]
        if len(salt) != LEGACY_SALT_SIZE or not body or len(body) % AES_BLOCK_SIZE:
            raise DecryptionFailure("truncated")
        key, iv = evp_bytes_to_key(self._passphrase, salt)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()
        unpadder = padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()
        try:
            data = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionFailure("bad padding") from e
        logger.warning(
            "Read unauthenticated legacy token; the field is re-encrypted when next written",
            extra={"error_code": "LEGACY_CIPHERTEXT"},
        )
        return data


def evp_bytes_to_key(
    passphrase: bytes, salt: bytes, key_len: int = KEY_SIZE, iv_len: int = AES_BLOCK_SIZE,
) -> tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and one iteration."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = hashlib.md5(block + passphrase + salt).digest()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]
