"""
Field Cipher — AES-256-CBC encryption of single KYC field values.

Tokens are self-describing: ``iv_hex:ciphertext_hex``. Anything without exactly
one delimiter is read as the legacy base64 fallback encoding.
"""
import base64
import enum
import hashlib
import logging
import os
import warnings
from typing import NamedTuple, Optional, Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from kyc_app.exceptions import CipherDegradedWarning
from kyc_app.utils.hashing import hash_for_lookup

logger = logging.getLogger(__name__)

KeyMaterial = Union[str, bytes]

IV_SIZE = 16
KEY_SIZE = 32
TOKEN_DELIMITER = ":"


class CipherScheme(str, enum.Enum):
    AES_256_CBC = "aes-256-cbc-v1"
    BASE64_FALLBACK = "base64-fallback-v1"


class EncryptedField(NamedTuple):
    """Ciphertext token tagged with the scheme that produced it."""
    token: str
    scheme: CipherScheme

    @property
    def degraded(self) -> bool:
        return self.scheme is CipherScheme.BASE64_FALLBACK


def derive_key(key: KeyMaterial) -> bytes:
    """A str key is hashed into 32 bytes; a bytes key must already be 32 bytes."""
    if isinstance(key, str):
        return hashlib.sha256(key.encode("utf-8")).digest()
    raw = bytes(key)
    if len(raw) != KEY_SIZE:
        raise ValueError(f"AES-256 key must be {KEY_SIZE} bytes, got {len(raw)}")
    return raw


def encrypt(plaintext: str, key: KeyMaterial) -> EncryptedField:
    """Encrypt one value under a fresh random IV.

    Never raises on cipher failure: the value is stored base64-encoded instead
    and the result is tagged ``BASE64_FALLBACK``.
    """
    if not isinstance(plaintext, str):
        raise TypeError("plaintext must be a string")

    try:
        iv = os.urandom(IV_SIZE)
        encryptor = Cipher(algorithms.AES(derive_key(key)), modes.CBC(iv)).encryptor()
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
    except Exception as exc:
        logger.error("Field encryption failed, storing base64 fallback: %s", exc)
        warnings.warn(
            f"field stored under {CipherScheme.BASE64_FALLBACK.value}: {exc}",
            CipherDegradedWarning,
            stacklevel=2,
        )
        fallback = base64.b64encode(plaintext.encode("utf-8")).decode("ascii")
        return EncryptedField(fallback, CipherScheme.BASE64_FALLBACK)

    return EncryptedField(f"{iv.hex()}{TOKEN_DELIMITER}{ciphertext.hex()}", CipherScheme.AES_256_CBC)


def decrypt(token: Optional[str], key: KeyMaterial) -> Optional[str]:
    """Recover the plaintext of a token, or None if it cannot be read."""
    if not token or not isinstance(token, str):
        return None

    parts = token.split(TOKEN_DELIMITER)
    try:
        if len(parts) != 2:
            return base64.b64decode(token, validate=True).decode("utf-8")

        iv, ciphertext = bytes.fromhex(parts[0]), bytes.fromhex(parts[1])
        decryptor = Cipher(algorithms.AES(derive_key(key)), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
    except Exception as exc:
        logger.warning("Field decryption failed: %s", exc)
        return None


class FieldCipher:
    """Binds the configured key so callers don't pass it around."""

    def __init__(self, key: KeyMaterial):
        self._key = key

    def encrypt(self, plaintext: str) -> EncryptedField:
        return encrypt(plaintext, self._key)

    def decrypt(self, token: Optional[str]) -> Optional[str]:
        return decrypt(token, self._key)

    @staticmethod
    def hash_for_lookup(plaintext: str) -> str:
        return hash_for_lookup(plaintext)


__all__ = [
    "CipherScheme", "EncryptedField", "FieldCipher",
    "encrypt", "decrypt", "derive_key", "hash_for_lookup",
]
