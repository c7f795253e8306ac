"""AES-256-GCM encryption for PMS credentials stored at rest."""

import os
from functools import lru_cache

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.config import settings

NONCE_SIZE = 12


class EncryptionService:
    """Encrypts broker PMS API keys before they hit the database."""

    def __init__(self, key: bytes) -> None:
        if len(key) != 32:
            raise ValueError("Encryption key must be 32 bytes for AES-256")
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: str) -> bytes:
        """Return nonce + ciphertext."""
        nonce = os.urandom(NONCE_SIZE)
        return nonce + self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)

    def decrypt(self, ciphertext: bytes) -> str:
        if len(ciphertext) < NONCE_SIZE:
            raise ValueError("Ciphertext too short")
        nonce, data = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
        return self._aesgcm.decrypt(nonce, data, None).decode("utf-8")


@lru_cache
def get_encryption_service() -> EncryptionService:
    """Get cached encryption service instance."""
    # Pad / truncate the configured secret to 32 bytes
    key = settings.encryption_key.encode("utf-8")
    if len(key) < 32:
        key = key.ljust(32, b"\0")
    elif len(key) > 32:
        key = key[:32]
    return EncryptionService(key)


def encrypt_api_key(api_key: str) -> bytes:
    return get_encryption_service().encrypt(api_key)


def decrypt_api_key(ciphertext: bytes) -> str:
    return get_encryption_service().decrypt(ciphertext)
