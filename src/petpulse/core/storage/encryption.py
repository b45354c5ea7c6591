"""Fernet encryption for free-text journal fields.

Owner notes can carry anything (vet names, medication, addresses), so they
are encrypted before they reach SQLite. Metric amounts stay in the clear
because the anomaly detector sums them.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class FieldEncryptor:
    """Encrypts and decrypts text fields with Fernet symmetric encryption.

    Usage::

        encryptor = FieldEncryptor(key="...")
        token = encryptor.encrypt("ate half, then hid under the bed")
        encryptor.decrypt(token)
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            key: A valid Fernet key string. Generate with
                :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, text: str | None) -> str:
        """Encrypt text to a Fernet token. Empty text maps to an empty token."""
        if not text:
            return ""
        return self._fernet.encrypt(text.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str | None) -> str:
        """Decrypt a Fernet token back to text.

        Raises:
            EncryptionError: If the token is invalid or was made with another key.
        """
        if not token:
            return ""
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64-encoded Fernet key."""
        return Fernet.generate_key().decode("utf-8")
