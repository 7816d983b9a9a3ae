"""Symmetric encryption utilities for protecting stored tokens."""

from __future__ import annotations

import base64
import hashlib
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken

_SEALED_FIELDS = ("accessToken", "refreshToken")


class TokenCipherService:
    """Encrypt and decrypt credential fields of a persisted token record."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest)
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the ciphertext."""
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return token.decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a ciphertext string and return the plaintext."""
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")

    def seal(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of a storage payload with its credentials encrypted."""
        sealed = dict(payload)
        for field in _SEALED_FIELDS:
            if sealed.get(field):
                sealed[field] = self.encrypt(sealed[field])
        return sealed

    def unseal(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Reverse :meth:`seal`. Raises ``ValueError`` on foreign ciphertext."""
        unsealed = dict(payload)
        for field in _SEALED_FIELDS:
            if unsealed.get(field):
                unsealed[field] = self.decrypt(unsealed[field])
        return unsealed


__all__ = ["TokenCipherService"]
