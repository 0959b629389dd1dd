"""Symmetric encryption of tokens held at rest."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from meli_auth.models.token import TokenRecord


class TokenCipherService:
    """Encrypt and decrypt the secret fields of a :class:`TokenRecord`."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; it was written with a different secret "
                "or is not ciphertext."
            ) from exc
        return plaintext.decode("utf-8")

    def seal(self, record: TokenRecord) -> TokenRecord:
        """Return a copy of ``record`` whose tokens are ciphertext."""
        if record.encrypted:
            return record
        return record.model_copy(
            update={
                "access_token": self.encrypt(record.access_token),
                "refresh_token": self.encrypt(record.refresh_token),
                "encrypted": True,
            }
        )

    def open(self, record: TokenRecord) -> TokenRecord:
        """Return a plaintext copy of a sealed ``record``."""
        if not record.encrypted:
            return record
        return record.model_copy(
            update={
                "access_token": self.decrypt(record.access_token),
                "refresh_token": self.decrypt(record.refresh_token),
                "encrypted": False,
            }
        )


__all__ = ["TokenCipherService"]
