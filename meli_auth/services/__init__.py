"""Service layer exports."""

from .auth_service import MercadoLibreAuthService
from .token_cipher import TokenCipherService
from .token_store import NoTokenModelConfiguredError, TokenStore
from .user_reader import UserReader

__all__ = [
    "MercadoLibreAuthService",
    "NoTokenModelConfiguredError",
    "TokenCipherService",
    "TokenStore",
    "UserReader",
]
