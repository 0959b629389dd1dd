"""Request and response schemas."""

from .auth import OAuthCallbackPayload, TokenStatusResponse

__all__ = ["OAuthCallbackPayload", "TokenStatusResponse"]
