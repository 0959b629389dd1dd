"""
Settings dependency shared by the routers and the client factories.
"""

from meli_auth.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """Return the settings cached by :func:`get_settings`."""
    return get_settings()


__all__ = ["get_app_settings"]
