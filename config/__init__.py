"""Convenient access to application settings and constants."""

from .settings import OdbcConstants, Settings, get_settings, save_settings, settings

__all__ = [
    "settings",
    "Settings",
    "get_settings",
    "save_settings",
    "OdbcConstants",
]
