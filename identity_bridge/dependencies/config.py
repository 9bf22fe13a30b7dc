"""
FastAPI dependency exposing the process-wide settings object.
"""

from fastapi import Depends

from identity_bridge.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """Return the settings cached by ``get_settings``; override in tests."""
    return get_settings()


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings"]
