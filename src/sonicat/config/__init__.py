"""Configuration module for Sonicat."""

from .settings import (
    DatabaseSettings,
    LibrarySettings,
    ObservabilitySettings,
    Settings,
    SweepSettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "LibrarySettings",
    "ObservabilitySettings",
    "Settings",
    "SweepSettings",
    "get_settings",
]
