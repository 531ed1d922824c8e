"""Configuration helpers for API and persistence settings."""

from .environment import Settings, load_settings

__all__ = [
    "Settings",
    "load_settings",
]
