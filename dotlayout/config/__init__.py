"""Configuration for layout tunables."""

from dotlayout.config.settings import LayoutSettings, get_settings, reset_settings

__all__ = [
    "LayoutSettings",
    "get_settings",
    "reset_settings",
]
