"""Configuration Module"""

from handoff_core.config.settings import HandoffSettings, load_settings

__all__ = [
    "HandoffSettings",
    "load_settings",
]
