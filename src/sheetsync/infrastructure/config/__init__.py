"""
Configuration persistence.
"""

from .manager import SettingsManager
from .repository import ConfigRepository

__all__ = ["ConfigRepository", "SettingsManager"]
