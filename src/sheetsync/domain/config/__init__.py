"""
Configuration domain models.

Pydantic models for engine settings and sheet sources.
"""

from .settings import DuplicateHeaderPolicy, SyncSettings
from .source import SourceConfig, SyncMode

__all__ = [
    "DuplicateHeaderPolicy",
    "SourceConfig",
    "SyncMode",
    "SyncSettings",
]
