"""
Exception hierarchy for SheetSync.

Row-level problems raise ValidationError and are collected per row.
Everything under SourceError/StoreError is an infrastructure failure that
the sync service reports as a top-level error instead of raising.
"""

from __future__ import annotations


class SheetSyncError(Exception):
    """Base class for all SheetSync errors."""


class ValidationError(SheetSyncError):
    """A single row or record failed validation."""


class SchemaError(SheetSyncError):
    """The header row cannot be mapped."""


class DuplicateHeaderError(SchemaError):
    """Two columns resolve to the same field."""

    def __init__(self, canonical_name: str, columns: list[str]):
        self.canonical_name = canonical_name
        self.columns = columns
        super().__init__(
            f"Duplicate header for field '{canonical_name}' in columns {', '.join(columns)}"
        )


class SourceError(SheetSyncError):
    """The sheet could not be accessed."""


class SourceReadError(SourceError):
    pass


class SourceWriteError(SourceError):
    pass


class StoreError(SheetSyncError):
    """The record store failed."""


class SyncInProgressError(SheetSyncError):
    """Another sync holds the lock for this source."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"Sync already in progress for source '{source_id}'")


class ConfigError(SheetSyncError):
    """Configuration is missing or invalid."""
