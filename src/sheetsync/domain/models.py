"""
Domain models for SheetSync.

This module contains the core entities that flow through a sync:
- Column maps derived from a live header row
- Event records decoded from sheet rows or read from the store
- Sync summaries returned to callers
- Source sync state persisted alongside the source configuration

These models are pure data structures with no I/O dependencies.
They can be serialized to/from SQLite via the infrastructure layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from openpyxl.utils import get_column_letter

from sheetsync.domain.fields import FieldDefinition


# ============================================================================
# Enumerations
# ============================================================================


class EventKind(str, Enum):
    """Semantic kind of an event, derived from its descriptor cells."""

    TWO_PARTY = "two-party"
    SINGLE_PARTY = "single-party"
    STANDALONE = "standalone"


class RecordOrigin(str, Enum):
    """Which side a record was last authored on."""

    SOURCE = "source"
    STORE = "store"


class SyncDirection(str, Enum):
    PULL = "pull"
    PUSH = "push"


class SyncOutcome(str, Enum):
    """Value of last_sync_status on a source."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    ERROR = "error"


class PlannedAction(str, Enum):
    """Decision recorded for a row/record in a preview."""

    CREATE = "create"
    UPDATE = "update"
    APPEND = "append"
    APPEND_ORPHAN = "append_orphan"
    SKIP = "skip"


# ============================================================================
# Schema
# ============================================================================


@dataclass
class ColumnMap:
    """
    Live mapping of 0-based column index to field definition.

    Built from the header row on every sync, never persisted.

    Attributes:
        columns: Column index -> field definition
        headers: Raw header text per column index (mapped columns only)
        unknown_headers: (column index, header text) pairs that matched nothing
        token_column_index: Column holding identity tokens
    """

    columns: dict[int, FieldDefinition] = field(default_factory=dict)
    headers: dict[int, str] = field(default_factory=dict)
    unknown_headers: list[tuple[int, str]] = field(default_factory=list)
    token_column_index: int = 0

    def __len__(self) -> int:
        return len(self.columns)

    def __contains__(self, canonical_name: object) -> bool:
        return self.index_of(str(canonical_name)) is not None

    def items(self):
        return sorted(self.columns.items())

    @property
    def width(self) -> int:
        """Number of cells an encoded row needs to cover every mapped column."""
        indexes = list(self.columns) + [self.token_column_index]
        return max(indexes) + 1 if indexes else 0

    @property
    def field_names(self) -> set[str]:
        return {f.canonical_name for f in self.columns.values()}

    def index_of(self, canonical_name: str) -> int | None:
        for index, field_def in self.columns.items():
            if field_def.canonical_name == canonical_name:
                return index
        return None

    def letter_of(self, canonical_name: str) -> str | None:
        """Column letter for a field, e.g. "C". None if unmapped."""
        index = self.index_of(canonical_name)
        return get_column_letter(index + 1) if index is not None else None

    def cell(self, row: list[Any], canonical_name: str) -> Any:
        """Cell value of a field in a raw row, None if unmapped or short row."""
        index = self.index_of(canonical_name)
        if index is None or index >= len(row):
            return None
        return row[index]


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of classifying a row's identifying cells."""

    kind: EventKind
    name: str
    descriptor1: str | None = None
    descriptor2: str | None = None
    title: str | None = None


# ============================================================================
# Records
# ============================================================================


@dataclass
class EventRecord:
    """
    Semantic unit correlated between one sheet row and one store record.

    Fields left as None were not present (or blank) in the source and must
    not overwrite store values.
    """

    name: str = ""
    date: str | None = None
    kind: EventKind = EventKind.STANDALONE
    identity_token: str | None = None
    descriptor1: str | None = None
    descriptor2: str | None = None
    title: str | None = None
    attributes: dict[str, float | int | str] = field(default_factory=dict)
    notes: str | None = None
    source_modified_at: str | None = None
    synced_at: datetime | None = None
    source_of: RecordOrigin = RecordOrigin.SOURCE
    store_id: int | None = None
    source_id: str | None = None
    row_number: int | None = None
    warnings: list[str] = field(default_factory=list)


# ============================================================================
# Sync Results
# ============================================================================


@dataclass(frozen=True, slots=True)
class SyncIssue:
    """A row-scoped (pull) or record-scoped (push) error or warning."""

    message: str
    row: int | None = None
    record_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.record_id is not None:
            return {"recordId": self.record_id, "message": self.message}
        return {"row": self.row, "message": self.message}


@dataclass(frozen=True, slots=True)
class PreviewEntry:
    """Intended change computed by a dry run."""

    action: PlannedAction
    name: str
    row: int | None = None
    record_id: int | None = None
    identity_token: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"action": self.action.value, "name": self.name}
        if self.row is not None:
            data["row"] = self.row
        if self.record_id is not None:
            data["recordId"] = self.record_id
        if self.identity_token:
            data["uuid"] = self.identity_token
        return data


@dataclass
class SyncSummary:
    """Outcome of one pull or push run."""

    direction: SyncDirection
    success: bool = True
    total: int = 0
    created: int = 0
    updated: int = 0
    errors: list[SyncIssue] = field(default_factory=list)
    warnings: list[SyncIssue] = field(default_factory=list)
    preview: list[PreviewEntry] | None = None
    orphans_appended: int = 0
    dry_run: bool = False

    @property
    def outcome(self) -> SyncOutcome:
        if not self.success:
            return SyncOutcome.ERROR
        if self.errors:
            return SyncOutcome.PARTIAL_SUCCESS
        return SyncOutcome.SUCCESS

    @classmethod
    def failed(
        cls, direction: SyncDirection, message: str, dry_run: bool = False
    ) -> "SyncSummary":
        """Summary for a top-level failure: one synthetic error, nothing done."""
        summary = cls(direction=direction, success=False, dry_run=dry_run)
        summary.errors.append(SyncIssue(message=message))
        return summary

    def to_dict(self) -> dict[str, Any]:
        """Public result shape."""
        total_key = "totalRows" if self.direction is SyncDirection.PULL else "totalRecords"
        data: dict[str, Any] = {
            "success": self.success,
            total_key: self.total,
            "created": self.created,
            "updated": self.updated,
            "errors": [issue.to_dict() for issue in self.errors],
        }
        if self.preview is not None:
            data["preview"] = [entry.to_dict() for entry in self.preview]
        return data


@dataclass
class SyncStats:
    """Aggregate written to the source exactly once at the end of a run."""

    direction: SyncDirection
    outcome: SyncOutcome
    created: int = 0
    updated: int = 0
    error_message: str | None = None
    finished_at: datetime | None = None


# ============================================================================
# Source State
# ============================================================================


@dataclass
class SourceState:
    """Persisted sync state of one configured source."""

    source_id: str
    last_sync_at: datetime | None = None
    last_sync_status: SyncOutcome | None = None
    last_sync_error: str | None = None
    last_pull_at: datetime | None = None
    last_push_at: datetime | None = None
    pull_count: int = 0
    push_count: int = 0
    last_created: int = 0
    last_updated: int = 0
    total_events: int = 0
    sync_in_progress: bool = False
    lock_acquired_at: datetime | None = None


@dataclass
class ColumnDescription:
    """One line of the mapping view."""

    letter: str
    header: str
    canonical_name: str
    path: str
    type: str
    flags: list[str] = field(default_factory=list)


@dataclass
class SourceStatus:
    """Configuration, sync state and (optionally) live sheet health."""

    source_id: str
    name: str
    enabled: bool
    sync_mode: str
    state: SourceState
    checked_source: bool = False
    mapping: list[ColumnDescription] = field(default_factory=list)
    unknown_headers: list[str] = field(default_factory=list)
    data_rows: int = 0
    token_issues: dict[str, list[int]] = field(default_factory=dict)
    source_error: str | None = None
