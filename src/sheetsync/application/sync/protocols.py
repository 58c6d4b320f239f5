"""
Collaborator protocols consumed by the sync engine.

The engine never talks to openpyxl or sqlite3 directly; it only depends on
these interfaces. Row numbers are 1-based sheet rows, column indexes are
0-based positions in a row list.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from sheetsync.domain.models import EventRecord, SourceState, SyncStats


class SourceTransport(Protocol):
    """Range-based access to one worksheet."""

    def read_header(self, row: int) -> list[str]:
        """Header cells as text, blanks as ""."""
        ...

    def read_rows(
        self, start_row: int, end_row: int | None = None
    ) -> list[tuple[int, list[Any]]]:
        """(row number, cells) pairs from start_row to the last used row."""
        ...

    def write_row(self, row_number: int, cells: Sequence[Any]) -> None:
        ...

    def append_rows(self, rows: Sequence[Sequence[Any]]) -> int:
        """Append rows after the last used row. Returns the first row number written."""
        ...

    def next_append_row(self) -> int:
        """Row number the next append_rows call will start at."""
        ...

    def find_row_by_token(self, token: str, column_index: int) -> int | None:
        ...

    def read_column(self, column_index: int, start_row: int) -> list[tuple[int, Any]]:
        ...

    def clear_range(self, start_row: int, end_row: int | None = None) -> None:
        ...

    def format_header(self, row_number: int, protect_token_column: bool) -> None:
        """Apply header styling to a freshly written header row."""
        ...


class PullStore(Protocol):
    """Store operations needed by a pull."""

    def get_by_tokens(self, tokens: Sequence[str]) -> list[EventRecord]:
        ...

    def create_many(self, source_id: str, records: Sequence[EventRecord]) -> list[int]:
        ...

    def update_many(self, records: Sequence[EventRecord]) -> None:
        """Update by store_id, leaving fields that are None untouched."""
        ...

    def record_sync_stats(self, source_id: str, stats: SyncStats) -> None:
        ...

    def record_sync_error(self, source_id: str, message: str) -> None:
        ...


class PushStore(Protocol):
    """Store operations needed by a push."""

    def list_records(
        self, source_id: str, record_ids: Sequence[int] | None = None
    ) -> list[EventRecord]:
        ...

    def tag_with_token(self, record_id: int, token: str) -> None:
        ...

    def record_sync_stats(self, source_id: str, stats: SyncStats) -> None:
        ...

    def record_sync_error(self, source_id: str, message: str) -> None:
        ...


class SyncLock(Protocol):
    """Advisory per-source lock."""

    def acquire_sync_lock(self, source_id: str, timeout_seconds: int) -> bool:
        ...

    def release_sync_lock(self, source_id: str) -> None:
        ...


class SyncStore(PullStore, PushStore, SyncLock, Protocol):
    """Everything the sync service needs from the store."""

    def get_source_state(self, source_id: str) -> SourceState | None:
        ...
