"""
SQLite-based event store.

Provides:
- Event CRUD in the shape the sync engine needs (batch create/update,
  token lookup, token tagging)
- Source configuration and aggregate sync state
- The per-source advisory sync lock

Uses stdlib sqlite3 with no ORM. Every sqlite3.Error is re-raised as
StoreError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Sequence

from sheetsync.domain.config import SourceConfig
from sheetsync.domain.errors import StoreError
from sheetsync.domain.models import (
    EventKind,
    EventRecord,
    RecordOrigin,
    SourceState,
    SyncDirection,
    SyncOutcome,
    SyncStats,
)
from sheetsync.infrastructure.sqlite.schema import initialize_schema

logger = logging.getLogger(__name__)

# SQLite's default host parameter limit is 999
_IN_CHUNK = 500

_EVENT_COLUMNS = (
    "id, source_id, identity_token, name, event_date, kind, descriptor1, "
    "descriptor2, title, attributes, notes, source_modified_at, synced_at, source_of"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class EventStore:
    """
    SQLite-backed storage for events and sync sources.

    Usage:
        store = EventStore(Path("output/sheetsync.db"))
        store.initialize_schema()

        store.upsert_source(SourceConfig(id="main", workbook_path="events.xlsx"))
        ids = store.create_many("main", records)
        store.record_sync_stats("main", stats)
    """

    def __init__(self, db_path: Path | str) -> None:
        """
        Initialize event store.

        Args:
            db_path: Path to SQLite database file (created if not exists)
        """
        self.db_path = Path(db_path)
        self._connection: sqlite3.Connection | None = None
        logger.debug("EventStore initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._connection = sqlite3.connect(self.db_path)
            except (sqlite3.Error, OSError) as e:
                raise StoreError(f"Cannot open database {self.db_path}: {e}") from e
            self._connection.row_factory = sqlite3.Row
            logger.debug("Database connection established")
        return self._connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back and raise StoreError on failure."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    def initialize_schema(self) -> None:
        try:
            initialize_schema(self._get_connection())
        except sqlite3.Error as e:
            raise StoreError(f"Schema initialization failed: {e}") from e

    # ========================================================================
    # Row Mapping
    # ========================================================================

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> EventRecord:
        return EventRecord(
            store_id=row["id"],
            source_id=row["source_id"],
            identity_token=row["identity_token"],
            name=row["name"],
            date=row["event_date"],
            kind=EventKind(row["kind"]),
            descriptor1=row["descriptor1"],
            descriptor2=row["descriptor2"],
            title=row["title"],
            attributes=json.loads(row["attributes"] or "{}"),
            notes=row["notes"],
            source_modified_at=row["source_modified_at"],
            synced_at=_parse(row["synced_at"]),
            source_of=RecordOrigin(row["source_of"]),
        )

    @staticmethod
    def _row_to_source(row: sqlite3.Row) -> SourceConfig:
        return SourceConfig(
            id=row["id"],
            name=row["name"] or "",
            workbook_path=row["workbook_path"],
            sheet_name=row["sheet_name"],
            header_row=row["header_row"],
            data_start_row=row["data_start_row"],
            token_column=row["token_column"],
            enabled=bool(row["enabled"]),
            sync_mode=row["sync_mode"],
        )

    # ========================================================================
    # Event Operations
    # ========================================================================

    def get_by_tokens(self, tokens: Sequence[str]) -> list[EventRecord]:
        """Events carrying any of the given tokens."""
        conn = self._get_connection()
        tokens = list(tokens)
        records: list[EventRecord] = []
        try:
            for start in range(0, len(tokens), _IN_CHUNK):
                chunk = tokens[start:start + _IN_CHUNK]
                placeholders = ", ".join("?" for _ in chunk)
                rows = conn.execute(
                    f"SELECT {_EVENT_COLUMNS} FROM events WHERE identity_token IN ({placeholders})",
                    chunk,
                ).fetchall()
                records.extend(self._row_to_record(row) for row in rows)
        except sqlite3.Error as e:
            raise StoreError(f"Token lookup failed: {e}") from e
        return records

    def create_many(self, source_id: str, records: Sequence[EventRecord]) -> list[int]:
        """
        Insert events in one transaction.

        Returns:
            New ids, in input order
        """
        now = _now()
        ids: list[int] = []
        with self._transaction() as conn:
            for record in records:
                cursor = conn.execute(
                    """
                    INSERT INTO events (
                        source_id, identity_token, name, event_date, kind,
                        descriptor1, descriptor2, title, attributes, notes,
                        source_modified_at, synced_at, source_of, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        source_id,
                        record.identity_token,
                        record.name,
                        record.date,
                        record.kind.value,
                        record.descriptor1,
                        record.descriptor2,
                        record.title,
                        json.dumps(record.attributes),
                        record.notes,
                        record.source_modified_at,
                        _iso(record.synced_at),
                        record.source_of.value,
                        now,
                        now,
                    ),
                )
                ids.append(cursor.lastrowid)
        logger.debug("Created %d events for %s", len(ids), source_id)
        return ids

    def update_many(self, records: Sequence[EventRecord]) -> None:
        """
        Update events by store_id in one transaction.

        Fields that are None keep their stored value, and attributes are
        merged key by key (preserve-on-empty).
        """
        now = _now()
        with self._transaction() as conn:
            for record in records:
                row = conn.execute(
                    "SELECT attributes FROM events WHERE id = ?", (record.store_id,)
                ).fetchone()
                if row is None:
                    raise sqlite3.IntegrityError(f"Event {record.store_id} does not exist")

                attributes = json.loads(row["attributes"] or "{}")
                attributes.update(record.attributes)

                assignments = {
                    "name": record.name or None,
                    "kind": record.kind.value,
                    "event_date": record.date,
                    "descriptor1": record.descriptor1,
                    "descriptor2": record.descriptor2,
                    "title": record.title,
                    "notes": record.notes,
                    "source_modified_at": record.source_modified_at,
                    "synced_at": _iso(record.synced_at),
                }
                columns = {k: v for k, v in assignments.items() if v is not None}
                columns["attributes"] = json.dumps(attributes)
                columns["source_of"] = record.source_of.value
                columns["updated_at"] = now

                set_clause = ", ".join(f"{name} = ?" for name in columns)
                conn.execute(
                    f"UPDATE events SET {set_clause} WHERE id = ?",
                    (*columns.values(), record.store_id),
                )
        logger.debug("Updated %d events", len(records))

    def list_records(
        self, source_id: str, record_ids: Sequence[int] | None = None
    ) -> list[EventRecord]:
        """Events of a source, optionally restricted to record_ids, by id."""
        conn = self._get_connection()
        query = f"SELECT {_EVENT_COLUMNS} FROM events WHERE source_id = ?"
        params: list = [source_id]
        if record_ids is not None:
            if not record_ids:
                return []
            query += f" AND id IN ({', '.join('?' for _ in record_ids)})"
            params.extend(record_ids)
        query += " ORDER BY id"
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Listing events failed: {e}") from e
        return [self._row_to_record(row) for row in rows]

    def get_record(self, record_id: int) -> EventRecord | None:
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE id = ?", (record_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Reading event {record_id} failed: {e}") from e
        return self._row_to_record(row) if row else None

    def tag_with_token(self, record_id: int, token: str) -> None:
        """
        Assign a token to an event.

        Raises:
            StoreError: Event missing, or it already has a different token
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE events SET identity_token = ?, updated_at = ?
                WHERE id = ? AND (identity_token IS NULL OR identity_token = ?)
            """,
                (token, _now(), record_id, token),
            )
            if cursor.rowcount != 1:
                raise sqlite3.IntegrityError(
                    f"Event {record_id} missing or already tagged with another token"
                )

    def count_events(self, source_id: str) -> int:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM events WHERE source_id = ?", (source_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return row["n"]

    # ========================================================================
    # Source Operations
    # ========================================================================

    def upsert_source(self, source: SourceConfig) -> None:
        """Insert or update a source's configuration (sync state untouched)."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO sync_sources (
                    id, name, workbook_path, sheet_name, header_row,
                    data_start_row, token_column, enabled, sync_mode, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    workbook_path = excluded.workbook_path,
                    sheet_name = excluded.sheet_name,
                    header_row = excluded.header_row,
                    data_start_row = excluded.data_start_row,
                    token_column = excluded.token_column,
                    enabled = excluded.enabled,
                    sync_mode = excluded.sync_mode
            """,
                (
                    source.id,
                    source.name,
                    source.workbook_path,
                    source.sheet_name,
                    source.header_row,
                    source.data_start_row,
                    source.token_column,
                    int(source.enabled),
                    source.sync_mode.value,
                    _now(),
                ),
            )
        logger.info("Saved source %s (%s)", source.id, source.workbook_path)

    def get_source(self, source_id: str) -> SourceConfig | None:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM sync_sources WHERE id = ? AND workbook_path IS NOT NULL",
                (source_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return self._row_to_source(row) if row else None

    def list_sources(self) -> list[SourceConfig]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM sync_sources WHERE workbook_path IS NOT NULL ORDER BY id"
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return [self._row_to_source(row) for row in rows]

    def get_source_state(self, source_id: str) -> SourceState | None:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM sync_sources WHERE id = ?", (source_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        if row is None:
            return None
        return SourceState(
            source_id=row["id"],
            last_sync_at=_parse(row["last_sync_at"]),
            last_sync_status=SyncOutcome(row["last_sync_status"]) if row["last_sync_status"] else None,
            last_sync_error=row["last_sync_error"],
            last_pull_at=_parse(row["last_pull_at"]),
            last_push_at=_parse(row["last_push_at"]),
            pull_count=row["pull_count"],
            push_count=row["push_count"],
            last_created=row["last_created"],
            last_updated=row["last_updated"],
            total_events=row["total_events"],
            sync_in_progress=bool(row["sync_in_progress"]),
            lock_acquired_at=_parse(row["lock_acquired_at"]),
        )

    @staticmethod
    def _ensure_source_row(conn: sqlite3.Connection, source_id: str) -> None:
        conn.execute(
            "INSERT OR IGNORE INTO sync_sources (id, created_at) VALUES (?, ?)",
            (source_id, _now()),
        )

    # ========================================================================
    # Sync State
    # ========================================================================

    def record_sync_stats(self, source_id: str, stats: SyncStats) -> None:
        """Persist the aggregate outcome of one run in a single update."""
        finished = _iso(stats.finished_at) or _now()
        direction_column, counter = (
            ("last_pull_at", "pull_count")
            if stats.direction is SyncDirection.PULL
            else ("last_push_at", "push_count")
        )
        error = stats.error_message if stats.outcome is not SyncOutcome.SUCCESS else None

        with self._transaction() as conn:
            self._ensure_source_row(conn, source_id)
            conn.execute(
                f"""
                UPDATE sync_sources SET
                    last_sync_at = ?,
                    last_sync_status = ?,
                    last_sync_error = ?,
                    {direction_column} = ?,
                    {counter} = {counter} + 1,
                    last_created = ?,
                    last_updated = ?,
                    total_events = (SELECT COUNT(*) FROM events WHERE source_id = ?)
                WHERE id = ?
            """,
                (
                    finished,
                    stats.outcome.value,
                    error,
                    finished,
                    stats.created,
                    stats.updated,
                    source_id,
                    source_id,
                ),
            )
        logger.debug(
            "Recorded %s stats for %s: %s (%d created, %d updated)",
            stats.direction.value,
            source_id,
            stats.outcome.value,
            stats.created,
            stats.updated,
        )

    def record_sync_error(self, source_id: str, message: str) -> None:
        with self._transaction() as conn:
            self._ensure_source_row(conn, source_id)
            conn.execute(
                """
                UPDATE sync_sources
                SET last_sync_at = ?, last_sync_status = ?, last_sync_error = ?
                WHERE id = ?
            """,
                (_now(), SyncOutcome.ERROR.value, message, source_id),
            )
        logger.debug("Recorded sync error for %s: %s", source_id, message)

    # ========================================================================
    # Advisory Lock
    # ========================================================================

    def acquire_sync_lock(self, source_id: str, timeout_seconds: int) -> bool:
        """
        Take the sync lock for a source.

        A lock older than timeout_seconds is considered abandoned and taken
        over. The check and the update are one statement, so two processes
        cannot both succeed.
        """
        now = datetime.now(timezone.utc)
        stale_before = (now - timedelta(seconds=timeout_seconds)).isoformat()
        with self._transaction() as conn:
            self._ensure_source_row(conn, source_id)
            cursor = conn.execute(
                """
                UPDATE sync_sources
                SET sync_in_progress = 1, lock_acquired_at = ?
                WHERE id = ?
                  AND (sync_in_progress = 0
                       OR lock_acquired_at IS NULL
                       OR lock_acquired_at < ?)
            """,
                (now.isoformat(), source_id, stale_before),
            )
            acquired = cursor.rowcount == 1
        if acquired:
            logger.debug("Sync lock acquired for %s", source_id)
        return acquired

    def release_sync_lock(self, source_id: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE sync_sources SET sync_in_progress = 0, lock_acquired_at = NULL WHERE id = ?",
                (source_id,),
            )
        logger.debug("Sync lock released for %s", source_id)
