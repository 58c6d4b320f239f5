"""
Sync Service - drives pull and push for one source.

This is the error boundary of the engine: every public method returns a
SyncSummary (or status object) and never raises for sheet, store or schema
failures. It also owns the two cross-cutting rules of a run:

    - advisory lock: one non-dry-run sync per source at a time
    - exactly one record_sync_stats (or record_sync_error) call per run
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Sequence

from sheetsync.application.sync.classifier import classify, require_valid_date
from sheetsync.application.sync.codec import decode
from sheetsync.application.sync.identity import IdentityTracker
from sheetsync.application.sync.pull import PullOperation, is_blank_row
from sheetsync.application.sync.push import PushOperation
from sheetsync.application.sync.schema_mapper import SchemaMapper
from sheetsync.domain.config import SyncSettings
from sheetsync.domain.errors import (
    SchemaError,
    SheetSyncError,
    StoreError,
    SyncInProgressError,
    ValidationError,
)
from sheetsync.domain.fields import default_headers
from sheetsync.domain.models import (
    SourceState,
    SourceStatus,
    SyncDirection,
    SyncIssue,
    SyncStats,
    SyncSummary,
)

if TYPE_CHECKING:
    from sheetsync.application.sync.protocols import SourceTransport, SyncStore
    from sheetsync.domain.config import SourceConfig

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """
    Pull, push and inspect one configured source.

    Usage:
        orchestrator = SyncOrchestrator(source, transport, store, settings)
        summary = orchestrator.pull(dry_run=True)
        print(summary.to_dict())
    """

    def __init__(
        self,
        source: "SourceConfig",
        transport: "SourceTransport",
        store: "SyncStore",
        settings: SyncSettings | None = None,
    ) -> None:
        self.source = source
        self.transport = transport
        self.store = store
        self.settings = settings or SyncSettings()

    def _mapper(self) -> SchemaMapper:
        # Built per run; the column map itself is never cached.
        return SchemaMapper(
            duplicate_policy=self.settings.duplicate_headers,
            token_column=self.source.token_column,
        )

    # ========================================================================
    # Public Operations
    # ========================================================================

    def pull(self, dry_run: bool = False) -> SyncSummary:
        """Import sheet rows into the store."""
        return self._run(
            SyncDirection.PULL,
            dry_run,
            lambda: PullOperation(
                self.source, self.transport, self.store, self._mapper(), dry_run
            ).execute(),
        )

    def push(
        self, dry_run: bool = False, record_ids: Sequence[int] | None = None
    ) -> SyncSummary:
        """Export store records to the sheet (all, or only record_ids)."""
        return self._run(
            SyncDirection.PUSH,
            dry_run,
            lambda: PushOperation(
                self.source,
                self.transport,
                self.store,
                self._mapper(),
                dry_run,
                record_ids,
            ).execute(),
        )

    def pull_record(self, record_id: int) -> SyncSummary:
        """Refresh a single event from its sheet row."""
        return self._run(
            SyncDirection.PULL, False, lambda: self._pull_single(record_id)
        )

    def status(self, check_source: bool = True) -> SourceStatus:
        """
        Source configuration and sync state, plus live sheet health.

        Sheet problems are reported in source_error, never raised.
        """
        state = self.store.get_source_state(self.source.id) or SourceState(
            source_id=self.source.id
        )
        status = SourceStatus(
            source_id=self.source.id,
            name=self.source.display_name,
            enabled=self.source.enabled,
            sync_mode=self.source.sync_mode.value,
            state=state,
        )
        if not check_source:
            return status

        status.checked_source = True
        try:
            column_map = self._mapper().generate(
                self.transport.read_header(self.source.header_row)
            )
            rows = [
                (n, cells)
                for n, cells in self.transport.read_rows(self.source.data_start_row)
                if not is_blank_row(cells)
            ]
        except SheetSyncError as e:
            logger.warning("Status check of %s failed: %s", self.source.id, e)
            status.source_error = str(e)
            return status

        identity = IdentityTracker(
            self.transport, column_index=column_map.token_column_index
        )
        status.mapping = SchemaMapper.describe(column_map)
        status.unknown_headers = [h for _, h in column_map.unknown_headers]
        status.data_rows = len(rows)
        status.token_issues = identity.detect_token_issues(rows)
        return status

    def setup_sheet(self, force: bool = False) -> list[str]:
        """
        Write the default header row to the sheet.

        Raises:
            SchemaError: The sheet already has a header and force is False
        """
        row = self.source.header_row
        existing = [h for h in self.transport.read_header(row) if h]
        if existing and not force:
            raise SchemaError(
                f"Sheet already has {len(existing)} header cells in row {row}; use force to overwrite"
            )
        if existing:
            self.transport.clear_range(row, row)

        headers = default_headers()
        self.transport.write_row(row, headers)
        self.transport.format_header(row, self.settings.protect_token_column)
        logger.info("Wrote %d headers to %s row %d", len(headers), self.source.id, row)
        return headers

    # ========================================================================
    # Run Boundary
    # ========================================================================

    def _run(
        self,
        direction: SyncDirection,
        dry_run: bool,
        operation: Callable[[], SyncSummary],
    ) -> SyncSummary:
        if not dry_run:
            try:
                acquired = self.store.acquire_sync_lock(
                    self.source.id, self.settings.lock_timeout_seconds
                )
            except StoreError as e:
                logger.error("Could not acquire sync lock for %s: %s", self.source.id, e)
                return SyncSummary.failed(direction, f"Could not acquire sync lock: {e}")
            if not acquired:
                error = SyncInProgressError(self.source.id)
                logger.warning("%s", error)
                return SyncSummary.failed(direction, str(error))

        try:
            summary = operation()
        except SheetSyncError as e:
            logger.error("%s of %s failed: %s", direction.value.capitalize(), self.source.id, e)
            summary = SyncSummary.failed(direction, str(e), dry_run)
            if not dry_run:
                self._record_error(str(e))
        except Exception as e:
            logger.exception("Unexpected error during %s of %s", direction.value, self.source.id)
            summary = SyncSummary.failed(direction, f"Unexpected error: {e}", dry_run)
            if not dry_run:
                self._record_error(str(e))
        else:
            if not dry_run:
                self._record_stats(summary)
        finally:
            if not dry_run:
                self._release_lock()

        return summary

    def _record_stats(self, summary: SyncSummary) -> None:
        stats = SyncStats(
            direction=summary.direction,
            outcome=summary.outcome,
            created=summary.created,
            updated=summary.updated,
            error_message=summary.errors[0].message if summary.errors else None,
            finished_at=datetime.now(timezone.utc),
        )
        try:
            self.store.record_sync_stats(self.source.id, stats)
        except StoreError as e:
            logger.error("Could not record sync stats for %s: %s", self.source.id, e)
            summary.warnings.append(SyncIssue(message=f"Sync stats not saved: {e}"))

    def _record_error(self, message: str) -> None:
        try:
            self.store.record_sync_error(self.source.id, message)
        except StoreError as e:
            logger.error("Could not record sync error for %s: %s", self.source.id, e)

    def _release_lock(self) -> None:
        try:
            self.store.release_sync_lock(self.source.id)
        except StoreError as e:
            logger.error("Could not release sync lock for %s: %s", self.source.id, e)

    # ========================================================================
    # Single Event Pull
    # ========================================================================

    def _pull_single(self, record_id: int) -> SyncSummary:
        summary = SyncSummary(direction=SyncDirection.PULL, total=1)

        def reject(message: str) -> SyncSummary:
            summary.success = False
            summary.errors.append(SyncIssue(record_id=record_id, message=message))
            return summary

        column_map = self._mapper().generate(
            self.transport.read_header(self.source.header_row)
        )
        records = self.store.list_records(self.source.id, [record_id])
        if not records:
            return reject("Event not found for this source")
        current = records[0]
        if not current.identity_token:
            return reject("Event has no sync token; push it first")

        identity = IdentityTracker(
            self.transport, column_index=column_map.token_column_index
        )
        row_number = identity.locate_row(current.identity_token)
        if row_number is None:
            return reject(f"Token {current.identity_token} not found in sheet")

        rows = self.transport.read_rows(row_number, row_number)
        cells = rows[0][1] if rows else []
        try:
            classification = classify(cells, column_map)
            require_valid_date(cells, column_map)
            record = decode(cells, column_map, classification)
        except ValidationError as e:
            summary.success = False
            summary.errors.append(SyncIssue(row=row_number, message=str(e)))
            return summary

        record.store_id = current.store_id
        record.identity_token = current.identity_token
        record.row_number = row_number
        record.synced_at = datetime.now(timezone.utc)
        self.store.update_many([record])
        summary.updated = 1
        logger.info("Pulled event %d from row %d", record_id, row_number)
        return summary
