"""
Pull: sheet -> store.

Reads every data row, classifies and validates it, decodes it to a record
and then creates or updates store records in two batches. Row problems
are collected per row; only failures to read the sheet or talk to the
store escape as exceptions (handled by the sync service).

New tokens are written back to their rows BEFORE the store create is
issued. A crash between the two leaves a token in the sheet with no
record, which the next pull simply creates; the reverse order would leave
a record the sheet cannot find.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Sequence

from sheetsync.application.sync.classifier import classify, require_valid_date
from sheetsync.application.sync.codec import decode, is_empty
from sheetsync.application.sync.identity import IdentityTracker, generate_token
from sheetsync.domain.errors import StoreError, ValidationError
from sheetsync.domain.models import (
    ColumnMap,
    EventRecord,
    PlannedAction,
    PreviewEntry,
    SyncDirection,
    SyncIssue,
    SyncSummary,
)
from sheetsync.domain.state_machine import RowState, RowTracker

if TYPE_CHECKING:
    from sheetsync.application.sync.protocols import PullStore, SourceTransport
    from sheetsync.application.sync.schema_mapper import SchemaMapper
    from sheetsync.domain.config import SourceConfig

logger = logging.getLogger(__name__)


def is_blank_row(cells: Sequence[Any]) -> bool:
    return all(is_empty(value) for value in cells)


class PullOperation:
    """
    One pull run for one source.

    Usage:
        summary = PullOperation(source, transport, store, mapper).execute()

    Raises (from execute):
        SourceReadError: Header or data rows could not be read
        SchemaError: Header is unusable (e.g. duplicate columns)
        StoreError: Existing tokens could not be resolved
    """

    def __init__(
        self,
        source: "SourceConfig",
        transport: "SourceTransport",
        store: "PullStore",
        mapper: "SchemaMapper",
        dry_run: bool = False,
    ) -> None:
        self.source = source
        self.transport = transport
        self.store = store
        self.mapper = mapper
        self.dry_run = dry_run
        self.tracker = RowTracker()
        self.summary = SyncSummary(direction=SyncDirection.PULL, dry_run=dry_run)
        if dry_run:
            self.summary.preview = []

    def execute(self) -> SyncSummary:
        header = self.transport.read_header(self.source.header_row)
        column_map = self.mapper.generate(header)
        rows = self.transport.read_rows(self.source.data_start_row)

        candidates = self._decode_rows(rows, column_map)
        if not candidates:
            logger.info("Pull %s: no rows to sync", self.source.id)
            return self.summary

        identity = IdentityTracker(
            self.transport,
            self.store,
            column_index=column_map.token_column_index,
            data_start_row=self.source.data_start_row,
        )
        existing = identity.resolve_batch(
            (r.identity_token for r in candidates if r.identity_token),
            source_id=self.source.id,
        )

        creates: list[EventRecord] = []
        updates: list[EventRecord] = []
        for record in candidates:
            owner = identity.foreign_tokens.get(record.identity_token or "")
            if owner is not None:
                self._reject(
                    record.row_number,
                    f"Token {record.identity_token} belongs to source '{owner}'",
                )
                continue
            progress = self.tracker.get(record.row_number)
            if record.identity_token and record.identity_token in existing:
                record.store_id = existing[record.identity_token]
                progress.advance(RowState.UPDATED)
                updates.append(record)
            else:
                progress.advance(RowState.CREATED)
                creates.append(record)

        if self.dry_run:
            self._preview(creates, updates)
        else:
            self._write_back_tokens(creates, identity)
            self._create(creates)
            self._update(updates)

        logger.info(
            "Pull %s%s: %d rows, %d created, %d updated, %d errors",
            self.source.id,
            " (dry run)" if self.dry_run else "",
            self.summary.total,
            self.summary.created,
            self.summary.updated,
            len(self.summary.errors),
        )
        return self.summary

    # ------------------------------------------------------------------

    def _reject(self, row_number: int, message: str) -> None:
        self.tracker.get(row_number).fail(message)
        self.summary.errors.append(SyncIssue(row=row_number, message=message))
        logger.debug("Row %d rejected: %s", row_number, message)

    def _decode_rows(
        self, rows: Sequence[tuple[int, Sequence[Any]]], column_map: ColumnMap
    ) -> list[EventRecord]:
        candidates: list[EventRecord] = []
        seen_tokens: dict[str, int] = {}

        for row_number, cells in rows:
            if is_blank_row(cells):
                continue
            self.summary.total += 1
            progress = self.tracker.start(row_number)

            try:
                classification = classify(cells, column_map)
                progress.advance(RowState.CLASSIFIED)
                require_valid_date(cells, column_map)
                record = decode(cells, column_map, classification)
            except ValidationError as e:
                self._reject(row_number, str(e))
                continue

            token = record.identity_token
            if token and token in seen_tokens:
                self._reject(
                    row_number,
                    f"Duplicate token {token} (already used on row {seen_tokens[token]})",
                )
                continue
            if token:
                seen_tokens[token] = row_number

            record.row_number = row_number
            for warning in record.warnings:
                self.summary.warnings.append(SyncIssue(row=row_number, message=warning))
            candidates.append(record)

        return candidates

    def _preview(self, creates: list[EventRecord], updates: list[EventRecord]) -> None:
        for record in creates:
            self.summary.preview.append(
                PreviewEntry(
                    action=PlannedAction.CREATE,
                    name=record.name,
                    row=record.row_number,
                    identity_token=record.identity_token,
                )
            )
        for record in updates:
            self.summary.preview.append(
                PreviewEntry(
                    action=PlannedAction.UPDATE,
                    name=record.name,
                    row=record.row_number,
                    record_id=record.store_id,
                    identity_token=record.identity_token,
                )
            )
        self.summary.created = len(creates)
        self.summary.updated = len(updates)

    def _write_back_tokens(self, creates: list[EventRecord], identity: IdentityTracker) -> None:
        for record in creates:
            if record.identity_token:
                continue
            record.identity_token = generate_token()
            if not identity.write_back(record.row_number, record.identity_token):
                self.summary.warnings.append(
                    SyncIssue(
                        row=record.row_number,
                        message="Token could not be written to the sheet; the next pull may duplicate this event",
                    )
                )

    def _create(self, creates: list[EventRecord]) -> None:
        if not creates:
            return
        now = datetime.now(timezone.utc)
        for record in creates:
            record.synced_at = now
        try:
            ids = self.store.create_many(self.source.id, creates)
        except StoreError as e:
            # One bad row rolls back the batch; retry alone so only it errors
            logger.warning("Batch create failed for %s, retrying row by row: %s", self.source.id, e)
            for record in creates:
                self._create_one(record)
            return

        for record, store_id in zip(creates, ids):
            record.store_id = store_id
            self.tracker.get(record.row_number).complete()
        self.summary.created += len(creates)

    def _create_one(self, record: EventRecord) -> None:
        try:
            (store_id,) = self.store.create_many(self.source.id, [record])
        except StoreError as e:
            self._reject(record.row_number, f"Create failed: {e}")
            return
        record.store_id = store_id
        self.tracker.get(record.row_number).complete()
        self.summary.created += 1

    def _update(self, updates: list[EventRecord]) -> None:
        if not updates:
            return
        now = datetime.now(timezone.utc)
        for record in updates:
            record.synced_at = now
        try:
            self.store.update_many(updates)
        except StoreError as e:
            logger.warning("Batch update failed for %s, retrying row by row: %s", self.source.id, e)
            for record in updates:
                self._update_one(record)
            return

        for record in updates:
            self.tracker.get(record.row_number).complete()
        self.summary.updated += len(updates)

    def _update_one(self, record: EventRecord) -> None:
        try:
            self.store.update_many([record])
        except StoreError as e:
            self._reject(record.row_number, f"Update failed: {e}")
            return
        self.tracker.get(record.row_number).complete()
        self.summary.updated += 1
