"""
Push: store -> sheet.

Every record is encoded against the live column map, then:
    - records without a token are appended in one batch and tagged with
      the token they were given
    - records whose token is found are rewritten in place, one row per call
    - records whose token is NOT found (orphans) are appended again in one
      extra batch; this duplicates rather than drops, and is reported as a
      warning
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

from sheetsync.application.sync.codec import encode, rewrite_row_references
from sheetsync.application.sync.identity import IdentityTracker
from sheetsync.domain.errors import SourceWriteError, StoreError
from sheetsync.domain.models import (
    EventRecord,
    PlannedAction,
    PreviewEntry,
    SyncDirection,
    SyncIssue,
    SyncSummary,
)
from sheetsync.domain.state_machine import RowState, RowTracker

if TYPE_CHECKING:
    from sheetsync.application.sync.protocols import PushStore, SourceTransport
    from sheetsync.application.sync.schema_mapper import SchemaMapper
    from sheetsync.domain.config import SourceConfig

logger = logging.getLogger(__name__)

Encoded = tuple[EventRecord, list[Any]]


class PushOperation:
    """
    One push run for one source.

    Usage:
        summary = PushOperation(source, transport, store, mapper).execute()

    Raises (from execute):
        SourceReadError: Header or token column could not be read
        SchemaError: Header is unusable
        StoreError: Records could not be listed
    """

    def __init__(
        self,
        source: "SourceConfig",
        transport: "SourceTransport",
        store: "PushStore",
        mapper: "SchemaMapper",
        dry_run: bool = False,
        record_ids: Sequence[int] | None = None,
    ) -> None:
        self.source = source
        self.transport = transport
        self.store = store
        self.mapper = mapper
        self.dry_run = dry_run
        self.record_ids = list(record_ids) if record_ids is not None else None
        self.tracker = RowTracker()
        self.summary = SyncSummary(direction=SyncDirection.PUSH, dry_run=dry_run)
        if dry_run:
            self.summary.preview = []

    def execute(self) -> SyncSummary:
        header = self.transport.read_header(self.source.header_row)
        column_map = self.mapper.generate(header)
        records = self.store.list_records(self.source.id, self.record_ids)
        self.summary.total = len(records)
        self._report_missing_ids(records)

        identity = IdentityTracker(
            self.transport,
            column_index=column_map.token_column_index,
            data_start_row=self.source.data_start_row,
        )
        if any(r.identity_token for r in records):
            identity.prime()

        new: list[Encoded] = []
        located: list[tuple[EventRecord, list[Any], int]] = []
        orphans: list[Encoded] = []

        for record in records:
            progress = self.tracker.start(record.store_id)
            had_token = bool(record.identity_token)
            try:
                row = encode(record, column_map)
            except (ValueError, TypeError) as e:
                self._fail(record, f"Encode failed: {e}")
                continue
            progress.advance(RowState.CLASSIFIED)

            if not had_token:
                progress.advance(RowState.CREATED)
                new.append((record, row))
                continue

            row_number = identity.locate_row(record.identity_token)
            if row_number is not None:
                progress.advance(RowState.UPDATED)
                located.append((record, row, row_number))
            else:
                progress.advance(RowState.CREATED)
                orphans.append((record, row))
                self.summary.warnings.append(
                    SyncIssue(
                        record_id=record.store_id,
                        message=f"Token {record.identity_token} not found in sheet; appended as a new row",
                    )
                )

        if self.dry_run:
            self._preview(new, located, orphans)
        else:
            self._update_in_place(located)
            self._append_new(new, identity)
            self._append_orphans(orphans, identity)

        logger.info(
            "Push %s%s: %d records, %d created, %d updated, %d orphans appended, %d errors",
            self.source.id,
            " (dry run)" if self.dry_run else "",
            self.summary.total,
            self.summary.created,
            self.summary.updated,
            self.summary.orphans_appended,
            len(self.summary.errors),
        )
        return self.summary

    # ------------------------------------------------------------------

    def _fail(self, record: EventRecord, message: str) -> None:
        self.tracker.get(record.store_id).fail(message)
        self.summary.errors.append(SyncIssue(record_id=record.store_id, message=message))
        logger.debug("Record %s failed: %s", record.store_id, message)

    def _report_missing_ids(self, records: Sequence[EventRecord]) -> None:
        if self.record_ids is None:
            return
        found = {r.store_id for r in records}
        for record_id in self.record_ids:
            if record_id not in found:
                self.summary.errors.append(
                    SyncIssue(record_id=record_id, message="Event not found for this source")
                )

    def _preview(
        self,
        new: list[Encoded],
        located: list[tuple[EventRecord, list[Any], int]],
        orphans: list[Encoded],
    ) -> None:
        next_row = self.transport.next_append_row()
        for record, _row, row_number in located:
            self.summary.preview.append(
                PreviewEntry(PlannedAction.UPDATE, record.name, row_number, record.store_id, record.identity_token)
            )
        for record, _row in new:
            self.summary.preview.append(
                PreviewEntry(PlannedAction.APPEND, record.name, next_row, record.store_id, record.identity_token)
            )
            next_row += 1
        for record, _row in orphans:
            self.summary.preview.append(
                PreviewEntry(PlannedAction.APPEND_ORPHAN, record.name, next_row, record.store_id, record.identity_token)
            )
            next_row += 1
        self.summary.updated = len(located)
        self.summary.created = len(new)
        self.summary.orphans_appended = len(orphans)

    def _update_in_place(self, located: list[tuple[EventRecord, list[Any], int]]) -> None:
        for record, row, row_number in located:
            try:
                self.transport.write_row(row_number, rewrite_row_references(row, row_number))
            except SourceWriteError as e:
                self._fail(record, f"Row {row_number} update failed: {e}")
                continue
            record.row_number = row_number
            self.tracker.get(record.store_id).complete()
            self.summary.updated += 1

    def _append(self, batch: list[Encoded], identity: IdentityTracker) -> bool:
        """
        Append a batch in one call with formulas pointing at their rows.

        If the sheet placed the batch somewhere else than predicted, the
        rows are rewritten in place with corrected references.
        """
        start = self.transport.next_append_row()
        rows = [rewrite_row_references(row, start + i) for i, (_, row) in enumerate(batch)]
        try:
            first_row = self.transport.append_rows(rows)
            if first_row != start:
                logger.debug("Append landed at row %d instead of %d; fixing formulas", first_row, start)
                for i, (_, row) in enumerate(batch):
                    self.transport.write_row(first_row + i, rewrite_row_references(row, first_row + i))
        except SourceWriteError as e:
            for record, _ in batch:
                self._fail(record, f"Append failed: {e}")
            return False

        for i, (record, _) in enumerate(batch):
            record.row_number = first_row + i
            identity.remember(record.identity_token, first_row + i)
        return True

    def _append_new(self, new: list[Encoded], identity: IdentityTracker) -> None:
        if not new or not self._append(new, identity):
            return
        for record, _ in new:
            try:
                self.store.tag_with_token(record.store_id, record.identity_token)
            except StoreError as e:
                self._fail(
                    record,
                    f"Row {record.row_number} appended but token could not be saved: {e}",
                )
                continue
            self.tracker.get(record.store_id).complete()
            self.summary.created += 1

    def _append_orphans(self, orphans: list[Encoded], identity: IdentityTracker) -> None:
        if not orphans or not self._append(orphans, identity):
            return
        for record, _ in orphans:
            self.tracker.get(record.store_id).complete()
        self.summary.orphans_appended = len(orphans)
