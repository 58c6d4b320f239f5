"""
Row <-> Record Codec.

Bidirectional transform between a raw sheet row (ordered cell list) and an
EventRecord, driven entirely by the live ColumnMap.

Decode rules:
    - computed columns are never imported
    - read-only columns are never imported, except the identity token
    - a blank cell in a non-required column leaves the store value alone
    - numbers are lenient: anything unparseable becomes 0 with a warning

Encode rules:
    - the identity column is always populated
    - computed columns become formulas over cells of the same row, authored
      against PLACEHOLDER_ROW and rewritten once the real row is known
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Sequence

from sheetsync.application.sync.classifier import cell_text, classify, is_valid_date
from sheetsync.application.sync.identity import ensure_token, normalize_token
from sheetsync.domain.errors import ValidationError
from sheetsync.domain.fields import FieldDefinition, FieldType
from sheetsync.domain.models import (
    Classification,
    ColumnMap,
    EventKind,
    EventRecord,
    RecordOrigin,
    SyncIssue,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_ROW = 2
SYNCED_STATUS = "Synced"

# A1-style reference not embedded in a longer identifier (e.g. "LOG10(").
_CELL_REFERENCE = re.compile(r"(?<![A-Za-z0-9_$])(\$?[A-Z]{1,3}\$?)(\d+)(?![\dA-Za-z_(])")


# ============================================================================
# Cell Coercion
# ============================================================================


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_formula(value: Any) -> bool:
    """True for formula text the workbook holds no calculated value for."""
    return isinstance(value, str) and value.startswith("=")


def parse_number(value: Any) -> tuple[int | float, str | None]:
    """
    Coerce a cell to a number.

    Returns:
        (number, warning). The warning is None when the value parsed cleanly;
        otherwise the number is 0.
    """
    if isinstance(value, bool):
        return int(value), None

    if isinstance(value, (int, float)):
        number = value
    else:
        text = str(value).strip().replace(",", "")
        try:
            number = float(text)
        except ValueError:
            return 0, f"not a number: {str(value)[:40]!r}"

    if math.isnan(number) or math.isinf(number):
        return 0, f"not a finite number: {value!r}"
    if isinstance(number, float) and number.is_integer():
        return int(number), None
    return number, None


def _coerce(field_def: FieldDefinition, value: Any) -> tuple[Any, str | None]:
    if field_def.type is FieldType.NUMBER:
        return parse_number(value)
    if field_def.type is FieldType.TIMESTAMP and isinstance(value, datetime):
        return value.isoformat(), None
    if field_def.type is FieldType.UUID:
        return normalize_token(value), None
    return cell_text(value), None


def _format(field_def: FieldDefinition, value: Any) -> Any:
    """Value as written to the sheet; missing values become ""."""
    if value is None:
        return ""
    if field_def.type is FieldType.NUMBER:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        number, _ = parse_number(value)
        return number
    return str(value)


# ============================================================================
# Decode
# ============================================================================


def decode(
    row: Sequence[Any],
    column_map: ColumnMap,
    classification: Classification | None = None,
) -> EventRecord:
    """
    Decode one row into a record.

    Raises:
        ValidationError: No identifying cells, or the required date is invalid
    """
    cells = list(row)
    if classification is None:
        classification = classify(cells, column_map)

    record = EventRecord(
        name=classification.name,
        kind=classification.kind,
        descriptor1=classification.descriptor1,
        descriptor2=classification.descriptor2,
        title=classification.title,
        source_of=RecordOrigin.SOURCE,
    )

    for index, field_def in column_map.items():
        if field_def.computed:
            continue
        if field_def.read_only and not field_def.is_identity:
            continue

        value = cells[index] if index < len(cells) else None

        if field_def.required and field_def.type is FieldType.DATE:
            text = cell_text(value)
            if not is_valid_date(text):
                raise ValidationError(
                    f"Invalid date {text!r}: expected a real date as YYYY-MM-DD"
                )
            record.date = text
            continue

        if is_empty(value):
            if field_def.required:
                raise ValidationError(f"Missing required value for {field_def.canonical_name}")
            continue

        if is_formula(value):
            message = f"{field_def.canonical_name}: formula {value[:40]!r} has no calculated value, stored value kept"
            record.warnings.append(message)
            logger.warning("%s", message)
            continue

        parsed, warning = _coerce(field_def, value)
        if warning:
            message = f"{field_def.canonical_name}: {warning}, stored as 0"
            record.warnings.append(message)
            logger.warning("%s", message)

        _assign(record, field_def, parsed)

    if "syncUuid" not in column_map and column_map.token_column_index not in column_map.columns:
        index = column_map.token_column_index
        if index < len(cells):
            record.identity_token = normalize_token(cells[index])

    return record


def _assign(record: EventRecord, field_def: FieldDefinition, value: Any) -> None:
    if field_def.is_stat:
        record.attributes[field_def.stat_key] = value
    elif field_def.path == "identity_token":
        record.identity_token = value
    elif hasattr(record, field_def.path):
        setattr(record, field_def.path, value)
    else:
        logger.debug("No record attribute for path %s", field_def.path)


# ============================================================================
# Encode
# ============================================================================


def _record_value(record: EventRecord, field_def: FieldDefinition) -> Any:
    name = field_def.canonical_name
    if field_def.is_stat:
        return record.attributes.get(field_def.stat_key)
    if name == "syncStatus":
        return SYNCED_STATUS
    if name == "eventName":
        return record.name
    if name == "eventTitle":
        if record.title:
            return record.title
        return record.name if record.kind is not EventKind.TWO_PARTY else None
    if name == "lastModified":
        return record.source_modified_at or datetime.now(timezone.utc).isoformat(
            timespec="seconds"
        )
    return getattr(record, field_def.path, None)


def encode(record: EventRecord, column_map: ColumnMap) -> list[Any]:
    """
    Encode a record as a row.

    Positions not covered by the map are None so transports leave those
    cells untouched. Assigns a fresh token to the record if it has none.
    """
    token = ensure_token(record)
    row: list[Any] = [None] * column_map.width

    for index, field_def in column_map.items():
        if field_def.is_identity:
            row[index] = token
        elif field_def.computed and field_def.expression is not None:
            formula = field_def.expression.render(column_map.letter_of, PLACEHOLDER_ROW)
            row[index] = formula if formula is not None else ""
        else:
            row[index] = _format(field_def, _record_value(record, field_def))

    if "syncUuid" not in column_map and column_map.token_column_index not in column_map.columns:
        row[column_map.token_column_index] = token

    return row


def rewrite_row_references(row: Sequence[Any], actual_row_number: int) -> list[Any]:
    """
    Point formula cells at their real row.

    Replaces references to PLACEHOLDER_ROW inside cells starting with "=".
    Non-formula cells are returned unchanged.
    """

    def _replace(match: re.Match) -> str:
        column, number = match.group(1), match.group(2)
        if int(number) == PLACEHOLDER_ROW:
            return f"{column}{actual_row_number}"
        return match.group(0)

    rewritten = []
    for cell in row:
        if isinstance(cell, str) and cell.startswith("="):
            cell = _CELL_REFERENCE.sub(_replace, cell)
        rewritten.append(cell)
    return rewritten


# ============================================================================
# Batch Helpers
# ============================================================================


def decode_rows(
    rows: Sequence[tuple[int, Sequence[Any]]], column_map: ColumnMap
) -> tuple[list[EventRecord], list[SyncIssue]]:
    """Decode many rows, collecting row-scoped errors instead of raising."""
    records: list[EventRecord] = []
    errors: list[SyncIssue] = []
    for row_number, cells in rows:
        try:
            record = decode(cells, column_map)
        except ValidationError as e:
            errors.append(SyncIssue(row=row_number, message=str(e)))
            continue
        record.row_number = row_number
        records.append(record)
    return records, errors


def encode_records(
    records: Sequence[EventRecord], column_map: ColumnMap
) -> tuple[list[tuple[EventRecord, list[Any]]], list[SyncIssue]]:
    """Encode many records, collecting record-scoped errors instead of raising."""
    encoded: list[tuple[EventRecord, list[Any]]] = []
    errors: list[SyncIssue] = []
    for record in records:
        try:
            encoded.append((record, encode(record, column_map)))
        except (ValueError, TypeError) as e:
            errors.append(SyncIssue(record_id=record.store_id, message=str(e)))
    return encoded, errors
