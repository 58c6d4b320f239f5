"""
Event Type Classifier.

Derives an event's kind and display name from its identifying cells, and
validates the required event date. Pure functions over a raw row and its
column map.

Decision table (first match wins):

    partner1 + partner2      -> two-party,    "{partner1} vs {partner2}"
    partner1 + title         -> single-party, title
    title                    -> standalone,   title
    auto name                -> standalone,   auto name
    otherwise                -> ValidationError
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Sequence

from sheetsync.domain.errors import ValidationError
from sheetsync.domain.models import Classification, ColumnMap, EventKind

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def cell_text(value: Any) -> str:
    """Trimmed text of a cell; None and blanks become ""."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def is_valid_date(text: str) -> bool:
    """True for a YYYY-MM-DD string naming a real calendar date."""
    if not DATE_PATTERN.match(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def classify(row: Sequence[Any], column_map: ColumnMap) -> Classification:
    """
    Classify a row by its identifying cells.

    Raises:
        ValidationError: No identifying information present
    """
    d1 = cell_text(column_map.cell(list(row), "partner1Name"))
    d2 = cell_text(column_map.cell(list(row), "partner2Name"))
    title = cell_text(column_map.cell(list(row), "eventTitle"))
    auto_name = cell_text(column_map.cell(list(row), "eventName"))

    if d1 and d2:
        return Classification(
            kind=EventKind.TWO_PARTY,
            name=f"{d1} vs {d2}",
            descriptor1=d1,
            descriptor2=d2,
            title=title or None,
        )
    if d1 and title:
        return Classification(
            kind=EventKind.SINGLE_PARTY,
            name=title,
            descriptor1=d1,
            title=title,
        )
    if title:
        return Classification(kind=EventKind.STANDALONE, name=title, title=title)
    if auto_name:
        return Classification(kind=EventKind.STANDALONE, name=auto_name)

    raise ValidationError("no identifying information")


def event_date(row: Sequence[Any], column_map: ColumnMap) -> str:
    """Date cell rendered as text (native date cells become ISO dates)."""
    return cell_text(column_map.cell(list(row), "eventDate"))


def has_valid_date(row: Sequence[Any], column_map: ColumnMap) -> bool:
    return is_valid_date(event_date(row, column_map))


def require_valid_date(row: Sequence[Any], column_map: ColumnMap) -> str:
    """
    Return the row's event date.

    Raises:
        ValidationError: Date missing, malformed or not a real calendar date
    """
    text = event_date(row, column_map)
    if not is_valid_date(text):
        raise ValidationError(f"Invalid date {text!r}: expected a real date as YYYY-MM-DD")
    return text
