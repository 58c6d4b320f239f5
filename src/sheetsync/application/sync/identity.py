"""
Identity Tracker.

THE authoritative implementation of identity tokens: the opaque value that
correlates one sheet row with one store record across repeated syncs.

Architecture Note:
    - Token lives in the identity column (column A unless a header names it)
    - Token is immutable once assigned (never regenerated)
    - Token comparison is case-insensitive
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from sheetsync.domain.errors import SourceError

if TYPE_CHECKING:
    from sheetsync.application.sync.protocols import PullStore, SourceTransport
    from sheetsync.domain.models import EventRecord

logger = logging.getLogger(__name__)

__all__ = [
    "IdentityTracker",
    "ensure_token",
    "generate_token",
    "is_valid_token",
    "normalize_token",
]


# ============================================================================
# Token Generation
# ============================================================================


def generate_token() -> str:
    """
    Generate a new identity token.

    Uses UUID v4 (random), e.g. "3f2b8c1e-9a7d-4e21-b0c4-6d5f8e2a1b90".
    """
    return str(uuid.uuid4())


def normalize_token(value: Any) -> str | None:
    """Canonical form of a token cell, None when blank."""
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


def is_valid_token(value: Any) -> bool:
    """
    Check if a value is a well-formed identity token.

    Args:
        value: Any cell value

    Returns:
        True if it parses as a UUID
    """
    token = normalize_token(value)
    if not token:
        return False
    try:
        uuid.UUID(token)
    except ValueError:
        return False
    return True


def ensure_token(record: "EventRecord") -> str:
    """Return the record's token, assigning a fresh one if it has none."""
    if not record.identity_token:
        record.identity_token = generate_token()
        logger.debug("Assigned new token %s to %r", record.identity_token, record.name)
    return record.identity_token


# ============================================================================
# Tracker
# ============================================================================


class IdentityTracker:
    """
    Locates rows by token in the sheet and resolves tokens against the store.

    Usage:
        tracker = IdentityTracker(transport, store, column_index=0)
        tracker.prime()                      # optional: one scan, then O(1) lookups
        row = tracker.locate_row(token)
        existing = tracker.resolve_batch(tokens)
    """

    def __init__(
        self,
        transport: "SourceTransport",
        store: "PullStore | None" = None,
        column_index: int = 0,
        data_start_row: int = 2,
    ) -> None:
        self.transport = transport
        self.store = store
        self.column_index = column_index
        self.data_start_row = data_start_row
        self._row_index: dict[str, int] | None = None
        self.foreign_tokens: dict[str, str] = {}

    def prime(self) -> dict[str, int]:
        """
        Scan the identity column once and index token -> row.

        The first row carrying a token wins.
        """
        index: dict[str, int] = {}
        for row_number, value in self.transport.read_column(
            self.column_index, self.data_start_row
        ):
            token = normalize_token(value)
            if token and token not in index:
                index[token] = row_number
        self._row_index = index
        logger.debug("Primed token index with %d rows", len(index))
        return index

    @property
    def is_primed(self) -> bool:
        return self._row_index is not None

    def locate_row(self, token: str) -> int | None:
        """Row number holding the token, None if the sheet has no such row."""
        key = normalize_token(token)
        if not key:
            return None
        if self._row_index is not None:
            return self._row_index.get(key)
        return self.transport.find_row_by_token(key, self.column_index)

    def remember(self, token: str, row_number: int) -> None:
        """Record a row written during this run in the primed index."""
        key = normalize_token(token)
        if key and self._row_index is not None:
            self._row_index[key] = row_number

    def resolve_batch(
        self, tokens: Iterable[str], source_id: str | None = None
    ) -> dict[str, int]:
        """
        Resolve tokens to store ids in a single store round trip.

        With a source_id, tokens owned by another source are left out of the
        result and collected in foreign_tokens (token -> owning source).

        Returns:
            Mapping of normalized token -> store id (existing tokens only)
        """
        wanted = sorted({t for t in (normalize_token(x) for x in tokens) if t})
        if not wanted:
            return {}
        if self.store is None:
            raise RuntimeError("IdentityTracker has no store to resolve against")

        resolved: dict[str, int] = {}
        for record in self.store.get_by_tokens(wanted):
            token = normalize_token(record.identity_token)
            if not token or record.store_id is None:
                continue
            if source_id is not None and record.source_id not in (None, source_id):
                self.foreign_tokens[token] = record.source_id
                continue
            resolved[token] = record.store_id
        logger.debug("Resolved %d of %d tokens", len(resolved), len(wanted))
        return resolved

    def write_back(self, row_number: int, token: str) -> bool:
        """
        Write a newly generated token into its sheet row.

        Only the identity cell is written. A failure is logged as a warning
        and reported as False; nothing is rolled back, so the next pull may
        create a duplicate for this row.
        """
        cells: list[Any] = [None] * self.column_index + [token]
        try:
            self.transport.write_row(row_number, cells)
        except SourceError as e:
            logger.warning("Could not write token back to row %d: %s", row_number, e)
            return False
        self.remember(token, row_number)
        return True

    def detect_token_issues(
        self, rows: Sequence[tuple[int, Sequence[Any]]]
    ) -> dict[str, list[int]]:
        """
        Detect token integrity issues.

        Checks for:
        - Missing tokens (rows with data but no token)
        - Invalid tokens (not a UUID)
        - Duplicate tokens (same token on multiple rows)

        Returns:
            Dict with keys 'missing', 'invalid', 'duplicates', each a sorted
            list of row numbers
        """
        issues: dict[str, list[int]] = {"missing": [], "invalid": [], "duplicates": []}
        seen: dict[str, int] = {}

        for row_number, cells in rows:
            has_data = any(
                value not in (None, "")
                for i, value in enumerate(cells)
                if i != self.column_index
            )
            if not has_data:
                continue

            value = cells[self.column_index] if self.column_index < len(cells) else None
            token = normalize_token(value)
            if not token:
                issues["missing"].append(row_number)
                continue
            if not is_valid_token(token):
                issues["invalid"].append(row_number)
                continue

            if token in seen:
                issues["duplicates"].append(row_number)
                first_row = seen[token]
                if first_row not in issues["duplicates"]:
                    issues["duplicates"].append(first_row)
            else:
                seen[token] = row_number

        issues["duplicates"].sort()
        return issues
