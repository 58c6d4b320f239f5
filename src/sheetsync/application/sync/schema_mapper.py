"""
Schema Mapper.

Derives the column index -> field mapping from a live header row.

The mapping is recomputed on every sync and never cached, so sheet owners
can reorder, insert or rename columns (within the known aliases) without a
code change. Unknown headers degrade gracefully: they are logged and
skipped while the remaining columns still sync.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from openpyxl.utils import column_index_from_string, get_column_letter

from sheetsync.domain.config import DuplicateHeaderPolicy
from sheetsync.domain.errors import DuplicateHeaderError
from sheetsync.domain.fields import FIELD_REGISTRY, FieldDefinition
from sheetsync.domain.models import ColumnDescription, ColumnMap

logger = logging.getLogger(__name__)

_CAMEL_CASE = re.compile(r"^[a-z][A-Za-z0-9]*$")
_WORD_SEPARATORS = re.compile(r"[\s\-_()]+")


def normalize_header(header: str) -> str:
    """
    Normalize a header cell to a camelCase field name.

    "remoteImages" stays as is, "Remote Images" and "remote-images"
    become "remoteImages", "Partner 1 (Home)" becomes "partner1Home".
    """
    text = (header or "").strip()
    if not text:
        return ""
    if _CAMEL_CASE.match(text):
        return text

    words = [w for w in _WORD_SEPARATORS.split(text) if w]
    if not words:
        return ""
    first, rest = words[0].lower(), words[1:]
    return first + "".join(w[:1].upper() + w[1:].lower() for w in rest)


def _build_alias_index() -> dict[str, str]:
    """Normalized alias/display header -> canonical name."""
    index: dict[str, str] = {}
    for field_def in FIELD_REGISTRY.values():
        for spelling in (field_def.header, *field_def.aliases):
            key = normalize_header(spelling)
            if key and key not in FIELD_REGISTRY:
                index.setdefault(key, field_def.canonical_name)
    return index


_ALIAS_INDEX = _build_alias_index()
_CASE_INSENSITIVE_INDEX: dict[str, str] = {
    **{k.lower(): v for k, v in _ALIAS_INDEX.items()},
    **{name.lower(): name for name in FIELD_REGISTRY},
}


def resolve_field(header: str) -> FieldDefinition | None:
    """
    Resolve a header cell to its registered field.

    Lookup order: exact canonical name, alias, case-insensitive fallback.
    """
    key = normalize_header(header)
    if not key:
        return None

    if key in FIELD_REGISTRY:
        return FIELD_REGISTRY[key]

    if key in _ALIAS_INDEX:
        return FIELD_REGISTRY[_ALIAS_INDEX[key]]

    canonical = _CASE_INSENSITIVE_INDEX.get(key.lower())
    if canonical:
        return FIELD_REGISTRY[canonical]
    return None


class SchemaMapper:
    """
    Builds a ColumnMap from a header row.

    Usage:
        mapper = SchemaMapper(DuplicateHeaderPolicy.REJECT)
        column_map = mapper.generate(transport.read_header(1))
    """

    def __init__(
        self,
        duplicate_policy: DuplicateHeaderPolicy = DuplicateHeaderPolicy.REJECT,
        token_column: str = "A",
    ) -> None:
        self.duplicate_policy = DuplicateHeaderPolicy(duplicate_policy)
        self.token_column = token_column

    def generate(self, header_row: Sequence[object]) -> ColumnMap:
        """
        Map each header cell to a field definition.

        Raises:
            DuplicateHeaderError: Two columns resolve to the same field under
                the reject policy
        """
        column_map = ColumnMap()
        seen: dict[str, int] = {}

        for index, raw in enumerate(header_row):
            header = "" if raw is None else str(raw).strip()
            if not header:
                continue

            field_def = resolve_field(header)
            letter = get_column_letter(index + 1)
            if field_def is None:
                logger.warning("Unknown header %r (column %s) - skipped", header, letter)
                column_map.unknown_headers.append((index, header))
                continue

            name = field_def.canonical_name
            if name in seen:
                previous = seen[name]
                previous_letter = get_column_letter(previous + 1)
                if self.duplicate_policy is DuplicateHeaderPolicy.REJECT:
                    raise DuplicateHeaderError(name, [previous_letter, letter])

                logger.warning(
                    "Duplicate header for %s: column %s replaces column %s",
                    name,
                    letter,
                    previous_letter,
                )
                del column_map.columns[previous]
                del column_map.headers[previous]

            seen[name] = index
            column_map.columns[index] = field_def
            column_map.headers[index] = header
            logger.debug("Mapped %r -> %s -> %s", header, letter, field_def.path)

        identity_index = column_map.index_of("syncUuid")
        if identity_index is not None:
            column_map.token_column_index = identity_index
        else:
            column_map.token_column_index = column_index_from_string(self.token_column) - 1

        logger.info(
            "Column map generated: %d mapped, %d unknown",
            len(column_map),
            len(column_map.unknown_headers),
        )
        return column_map

    @staticmethod
    def describe(column_map: ColumnMap) -> list[ColumnDescription]:
        """Rows for the mapping view, in column order."""
        return [
            ColumnDescription(
                letter=get_column_letter(index + 1),
                header=column_map.headers.get(index, ""),
                canonical_name=field_def.canonical_name,
                path=field_def.path,
                type=field_def.type.value,
                flags=field_def.flags,
            )
            for index, field_def in column_map.items()
        ]
