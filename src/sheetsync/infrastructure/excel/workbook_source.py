"""
Workbook Source - openpyxl transport for one event worksheet.

Implements the SourceTransport protocol over an .xlsx file. The workbook is
loaded with formulas intact (data_only=False) so computed columns survive
a read/write cycle, and saved after every mutating call. A second
data_only=True handle supplies the results a spreadsheet app last cached for
formula cells, so row reads see what the user sees. Files saved by openpyxl
carry no cached results; such formula cells read back as formula text.

Error mapping:
    - missing file, unreadable workbook, missing sheet -> SourceReadError
    - save failures (file locked by Excel, read-only) -> SourceWriteError
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from sheetsync.domain.errors import SourceReadError, SourceWriteError
from sheetsync.domain.fields import FIELD_REGISTRY
from sheetsync.infrastructure.excel.token_column import (
    apply_token_column_protection,
    hide_token_column,
    style_token_cell,
)
from sheetsync.infrastructure.excel_styles import (
    ColumnDef,
    add_autofilter,
    apply_header_row,
    freeze_panes,
)

logger = logging.getLogger(__name__)

# Header label -> field, for styling headers written by setup
_FIELDS_BY_HEADER = {f.header: f for f in FIELD_REGISTRY.values()}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _with_cached_results(cells: list[Any], cached: Sequence[Any]) -> list[Any]:
    """Replace formula cells with their cached result where one exists."""
    merged = []
    for index, value in enumerate(cells):
        result = cached[index] if index < len(cached) else None
        if isinstance(value, str) and value.startswith("=") and result is not None:
            merged.append(result)
        else:
            merged.append(value)
    return merged


class WorkbookSource:
    """
    Range-based access to a worksheet in an .xlsx workbook.

    Usage:
        source = WorkbookSource("events.xlsx", "Events")
        header = source.read_header(1)
        rows = source.read_rows(2)
        first = source.append_rows([[...], [...]])
    """

    def __init__(
        self,
        workbook_path: Path | str,
        sheet_name: str = "Events",
        create: bool = False,
    ) -> None:
        """
        Args:
            workbook_path: Path to the .xlsx file
            sheet_name: Worksheet to sync
            create: Create the workbook/sheet if missing (used by setup)
        """
        self.workbook_path = Path(workbook_path)
        self.sheet_name = sheet_name
        self.create = create
        self._workbook: Workbook | None = None
        self._values: Workbook | None = None

    # ========================================================================
    # Workbook Lifecycle
    # ========================================================================

    def _get_worksheet(self) -> Worksheet:
        if self._workbook is None:
            self._workbook = self._load()

        if self.sheet_name not in self._workbook.sheetnames:
            if not self.create:
                raise SourceReadError(
                    f"Sheet '{self.sheet_name}' not found in {self.workbook_path.name}"
                )
            self._workbook.create_sheet(self.sheet_name)
            logger.info("Created sheet %s in %s", self.sheet_name, self.workbook_path)
        return self._workbook[self.sheet_name]

    def _load(self) -> Workbook:
        if not self.workbook_path.exists():
            if not self.create:
                raise SourceReadError(f"Workbook not found: {self.workbook_path}")
            workbook = Workbook()
            workbook.active.title = self.sheet_name
            logger.info("Created new workbook %s", self.workbook_path)
            return workbook

        try:
            workbook = load_workbook(self.workbook_path, data_only=False)
        except (InvalidFileException, BadZipFile, OSError, KeyError) as e:
            raise SourceReadError(f"Cannot open {self.workbook_path}: {e}") from e
        logger.debug("Loaded workbook %s", self.workbook_path)
        return workbook

    def _cached_worksheet(self) -> Worksheet | None:
        """Worksheet of cached formula results, or None when the file has none yet."""
        if self._values is None:
            if not self.workbook_path.exists():
                return None
            try:
                self._values = load_workbook(self.workbook_path, data_only=True)
            except (InvalidFileException, BadZipFile, OSError, KeyError) as e:
                raise SourceReadError(f"Cannot open {self.workbook_path}: {e}") from e
        if self.sheet_name not in self._values.sheetnames:
            return None
        return self._values[self.sheet_name]

    def _save(self) -> None:
        try:
            self.workbook_path.parent.mkdir(parents=True, exist_ok=True)
            self._workbook.save(self.workbook_path)
        except OSError as e:
            raise SourceWriteError(f"Cannot save {self.workbook_path}: {e}") from e
        # openpyxl drops cached results on save
        self._values = None

    def last_used_row(self) -> int:
        """Last row with any non-blank cell (0 for an empty sheet)."""
        ws = self._get_worksheet()
        for row_number in range(ws.max_row, 0, -1):
            for cell in ws[row_number]:
                if not _is_blank(cell.value):
                    return row_number
        return 0

    # ========================================================================
    # Reads
    # ========================================================================

    def read_header(self, row: int) -> list[str]:
        ws = self._get_worksheet()
        if row > ws.max_row:
            return []
        header = []
        for cell in ws[row]:
            header.append("" if cell.value is None else str(cell.value).strip())
        while header and not header[-1]:
            header.pop()
        return header

    def read_rows(
        self, start_row: int, end_row: int | None = None
    ) -> list[tuple[int, list[Any]]]:
        ws = self._get_worksheet()
        last = self.last_used_row() if end_row is None else min(end_row, ws.max_row)
        if last < start_row:
            return []

        cached = self._cached_worksheet()
        cached_rows = (
            cached.iter_rows(min_row=start_row, max_row=last, values_only=True)
            if cached is not None
            else None
        )

        rows = []
        for offset, values in enumerate(
            ws.iter_rows(min_row=start_row, max_row=last, values_only=True)
        ):
            cells = list(values)
            if cached_rows is not None:
                cells = _with_cached_results(cells, next(cached_rows, ()))
            rows.append((start_row + offset, cells))
        logger.debug("Read %d rows from %s (rows %d-%d)", len(rows), self.sheet_name, start_row, last)
        return rows

    def read_column(self, column_index: int, start_row: int) -> list[tuple[int, Any]]:
        ws = self._get_worksheet()
        last = self.last_used_row()
        return [
            (row_number, ws.cell(row=row_number, column=column_index + 1).value)
            for row_number in range(start_row, last + 1)
        ]

    def find_row_by_token(self, token: str, column_index: int) -> int | None:
        """Scan the token column for a case-insensitive match."""
        wanted = token.strip().lower()
        for row_number, value in self.read_column(column_index, 1):
            if value is not None and str(value).strip().lower() == wanted:
                return row_number
        return None

    def next_append_row(self) -> int:
        return self.last_used_row() + 1

    # ========================================================================
    # Writes
    # ========================================================================

    def _write_cells(self, ws: Worksheet, row_number: int, cells: Sequence[Any]) -> None:
        # None means "leave this cell alone" (unmapped columns keep user data)
        for index, value in enumerate(cells):
            if value is None:
                continue
            ws.cell(row=row_number, column=index + 1).value = value

    def write_row(self, row_number: int, cells: Sequence[Any]) -> None:
        ws = self._get_worksheet()
        self._write_cells(ws, row_number, cells)
        self._save()

    def append_rows(self, rows: Sequence[Sequence[Any]]) -> int:
        ws = self._get_worksheet()
        first_row = self.next_append_row()
        for offset, cells in enumerate(rows):
            self._write_cells(ws, first_row + offset, cells)
        self._save()
        logger.debug("Appended %d rows to %s at row %d", len(rows), self.sheet_name, first_row)
        return first_row

    def clear_range(self, start_row: int, end_row: int | None = None) -> None:
        ws = self._get_worksheet()
        last = end_row if end_row is not None else ws.max_row
        for row_number in range(start_row, last + 1):
            for cell in ws[row_number]:
                cell.value = None
        self._save()

    def format_header(self, row_number: int, protect_token_column: bool) -> None:
        """Style the header row and, optionally, hide and lock the token column."""
        ws = self._get_worksheet()
        headers = self.read_header(row_number)

        columns = []
        token_column: int | None = None
        for index, header in enumerate(headers, start=1):
            field_def = _FIELDS_BY_HEADER.get(header)
            is_system = bool(field_def and field_def.read_only)
            if field_def and field_def.is_identity:
                token_column = index
            columns.append(
                ColumnDef(
                    name=header,
                    width=max(12, min(len(header) + 4, 30)),
                    is_computed=bool(field_def and field_def.computed),
                    is_system=is_system,
                )
            )

        apply_header_row(ws, columns, row_number)
        freeze_panes(ws, row=row_number + 1, col=1)
        add_autofilter(ws, len(columns), row_number)

        if protect_token_column and token_column is not None:
            style_token_cell(ws, row_number, token_column)
            hide_token_column(ws, token_column)
            apply_token_column_protection(ws, token_column, max_row=max(ws.max_row, 200))

        self._save()
