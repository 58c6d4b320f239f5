"""
Token column protection helpers.

The identity token column is system-managed: users must not edit it, and
usually should not see it. Protection is advisory (no password), so sheet
owners can still unprotect via Review > Unprotect Sheet.
"""

from __future__ import annotations

import logging

from openpyxl.styles import Protection
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from sheetsync.infrastructure.excel_styles import Fonts

logger = logging.getLogger(__name__)

__all__ = [
    "apply_token_column_protection",
    "hide_token_column",
    "style_token_cell",
]


def style_token_cell(ws: Worksheet, row: int, column: int) -> None:
    """Give a token cell its muted monospace look and lock it."""
    cell = ws.cell(row=row, column=column)
    cell.font = Fonts.MONOSPACE
    cell.protection = Protection(locked=True)


def apply_token_column_protection(
    ws: Worksheet, column: int, max_row: int = 1000
) -> None:
    """
    Lock the token column ONLY.

    In Excel every cell is locked by default, so all other columns are
    unlocked explicitly before sheet protection is switched on.

    Args:
        ws: Worksheet to protect
        column: Token column (1-indexed)
        max_row: Last row to cover
    """
    max_col = max(ws.max_column or 1, column)
    for row in range(1, max_row + 1):
        for col in range(1, max_col + 1):
            ws.cell(row=row, column=col).protection = Protection(locked=(col == column))

    # Note: do NOT set password=None, openpyxl raises TypeError
    ws.protection.sheet = True
    ws.protection.formatCells = False
    ws.protection.formatColumns = False
    ws.protection.formatRows = False
    ws.protection.insertColumns = False
    ws.protection.insertRows = False
    ws.protection.deleteColumns = False
    ws.protection.deleteRows = False
    ws.protection.sort = False
    ws.protection.autoFilter = False

    logger.debug("Protected token column %s in sheet %s", get_column_letter(column), ws.title)


def hide_token_column(ws: Worksheet, column: int) -> None:
    """Collapse and hide the token column."""
    letter = get_column_letter(column)
    ws.column_dimensions[letter].width = 0
    ws.column_dimensions[letter].hidden = True
    logger.debug("Hid token column %s in sheet %s", letter, ws.title)
