"""
Excel styling configuration and utilities.

Provides consistent styling for event sheets set up by SheetSync:
- Color palette
- Font definitions
- Header presets (regular, computed, system-managed columns)
- Formatting helpers
"""

from __future__ import annotations

from dataclasses import dataclass

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet


# ============================================================================
# Color Palette
# ============================================================================


class Colors:
    """Sheet color palette (hex codes without #)."""

    HEADER_BG = "203764"  # Navy
    HEADER_TEXT = "FFFFFF"
    COMPUTED_BG = "4472C4"  # Steel blue: formula columns
    SYSTEM_BG = "595959"  # Dark gray: token, auto name, sync status
    BORDER = "1F4E79"


# ============================================================================
# Fonts / Fills / Borders / Alignments
# ============================================================================


class Fonts:
    HEADER = Font(name="Segoe UI", size=11, bold=True, color=Colors.HEADER_TEXT)
    DATA = Font(name="Segoe UI", size=10)
    MONOSPACE = Font(name="Consolas", size=9, color="808080")


def _solid(color: str) -> PatternFill:
    return PatternFill(start_color=color, end_color=color, fill_type="solid")


class Fills:
    HEADER = _solid(Colors.HEADER_BG)
    COMPUTED = _solid(Colors.COMPUTED_BG)
    SYSTEM = _solid(Colors.SYSTEM_BG)


class Borders:
    HEADER = Border(
        left=Side(style="thin", color=Colors.BORDER),
        right=Side(style="thin", color=Colors.BORDER),
        top=Side(style="thin", color=Colors.BORDER),
        bottom=Side(style="medium", color=Colors.BORDER),
    )


class Alignments:
    CENTER = Alignment(horizontal="center", vertical="center", wrap_text=False)
    CENTER_WRAP = Alignment(horizontal="center", vertical="center", wrap_text=True)
    LEFT = Alignment(horizontal="left", vertical="center", wrap_text=False)


# ============================================================================
# Column Definition
# ============================================================================


@dataclass
class ColumnDef:
    """
    Header column of an event sheet.

    Attributes:
        name: Header text
        width: Column width in characters
        is_computed: Formula column (never imported)
        is_system: Managed by the sync engine
    """

    name: str
    width: int = 14
    is_computed: bool = False
    is_system: bool = False


# ============================================================================
# Helper Functions
# ============================================================================


def apply_header_row(ws: Worksheet, columns: list[ColumnDef], row: int = 1) -> None:
    """
    Style an existing header row.

    Args:
        ws: Worksheet
        columns: Column definitions, in sheet order starting at column A
        row: Row number (1-indexed)
    """
    for col_idx, col_def in enumerate(columns, start=1):
        cell = ws.cell(row=row, column=col_idx)
        cell.font = Fonts.HEADER
        if col_def.is_computed:
            cell.fill = Fills.COMPUTED
        elif col_def.is_system:
            cell.fill = Fills.SYSTEM
        else:
            cell.fill = Fills.HEADER
        cell.alignment = Alignments.CENTER_WRAP
        cell.border = Borders.HEADER

        ws.column_dimensions[get_column_letter(col_idx)].width = col_def.width


def freeze_panes(ws: Worksheet, row: int = 2, col: int = 1) -> None:
    """
    Freeze panes in a worksheet.

    Args:
        ws: Worksheet
        row: First unfrozen row (freeze rows above)
        col: First unfrozen column (freeze columns to the left)
    """
    ws.freeze_panes = ws.cell(row=row, column=col)


def add_autofilter(ws: Worksheet, column_count: int, header_row: int = 1) -> None:
    """Add autofilter over the header row."""
    if column_count < 1:
        return
    last_col = get_column_letter(column_count)
    ws.auto_filter.ref = f"A{header_row}:{last_col}{header_row}"
