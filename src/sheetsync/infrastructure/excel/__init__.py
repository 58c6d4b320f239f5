"""
Excel (openpyxl) transport for event sheets.
"""

from .workbook_source import WorkbookSource

__all__ = ["WorkbookSource"]
