"""
Unit tests for row classification and date validation.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parents[1] / "src"))

import unittest
from datetime import date, datetime

from sheetsync.application.sync.classifier import (
    cell_text,
    classify,
    has_valid_date,
    is_valid_date,
    require_valid_date,
)
from sheetsync.application.sync.schema_mapper import SchemaMapper
from sheetsync.domain.errors import ValidationError
from sheetsync.domain.models import EventKind

HEADERS = ["Partner 1 (Home)", "Partner 2 (Away)", "Event Title (Custom)", "Event Name (Auto)", "Event Date"]


def row(d1=None, d2=None, title=None, auto=None, when="2025-03-01"):
    return [d1, d2, title, auto, when]


class TestClassify(unittest.TestCase):
    """Decision table, first match wins."""

    def setUp(self):
        self.column_map = SchemaMapper().generate(HEADERS)

    def test_two_party(self):
        result = classify(row("Lions", "Tigers"), self.column_map)
        self.assertEqual(result.kind, EventKind.TWO_PARTY)
        self.assertEqual(result.name, "Lions vs Tigers")
        self.assertEqual(result.descriptor1, "Lions")
        self.assertEqual(result.descriptor2, "Tigers")
        self.assertIsNone(result.title)

    def test_two_party_wins_over_title(self):
        result = classify(row("Lions", "Tigers", "Derby Day"), self.column_map)
        self.assertEqual(result.kind, EventKind.TWO_PARTY)
        self.assertEqual(result.name, "Lions vs Tigers")
        self.assertEqual(result.title, "Derby Day")

    def test_single_party(self):
        result = classify(row("Lions", None, "Open Training"), self.column_map)
        self.assertEqual(result.kind, EventKind.SINGLE_PARTY)
        self.assertEqual(result.name, "Open Training")
        self.assertEqual(result.descriptor1, "Lions")

    def test_partner_without_title_falls_through(self):
        result = classify(row("Lions", None, None, "Lions Home Game"), self.column_map)
        self.assertEqual(result.kind, EventKind.STANDALONE)
        self.assertEqual(result.name, "Lions Home Game")

    def test_title_only(self):
        result = classify(row(None, None, "Summer Gala"), self.column_map)
        self.assertEqual(result.kind, EventKind.STANDALONE)
        self.assertEqual(result.name, "Summer Gala")

    def test_second_partner_only_uses_title(self):
        result = classify(row(None, "Tigers", "Away Day"), self.column_map)
        self.assertEqual(result.kind, EventKind.STANDALONE)
        self.assertEqual(result.name, "Away Day")

    def test_auto_name_only(self):
        result = classify(row(None, None, None, "Imported Event"), self.column_map)
        self.assertEqual(result.kind, EventKind.STANDALONE)
        self.assertEqual(result.name, "Imported Event")
        self.assertIsNone(result.title)

    def test_cells_are_trimmed(self):
        result = classify(row("  Lions ", " Tigers  "), self.column_map)
        self.assertEqual(result.name, "Lions vs Tigers")

    def test_no_identifying_information(self):
        with self.assertRaises(ValidationError) as ctx:
            classify(row(" ", "", None, None), self.column_map)
        self.assertIn("no identifying information", str(ctx.exception))

    def test_unmapped_identifying_columns(self):
        column_map = SchemaMapper().generate(["Event Date", "Selfies"])
        with self.assertRaises(ValidationError):
            classify(["2025-03-01", 4], column_map)


class TestDates(unittest.TestCase):

    def setUp(self):
        self.column_map = SchemaMapper().generate(HEADERS)

    def test_valid(self):
        self.assertTrue(is_valid_date("2025-03-01"))
        self.assertTrue(is_valid_date("2024-02-29"))

    def test_invalid(self):
        for text in ("2025-13-40", "2025-02-30", "2023-02-29", "03/01/2025", "2025-3-1", "", "soon"):
            with self.subTest(text=text):
                self.assertFalse(is_valid_date(text))

    def test_require_valid_date_message(self):
        with self.assertRaises(ValidationError) as ctx:
            require_valid_date(row("A", "B", when="2025-13-40"), self.column_map)
        self.assertIn("2025-13-40", str(ctx.exception))

    def test_missing_date(self):
        self.assertFalse(has_valid_date(row("A", "B", when=None), self.column_map))

    def test_native_date_cells(self):
        self.assertEqual(
            require_valid_date(row("A", "B", when=datetime(2025, 3, 1, 0, 0)), self.column_map),
            "2025-03-01",
        )
        self.assertTrue(has_valid_date(row("A", "B", when=date(2025, 3, 1)), self.column_map))


class TestCellText(unittest.TestCase):

    def test_values(self):
        self.assertEqual(cell_text(None), "")
        self.assertEqual(cell_text("  x "), "x")
        self.assertEqual(cell_text(12.0), "12")
        self.assertEqual(cell_text(12.5), "12.5")
        self.assertEqual(cell_text(7), "7")
        self.assertEqual(cell_text(date(2025, 1, 2)), "2025-01-02")


if __name__ == "__main__":
    unittest.main()
