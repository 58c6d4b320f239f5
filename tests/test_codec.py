"""
Tests for the row <-> record codec.
"""

import math

import pytest

from conftest import HEADERS
from sheetsync.application.sync.codec import (
    SYNCED_STATUS,
    decode,
    decode_rows,
    encode,
    encode_records,
    parse_number,
    rewrite_row_references,
)
from sheetsync.application.sync.identity import is_valid_token
from sheetsync.application.sync.schema_mapper import SchemaMapper
from sheetsync.domain.errors import ValidationError
from sheetsync.domain.models import EventKind, EventRecord, RecordOrigin

TOKEN = "3f2b8c1e-9a7d-4e21-b0c4-6d5f8e2a1b90"


@pytest.fixture
def column_map():
    return SchemaMapper().generate(HEADERS)


def sheet_row(**overrides):
    values = {
        "token": None,
        "p1": "Lions",
        "p2": "Tigers",
        "title": None,
        "auto": "Lions vs Tigers",
        "date": "2025-03-01",
        "remote": 10,
        "hostess": 5,
        "selfies": 3,
        "all_images": "=G2+H2+I2",
        "remote_fans": 100,
        "stadium": 2000,
        "total_fans": "=K2+L2",
        "notes": None,
    }
    values.update(overrides)
    return list(values.values())


class TestParseNumber:

    @pytest.mark.parametrize(
        "value, expected",
        [
            (5, 5),
            (5.0, 5),
            (2.5, 2.5),
            ("42", 42),
            (" 1,234 ", 1234),
            ("3.75", 3.75),
            (True, 1),
        ],
    )
    def test_clean(self, value, expected):
        number, warning = parse_number(value)
        assert number == expected
        assert warning is None

    @pytest.mark.parametrize("value", ["lots", "n/a", float("nan"), float("inf")])
    def test_unparseable_becomes_zero(self, value):
        number, warning = parse_number(value)
        assert number == 0
        assert warning


class TestDecode:

    def test_two_party_row(self, column_map):
        record = decode(sheet_row(), column_map)
        assert record.kind is EventKind.TWO_PARTY
        assert record.name == "Lions vs Tigers"
        assert record.date == "2025-03-01"
        assert record.attributes == {
            "remoteImages": 10,
            "hostessImages": 5,
            "selfies": 3,
            "remoteFans": 100,
            "stadium": 2000,
        }
        assert record.source_of is RecordOrigin.SOURCE
        assert record.warnings == []

    def test_computed_columns_never_imported(self, column_map):
        record = decode(sheet_row(all_images=999, total_fans=12345), column_map)
        assert "allImages" not in record.attributes
        assert "totalFans" not in record.attributes

    def test_auto_name_column_is_not_imported(self, column_map):
        record = decode(sheet_row(auto="Something Else"), column_map)
        assert record.name == "Lions vs Tigers"

    def test_token_is_normalized(self, column_map):
        record = decode(sheet_row(token=f"  {TOKEN.upper()} "), column_map)
        assert record.identity_token == TOKEN

    def test_empty_cells_are_skipped(self, column_map):
        record = decode(sheet_row(remote=None, hostess="", selfies="  ", notes=None), column_map)
        assert "remoteImages" not in record.attributes
        assert "hostessImages" not in record.attributes
        assert "selfies" not in record.attributes
        assert record.notes is None

    def test_number_leniency(self, column_map):
        record = decode(sheet_row(selfies="lots", remote="1,500"), column_map)
        assert record.attributes["selfies"] == 0
        assert record.attributes["remoteImages"] == 1500
        assert len(record.warnings) == 1
        assert "selfies" in record.warnings[0]

    def test_uncalculated_formula_is_skipped(self, column_map):
        record = decode(sheet_row(remote_fans="=3+4"), column_map)
        assert "remoteFans" not in record.attributes
        assert record.attributes["stadium"] == 2000
        assert len(record.warnings) == 1
        assert "no calculated value" in record.warnings[0]

    def test_zero_is_a_value(self, column_map):
        record = decode(sheet_row(selfies=0), column_map)
        assert record.attributes["selfies"] == 0

    def test_text_fields(self, column_map):
        record = decode(sheet_row(notes="  rain delay "), column_map)
        assert record.notes == "rain delay"

    @pytest.mark.parametrize("bad_date", ["2025-13-40", "03/01/2025", None, ""])
    def test_invalid_date_rejected(self, column_map, bad_date):
        with pytest.raises(ValidationError):
            decode(sheet_row(date=bad_date), column_map)

    def test_token_from_fallback_column(self):
        column_map = SchemaMapper().generate(["", "Event Title (Custom)", "Event Date"])
        record = decode([TOKEN, "Gala", "2025-05-05"], column_map)
        assert record.identity_token == TOKEN
        assert record.name == "Gala"

    def test_decode_rows_collects_errors(self, column_map):
        rows = [
            (2, sheet_row()),
            (3, sheet_row(date="2025-02-30")),
            (4, sheet_row(p1=None, p2=None, auto=None)),
        ]
        records, errors = decode_rows(rows, column_map)
        assert [r.row_number for r in records] == [2]
        assert [e.row for e in errors] == [3, 4]


class TestEncode:

    def make_record(self, **kwargs):
        defaults = dict(
            name="Lions vs Tigers",
            date="2025-03-01",
            kind=EventKind.TWO_PARTY,
            descriptor1="Lions",
            descriptor2="Tigers",
            attributes={"remoteImages": 10, "hostessImages": 5, "selfies": 3},
            store_id=1,
        )
        defaults.update(kwargs)
        return EventRecord(**defaults)

    def test_encode_row(self, column_map):
        record = self.make_record(identity_token=TOKEN)
        row = encode(record, column_map)

        assert len(row) == len(HEADERS)
        assert row[0] == TOKEN
        assert row[1] == "Lions"
        assert row[2] == "Tigers"
        assert row[3] == ""
        assert row[4] == "Lions vs Tigers"
        assert row[5] == "2025-03-01"
        assert row[6:9] == [10, 5, 3]
        assert row[9] == "=G2+H2+I2"
        assert row[10] == ""
        assert row[12] == "=K2+L2"
        assert row[13] == ""

    def test_assigns_token_when_missing(self, column_map):
        record = self.make_record()
        row = encode(record, column_map)
        assert is_valid_token(row[0])
        assert record.identity_token == row[0]

    def test_existing_token_is_kept(self, column_map):
        record = self.make_record(identity_token=TOKEN)
        encode(record, column_map)
        encode(record, column_map)
        assert record.identity_token == TOKEN

    def test_standalone_title_falls_back_to_name(self, column_map):
        record = self.make_record(kind=EventKind.STANDALONE, descriptor1=None, descriptor2=None, name="Gala")
        row = encode(record, column_map)
        assert row[3] == "Gala"

    def test_sync_status_column(self):
        column_map = SchemaMapper().generate(["Event UUID", "Event Date", "Sync Status"])
        row = encode(self.make_record(), column_map)
        assert row[2] == SYNCED_STATUS

    def test_last_modified_column(self):
        column_map = SchemaMapper().generate(["Event UUID", "Event Date", "Last Modified"])
        row = encode(self.make_record(source_modified_at="2025-03-02T10:00:00+00:00"), column_map)
        assert row[2] == "2025-03-02T10:00:00+00:00"
        row = encode(self.make_record(), column_map)
        assert row[2]

    def test_unmapped_positions_are_none(self):
        column_map = SchemaMapper().generate(["", "Event Date", "Favourite Colour", "Selfies"])
        record = self.make_record()
        row = encode(record, column_map)
        assert row[0] == record.identity_token
        assert row[1] == "2025-03-01"
        assert row[2] is None
        assert row[3] == 3

    def test_computed_with_missing_operand_is_blank(self):
        column_map = SchemaMapper().generate(["Event UUID", "Event Date", "Remote Fans", "Total Fans"])
        row = encode(self.make_record(), column_map)
        assert row[3] == ""

    def test_encode_records_collects_rows(self, column_map):
        encoded, errors = encode_records([self.make_record(), self.make_record(store_id=2)], column_map)
        assert len(encoded) == 2
        assert errors == []

    def test_round_trip(self, column_map):
        original = self.make_record(
            identity_token=TOKEN,
            attributes={"remoteImages": 10, "hostessImages": 5, "selfies": 3, "remoteFans": 7, "stadium": 0},
            notes="sold out",
        )
        decoded = decode(encode(original, column_map), column_map)
        assert decoded.identity_token == TOKEN
        assert decoded.name == original.name
        assert decoded.date == original.date
        assert decoded.kind is original.kind
        assert decoded.attributes == original.attributes
        assert decoded.notes == "sold out"


class TestRewriteRowReferences:

    def test_rewrites_placeholder_row(self):
        assert rewrite_row_references(["=G2+H2+I2"], 7) == ["=G7+H7+I7"]

    def test_ranges_and_absolute_refs(self):
        assert rewrite_row_references(["=SUM(G2:I2)", "=$K$2+L2"], 15) == ["=SUM(G15:I15)", "=$K$15+L15"]

    def test_other_rows_untouched(self):
        assert rewrite_row_references(["=G12+H2"], 5) == ["=G12+H5"]

    def test_function_names_untouched(self):
        assert rewrite_row_references(["=LOG10(G2)"], 9) == ["=LOG10(G9)"]

    def test_non_formula_cells_untouched(self):
        row = ["G2", 2, None, "", math.pi]
        assert rewrite_row_references(row, 4) == row
