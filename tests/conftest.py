"""
Shared fixtures: real workbooks (openpyxl) and real SQLite stores in tmp_path.
"""

import re
import sys
import zipfile
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parents[1] / "src"))

import pytest
from openpyxl import Workbook

from sheetsync.domain.config import SourceConfig, SyncSettings
from sheetsync.infrastructure.excel.workbook_source import WorkbookSource
from sheetsync.infrastructure.sqlite.store import EventStore

HEADERS = [
    "Event UUID",
    "Partner 1 (Home)",
    "Partner 2 (Away)",
    "Event Title (Custom)",
    "Event Name (Auto)",
    "Event Date",
    "Remote Images",
    "Hostess Images",
    "Selfies",
    "All Images",
    "Remote Fans",
    "Stadium Fans",
    "Total Fans",
    "Notes",
]


def event_row(
    partner1=None,
    partner2=None,
    title=None,
    date="2025-03-01",
    token=None,
    remote_images=None,
    hostess_images=None,
    selfies=None,
    remote_fans=None,
    stadium=None,
    notes=None,
):
    """A data row laid out like HEADERS, with live formulas for computed columns."""
    return [
        token,
        partner1,
        partner2,
        title,
        None,
        date,
        remote_images,
        hostess_images,
        selfies,
        "=G2+H2+I2",
        remote_fans,
        stadium,
        "=K2+L2",
        notes,
    ]


def make_workbook(path: Path, rows, headers=None, sheet_name: str = "Events") -> Path:
    """Write a header row plus data rows to a new workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws.append(list(headers if headers is not None else HEADERS))
    for row in rows:
        ws.append(list(row))
    wb.save(path)
    return path


def cache_formula_results(path: Path, results: dict, sheet_xml: str = "xl/worksheets/sheet1.xml") -> Path:
    """
    Store calculated results for formula cells, the way a spreadsheet app
    does when it saves. openpyxl itself never writes them.
    """
    with zipfile.ZipFile(path) as archive:
        entries = [(info, archive.read(info.filename)) for info in archive.infolist()]

    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        for info, data in entries:
            if info.filename == sheet_xml:
                xml = data.decode("utf-8")
                for coordinate, result in results.items():
                    xml, count = re.subn(
                        rf'(<c r="{coordinate}"[^>]*>)(<f>[^<]*</f>)(?:<v\s*/>|<v>[^<]*</v>)?(</c>)',
                        rf"\g<1>\g<2><v>{result}</v>\g<3>",
                        xml,
                    )
                    assert count == 1, f"no formula cell {coordinate}"
                data = xml.encode("utf-8")
            archive.writestr(info, data)
    return path


@pytest.fixture
def workbook_path(tmp_path):
    return tmp_path / "events.xlsx"


@pytest.fixture
def store(tmp_path):
    store = EventStore(tmp_path / "sheetsync.db")
    store.initialize_schema()
    yield store
    store.close()


@pytest.fixture
def source(workbook_path, store):
    config = SourceConfig(id="main", name="Main", workbook_path=str(workbook_path))
    store.upsert_source(config)
    return config


@pytest.fixture
def settings():
    return SyncSettings()


@pytest.fixture
def transport(workbook_path):
    return WorkbookSource(workbook_path, "Events")


class RecordingStore:
    """Wraps a store and records every call by name."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def __getattr__(self, name):
        target = getattr(self.inner, name)
        if not callable(target):
            return target

        def wrapper(*args, **kwargs):
            self.calls.append(name)
            return target(*args, **kwargs)

        return wrapper

    def count(self, name):
        return self.calls.count(name)


class RecordingTransport:
    """Wraps a transport and records every call by name."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def __getattr__(self, name):
        target = getattr(self.inner, name)
        if not callable(target):
            return target

        def wrapper(*args, **kwargs):
            self.calls.append(name)
            return target(*args, **kwargs)

        return wrapper

    def count(self, name):
        return self.calls.count(name)

    @property
    def writes(self):
        return [c for c in self.calls if c in ("write_row", "append_rows", "clear_range", "format_header")]
