"""
CLI tests using typer's CliRunner against a temporary project directory.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from conftest import event_row, make_workbook
from sheetsync.infrastructure.sqlite.store import EventStore
from sheetsync.interface.cli import app

runner = CliRunner(env={"COLUMNS": "200"})


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def project(tmp_path):
    (tmp_path / "config").mkdir()
    return tmp_path


def invoke(project, *args):
    return runner.invoke(app, ["--config-dir", str(project / "config"), *args])


def register(project, rows=None):
    path = project / "events.xlsx"
    if rows is not None:
        make_workbook(path, rows)
    result = invoke(project, "source", "add", "main", str(path))
    assert result.exit_code == 0, result.output
    return path


def open_store(project):
    return EventStore(project / "output" / "sheetsync.db")


class TestSourceCommands:

    def test_add_and_list(self, project):
        register(project)
        result = invoke(project, "source", "list")
        assert result.exit_code == 0
        assert "main" in result.output

    def test_add_invalid_id(self, project):
        result = invoke(project, "source", "add", "bad id", "x.xlsx")
        assert result.exit_code == 1

    def test_import(self, project):
        (project / "config" / "sources.json").write_text(
            json.dumps([{"id": "a", "workbook_path": "a.xlsx", "sync_mode": "auto"}, {"id": "b", "workbook_path": "b.xlsx"}])
        )
        result = invoke(project, "source", "import")
        assert result.exit_code == 0, result.output
        store = open_store(project)
        try:
            assert [s.id for s in store.list_sources()] == ["a", "b"]
        finally:
            store.close()


class TestSyncCommands:

    def test_pull_and_push(self, project):
        register(project, [event_row("Lions", "Tigers", selfies=2), event_row(title="Gala")])

        result = invoke(project, "pull", "main")
        assert result.exit_code == 0, result.output
        assert "Created" in result.output

        result = invoke(project, "push", "main", "--json")
        assert result.exit_code == 0, result.output
        assert '"updated": 2' in result.output

        store = open_store(project)
        try:
            assert store.count_events("main") == 2
        finally:
            store.close()

    def test_pull_json(self, project):
        register(project, [event_row(title="Gala")])
        result = invoke(project, "pull", "main", "--dry-run", "--json")
        assert result.exit_code == 0, result.output
        assert '"totalRows": 1' in result.output
        assert '"action": "create"' in result.output

    def test_pull_failure_exits_nonzero(self, project):
        register(project)
        result = invoke(project, "pull", "main")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unknown_source(self, project):
        result = invoke(project, "pull", "ghost")
        assert result.exit_code == 1
        assert "ghost" in result.output

    def test_pull_event(self, project):
        register(project, [event_row(title="Gala", selfies=1)])
        invoke(project, "pull", "main")
        result = invoke(project, "pull-event", "main", "1")
        assert result.exit_code == 0, result.output

    def test_auto_sync(self, project):
        register(project, [event_row(title="Gala")])
        result = invoke(project, "auto-sync")
        assert result.exit_code == 0, result.output


class TestInspectionCommands:

    def test_setup_then_mapping(self, project):
        path = register(project)
        result = invoke(project, "setup", "main")
        assert result.exit_code == 0, result.output
        assert path.exists()

        result = invoke(project, "mapping", "main")
        assert result.exit_code == 0, result.output

    def test_setup_refuses_existing_header(self, project):
        register(project, [])
        result = invoke(project, "setup", "main")
        assert result.exit_code == 1
        result = invoke(project, "setup", "main", "--force")
        assert result.exit_code == 0, result.output

    def test_status(self, project):
        register(project, [event_row(title="Gala")])
        result = invoke(project, "status", "main")
        assert result.exit_code == 0, result.output
        assert "main" in result.output

    def test_status_offline(self, project):
        register(project)
        result = invoke(project, "status", "main", "--offline")
        assert result.exit_code == 0, result.output

    def test_fields(self, project):
        result = invoke(project, "fields")
        assert result.exit_code == 0, result.output

    def test_invalid_settings(self, project):
        (project / "config" / "sheetsync.json").write_text(json.dumps({"log_level": "LOUD"}))
        result = invoke(project, "fields")
        assert result.exit_code == 1
