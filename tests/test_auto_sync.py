"""
Tests for scheduled auto sync and the application container.
"""

import pytest

from conftest import event_row, make_workbook
from sheetsync.application.container import Container
from sheetsync.application.sync import run_auto_sync
from sheetsync.domain.config import SourceConfig, SyncMode
from sheetsync.domain.errors import ConfigError


@pytest.fixture
def container(tmp_path):
    container = Container(tmp_path / "config")
    yield container
    container.reset()


def add_source(container, tmp_path, source_id, rows=None, **kwargs):
    path = tmp_path / f"{source_id}.xlsx"
    if rows is not None:
        make_workbook(path, rows)
    container.store.upsert_source(SourceConfig(id=source_id, workbook_path=str(path), **kwargs))
    return path


class TestContainer:

    def test_store_lives_next_to_config(self, container, tmp_path):
        container.store.count_events("x")
        assert (tmp_path / "output" / "sheetsync.db").exists()

    def test_unknown_source(self, container):
        with pytest.raises(ConfigError, match="ghost"):
            container.get_source("ghost")

    def test_transport_is_cached_per_source(self, container, tmp_path):
        add_source(container, tmp_path, "main", [])
        source = container.get_source("main")
        assert container.transport_for(source) is container.transport_for(source)

    def test_relative_workbook_path(self, container, tmp_path):
        make_workbook(tmp_path / "events.xlsx", [event_row(title="Gala")])
        container.store.upsert_source(SourceConfig(id="rel", workbook_path="events.xlsx"))
        summary = container.orchestrator_for(container.get_source("rel")).pull()
        assert summary.created == 1


class TestAutoSync:

    def test_only_enabled_auto_sources(self, container, tmp_path):
        add_source(container, tmp_path, "auto", [event_row(title="A"), event_row(title="B")], sync_mode=SyncMode.AUTO)
        add_source(container, tmp_path, "manual", [event_row(title="C")])
        add_source(container, tmp_path, "off", [event_row(title="D")], sync_mode=SyncMode.AUTO, enabled=False)

        report = run_auto_sync(container)

        assert report.success
        assert [r.source_id for r in report.results] == ["auto"]
        assert report.events_created == 2
        assert container.store.count_events("manual") == 0
        assert container.store.count_events("off") == 0

    def test_failure_is_isolated(self, container, tmp_path):
        add_source(container, tmp_path, "a-broken", None, sync_mode=SyncMode.AUTO)
        add_source(container, tmp_path, "b-good", [event_row(title="A")], sync_mode=SyncMode.AUTO)

        report = run_auto_sync(container)

        assert not report.success
        assert report.sources_failed == 1
        assert report.sources_processed == 1
        assert report.events_created == 1
        broken, good = report.results
        assert broken.success is False
        assert "not found" in broken.summary.errors[0].message
        assert good.success is True

    def test_second_run_updates(self, container, tmp_path):
        add_source(container, tmp_path, "auto", [event_row(title="A")], sync_mode=SyncMode.AUTO)
        run_auto_sync(container)
        report = run_auto_sync(container)
        assert report.events_created == 0
        assert report.events_updated == 1

    def test_dry_run(self, container, tmp_path):
        add_source(container, tmp_path, "auto", [event_row(title="A")], sync_mode=SyncMode.AUTO)
        report = run_auto_sync(container, dry_run=True)
        assert report.events_created == 1
        assert container.store.count_events("auto") == 0

    def test_no_sources(self, container):
        report = run_auto_sync(container)
        assert report.success
        assert report.results == []
