"""
Scheduled auto sync.

Pulls every enabled source configured with sync_mode "auto". Intended to be
run from cron (see the `auto-sync` CLI command). One failing source never
stops the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sheetsync.domain.config import SyncMode
from sheetsync.domain.models import SyncSummary

if TYPE_CHECKING:
    from sheetsync.application.container import Container

logger = logging.getLogger(__name__)


@dataclass
class SourceRunResult:
    source_id: str
    success: bool
    summary: SyncSummary | None = None
    error: str | None = None


@dataclass
class AutoSyncReport:
    """Totals over all auto sources plus per-source results."""

    sources_processed: int = 0
    sources_failed: int = 0
    events_created: int = 0
    events_updated: int = 0
    results: list[SourceRunResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.sources_failed == 0


def run_auto_sync(container: "Container", dry_run: bool = False) -> AutoSyncReport:
    """
    Pull all enabled auto-mode sources.

    Args:
        container: Application container (store, transports, settings)
        dry_run: Compute decisions only

    Returns:
        AutoSyncReport
    """
    report = AutoSyncReport()
    sources = [
        s
        for s in container.store.list_sources()
        if s.enabled and s.sync_mode is SyncMode.AUTO
    ]
    logger.info("Auto sync: %d source(s) due", len(sources))

    for source in sources:
        try:
            summary = container.orchestrator_for(source).pull(dry_run=dry_run)
        except Exception as e:
            logger.exception("Auto sync of %s failed", source.id)
            report.sources_failed += 1
            report.results.append(SourceRunResult(source.id, False, error=str(e)))
            continue

        report.results.append(SourceRunResult(source.id, summary.success, summary))
        if summary.success:
            report.sources_processed += 1
            report.events_created += summary.created
            report.events_updated += summary.updated
        else:
            report.sources_failed += 1
            logger.warning(
                "Auto sync of %s failed: %s",
                source.id,
                summary.errors[0].message if summary.errors else "unknown error",
            )

    logger.info(
        "Auto sync finished: %d processed, %d failed, %d created, %d updated",
        report.sources_processed,
        report.sources_failed,
        report.events_created,
        report.events_updated,
    )
    return report
