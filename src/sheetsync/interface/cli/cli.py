"""
CLI main entry point.

    sheetsync source add main events.xlsx --sheet Events
    sheetsync setup main
    sheetsync pull main --dry-run
    sheetsync push main
    sheetsync status main
    sheetsync auto-sync          # from cron
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from sheetsync.application.container import Container
from sheetsync.application.sync.auto_sync import run_auto_sync
from sheetsync.application.sync.schema_mapper import SchemaMapper
from sheetsync.domain.fields import iter_fields
from sheetsync.domain.models import ColumnMap, SyncSummary
from sheetsync.infrastructure.logging_config import setup_logging
from sheetsync.interface.cli.commands import source_app
from sheetsync.interface.cli.formatters import (
    AutoSyncFormatter,
    SourceFormatter,
    SyncSummaryFormatter,
)

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="sheetsync",
    help="🔄 SheetSync - bidirectional sync between event workbooks and the event store",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.add_typer(source_app, name="source")


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", "-c", help="Configuration directory (default: ./config)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output."),
):
    """
    🔄 SheetSync

    Pulls event rows from a worksheet into the event store and pushes store
    events back, keeping each row tied to its event by a hidden token column.
    """
    container = Container(config_dir)
    try:
        settings = container.settings
    except Exception as e:
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)

    level = logging.DEBUG if verbose else settings.numeric_log_level
    log_file = container.settings_manager.log_file
    setup_logging(level, str(log_file) if log_file else None)
    ctx.obj = container


def _finish(summary: SyncSummary, as_json: bool) -> None:
    SyncSummaryFormatter().display(summary, as_json=as_json)
    if not summary.success:
        raise typer.Exit(1)


@app.command()
def pull(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Source to pull."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change, write nothing."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
):
    """Import sheet rows into the event store."""
    container: Container = ctx.obj
    try:
        summary = container.orchestrator_for(container.get_source(source_id)).pull(dry_run=dry_run)
    except Exception as e:
        logger.error("Pull command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    _finish(summary, as_json)


@app.command()
def push(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Source to push."),
    event_ids: Optional[List[int]] = typer.Option(
        None, "--event", "-e", help="Only push these event ids (repeatable)."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change, write nothing."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
):
    """Export store events to the sheet."""
    container: Container = ctx.obj
    try:
        orchestrator = container.orchestrator_for(container.get_source(source_id))
        summary = orchestrator.push(dry_run=dry_run, record_ids=event_ids or None)
    except Exception as e:
        logger.error("Push command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    _finish(summary, as_json)


@app.command("pull-event")
def pull_event(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Source the event belongs to."),
    event_id: int = typer.Argument(..., help="Event id to refresh from its row."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
):
    """Refresh a single event from its sheet row."""
    container: Container = ctx.obj
    try:
        summary = container.orchestrator_for(container.get_source(source_id)).pull_record(event_id)
    except Exception as e:
        logger.error("Pull-event command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    _finish(summary, as_json)


@app.command()
def status(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Source to inspect."),
    offline: bool = typer.Option(False, "--offline", help="Skip reading the workbook."),
):
    """Show sync state and sheet health for a source."""
    container: Container = ctx.obj
    try:
        result = container.orchestrator_for(container.get_source(source_id)).status(
            check_source=not offline
        )
    except Exception as e:
        logger.error("Status command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    SourceFormatter().display_status(result)


@app.command()
def mapping(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Source whose header to map."),
):
    """Show how the live header row maps to fields."""
    container: Container = ctx.obj
    try:
        result = container.orchestrator_for(container.get_source(source_id)).status()
        if result.source_error:
            raise RuntimeError(result.source_error)
    except Exception as e:
        logger.error("Mapping command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    SourceFormatter().display_mapping(result.mapping, result.unknown_headers)


@app.command()
def fields():
    """List every field a header can map to."""
    column_map = ColumnMap(columns=dict(enumerate(iter_fields())))
    column_map.headers = {i: f.header for i, f in column_map.columns.items()}
    SourceFormatter().display_mapping(SchemaMapper.describe(column_map), [])


@app.command()
def setup(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Source to set up."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing header row."),
):
    """Write the default header row to the source's sheet (creating it if needed)."""
    container: Container = ctx.obj
    try:
        orchestrator = container.orchestrator_for(container.get_source(source_id), create=True)
        headers = orchestrator.setup_sheet(force=force)
    except Exception as e:
        logger.error("Setup command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✅ Wrote {len(headers)} headers[/green]")


@app.command("auto-sync")
def auto_sync(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change, write nothing."),
):
    """Pull every enabled source in auto mode (run from cron)."""
    container: Container = ctx.obj
    try:
        report = run_auto_sync(container, dry_run=dry_run)
    except Exception as e:
        logger.error("Auto sync command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    AutoSyncFormatter().display(report)
    if not report.success:
        raise typer.Exit(1)


def main() -> int:
    """
    Main entry point for the SheetSync CLI.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    app()
    return 0
