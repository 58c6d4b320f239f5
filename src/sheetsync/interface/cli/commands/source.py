"""
Source commands - register and list sheet sources.
"""

import logging
from typing import Optional

import typer
from rich.console import Console

from sheetsync.application.container import Container
from sheetsync.domain.config import SourceConfig, SyncMode
from sheetsync.interface.cli.formatters import SourceFormatter

logger = logging.getLogger(__name__)
console = Console()

source_app = typer.Typer(help="Register and list sheet sources.", no_args_is_help=True)


@source_app.command("add")
def add_source(  # pylint: disable=too-many-arguments
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Unique source id."),
    workbook: str = typer.Argument(..., help="Path to the .xlsx workbook."),
    sheet: str = typer.Option("Events", "--sheet", help="Worksheet name."),
    name: Optional[str] = typer.Option(None, "--name", help="Display name."),
    header_row: int = typer.Option(1, "--header-row", min=1, help="Header row number."),
    data_start_row: int = typer.Option(2, "--data-start-row", min=2, help="First data row."),
    token_column: Optional[str] = typer.Option(
        None, "--token-column", help="Fallback token column letter (default from settings)."
    ),
    mode: SyncMode = typer.Option(SyncMode.MANUAL, "--mode", help="manual or auto (cron)."),
    enabled: bool = typer.Option(True, "--enabled/--disabled", help="Include in syncs."),
):
    """Register a source (or update an existing one)."""
    container: Container = ctx.obj
    try:
        source = SourceConfig(
            id=source_id,
            name=name or "",
            workbook_path=workbook,
            sheet_name=sheet,
            header_row=header_row,
            data_start_row=data_start_row,
            token_column=token_column or container.settings.default_token_column,
            sync_mode=mode,
            enabled=enabled,
        )
        container.store.upsert_source(source)
    except Exception as e:
        logger.error("Source add failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✅ Source '{source.id}' saved[/green]")


@source_app.command("list")
def list_sources(ctx: typer.Context):
    """List registered sources."""
    container: Container = ctx.obj
    try:
        sources = container.store.list_sources()
    except Exception as e:
        logger.error("Source list failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)

    SourceFormatter().display_sources(sources)


@source_app.command("import")
def import_sources(ctx: typer.Context):
    """Register every source listed in config/sources.json."""
    container: Container = ctx.obj
    try:
        sources = container.config_repository.load_sources()
        for source in sources:
            container.store.upsert_source(source)
    except Exception as e:
        logger.error("Source import failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✅ Imported {len(sources)} source(s)[/green]")
