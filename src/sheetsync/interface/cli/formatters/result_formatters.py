"""
CLI result formatters for sync summaries, source status and mappings.

Separates display logic from command logic.
"""

import json
import logging
from typing import List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sheetsync.application.sync.auto_sync import AutoSyncReport
from sheetsync.domain.config import SourceConfig
from sheetsync.domain.models import ColumnDescription, SourceStatus, SyncSummary

logger = logging.getLogger(__name__)
console = Console()


def _when(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "never"


class SyncSummaryFormatter:
    """Displays the outcome of a pull or push."""

    def display(self, summary: SyncSummary, as_json: bool = False) -> None:
        if as_json:
            console.print_json(json.dumps(summary.to_dict()))
            return

        direction = summary.direction.value.capitalize()
        if not summary.success:
            status = "[red]❌ Failed[/red]"
        elif summary.errors:
            status = "[yellow]⚠️ Partial success[/yellow]"
        else:
            status = "[green]✅ Success[/green]"
        dry = " [dim](dry run - nothing written)[/dim]" if summary.dry_run else ""

        lines = [
            f"[bold]Status:[/bold] {status}{dry}",
            f"[bold]{'Rows' if direction == 'Pull' else 'Records'}:[/bold] {summary.total}",
            f"[bold]Created:[/bold] {summary.created}",
            f"[bold]Updated:[/bold] {summary.updated}",
        ]
        if summary.orphans_appended:
            lines.append(f"[bold]Orphans appended:[/bold] {summary.orphans_appended}")
        lines.append(f"[bold]Errors:[/bold] {len(summary.errors)}")
        console.print(Panel.fit("\n".join(lines), title=f"🔄 {direction}", border_style="cyan"))

        if summary.errors:
            self._display_issues("Errors", summary.errors, "red")
        if summary.warnings:
            self._display_issues("Warnings", summary.warnings, "yellow")
        if summary.preview:
            self._display_preview(summary)

    def _display_issues(self, title: str, issues, style: str) -> None:
        table = Table(title=title, title_style=style)
        table.add_column("Row / Record", style="cyan", no_wrap=True)
        table.add_column("Message", style=style)
        for issue in issues:
            if issue.record_id is not None:
                where = f"#{issue.record_id}"
            elif issue.row is not None:
                where = f"row {issue.row}"
            else:
                where = "-"
            table.add_row(where, issue.message)
        console.print(table)

    def _display_preview(self, summary: SyncSummary) -> None:
        table = Table(title="Preview")
        table.add_column("Action", style="magenta")
        table.add_column("Row", style="cyan", justify="right")
        table.add_column("Event", style="white")
        table.add_column("Record", style="blue", justify="right")
        for entry in summary.preview:
            table.add_row(
                entry.action.value,
                str(entry.row) if entry.row is not None else "-",
                entry.name,
                str(entry.record_id) if entry.record_id is not None else "-",
            )
        console.print(table)


class SourceFormatter:
    """Displays sources, their sync state and live sheet health."""

    def display_sources(self, sources: List[SourceConfig]) -> None:
        if not sources:
            console.print("[yellow]No sources registered[/yellow]")
            return
        table = Table(title="📄 Sources")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Workbook", style="blue")
        table.add_column("Sheet", style="blue")
        table.add_column("Mode", style="magenta")
        table.add_column("Enabled", style="green")
        for source in sources:
            table.add_row(
                source.id,
                source.display_name,
                source.workbook_path,
                source.sheet_name,
                source.sync_mode.value,
                "[green]✅ Yes[/green]" if source.enabled else "[red]❌ No[/red]",
            )
        console.print(table)

    def display_status(self, status: SourceStatus) -> None:
        state = status.state
        last = state.last_sync_status.value if state.last_sync_status else "-"
        lines = [
            f"[bold]Source:[/bold] {status.name} ({status.source_id})",
            f"[bold]Enabled:[/bold] {status.enabled}   [bold]Mode:[/bold] {status.sync_mode}",
            f"[bold]Last sync:[/bold] {_when(state.last_sync_at)} ({last})",
            f"[bold]Last pull:[/bold] {_when(state.last_pull_at)}   [bold]Pulls:[/bold] {state.pull_count}",
            f"[bold]Last push:[/bold] {_when(state.last_push_at)}   [bold]Pushes:[/bold] {state.push_count}",
            f"[bold]Last run:[/bold] {state.last_created} created, {state.last_updated} updated",
            f"[bold]Events in store:[/bold] {state.total_events}",
        ]
        if state.sync_in_progress:
            lines.append(f"[yellow]Sync in progress since {_when(state.lock_acquired_at)}[/yellow]")
        if state.last_sync_error:
            lines.append(f"[red]Last error:[/red] {state.last_sync_error}")

        if status.checked_source:
            if status.source_error:
                lines.append(f"[red]Sheet:[/red] {status.source_error}")
            else:
                lines.append(
                    f"[bold]Sheet:[/bold] {status.data_rows} data rows, "
                    f"{len(status.mapping)} mapped columns, "
                    f"{len(status.unknown_headers)} unknown"
                )
                for kind, rows in status.token_issues.items():
                    if rows:
                        lines.append(f"[yellow]Token {kind}:[/yellow] rows {', '.join(map(str, rows))}")

        console.print(Panel.fit("\n".join(lines), title="📊 Sync Status", border_style="cyan"))

    def display_mapping(self, mapping: List[ColumnDescription], unknown: List[str]) -> None:
        table = Table(title="🗺️ Column Mapping")
        table.add_column("Col", style="cyan", justify="right")
        table.add_column("Header", style="white")
        table.add_column("Field", style="blue")
        table.add_column("Path", style="dim")
        table.add_column("Type", style="magenta")
        table.add_column("Flags", style="yellow")
        for column in mapping:
            table.add_row(
                column.letter,
                column.header,
                column.canonical_name,
                column.path,
                column.type,
                ", ".join(column.flags),
            )
        console.print(table)
        if unknown:
            console.print(f"[yellow]⚠️ Unknown headers (skipped): {', '.join(unknown)}[/yellow]")


class AutoSyncFormatter:
    """Displays the totals of an auto sync run."""

    def display(self, report: AutoSyncReport) -> None:
        table = Table(title="⏱️ Auto Sync")
        table.add_column("Source", style="cyan")
        table.add_column("Status")
        table.add_column("Created", justify="right")
        table.add_column("Updated", justify="right")
        table.add_column("Error", style="red")
        for result in report.results:
            summary = result.summary
            error = result.error or (
                summary.errors[0].message if summary and summary.errors and not summary.success else ""
            )
            table.add_row(
                result.source_id,
                "[green]✅ OK[/green]" if result.success else "[red]❌ Failed[/red]",
                str(summary.created) if summary else "-",
                str(summary.updated) if summary else "-",
                error,
            )
        console.print(table)
        console.print(
            f"\n[blue]📊 {report.sources_processed} processed, {report.sources_failed} failed, "
            f"{report.events_created} created, {report.events_updated} updated[/blue]"
        )
