"""Rich console output for the wiki-sync CLI.

This module provides the OutputHandler class for all CLI terminal output:
colored messages, a spinner for blocking work, cycle summaries and the
status report. Supports verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.table import Table

from src.sync_engine.models import CycleReport, SyncEvent, SyncEventType, SyncState

EVENT_STYLES = {
    SyncEventType.SUCCESS: "green",
    SyncEventType.ERROR: "red",
    SyncEventType.CONFLICT: "magenta",
    SyncEventType.WARNING: "yellow",
}


class OutputHandler:
    """Prints messages, summaries and status reports for one CLI run.

    Attributes:
        verbosity: 0 prints summaries, 1 adds progress, 2 adds debug detail
        console: Rich console everything is printed through

    Example:
        >>> handler = OutputHandler(verbosity=1)
        >>> handler.success("Cache cleared")
        >>> with handler.spinner("Syncing..."):
        ...     report = orchestrator.run_cycle()
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        self.verbosity = verbosity
        self.console = Console(
            force_terminal=not no_color,
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        """Green check mark line."""
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        """Red cross line."""
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        """Yellow warning line."""
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{message}[/dim]")

    def print(self, message: str) -> None:
        """Display message without formatting."""
        self.console.print(message)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner while a blocking operation runs.

        Example:
            >>> with handler.spinner("Syncing..."):
            ...     orchestrator.run_cycle()
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10):
            yield

    def print_summary(self, report: CycleReport) -> None:
        """Display the outcome of one sync cycle with color coding."""
        self.console.print("\n[bold]Sync Summary:[/bold]")

        if report.aborted:
            self.console.print(f"  [red]✗[/red] Aborted: {report.error}")
            return

        if report.pushed > 0:
            self.console.print(f"  [green]↑[/green] Pushed: {report.pushed} change(s)")

        if report.pulled > 0:
            self.console.print(f"  [blue]↓[/blue] Pulled: {report.pulled} page(s)")

        if report.conflicts > 0:
            self.console.print(
                f"  [red]⚡[/red] Conflicts: {report.conflicts} "
                f"({report.resolved} resolved, {report.manual} held for manual resolution)"
            )

        if report.failed > 0:
            self.console.print(f"  [red]✗[/red] Failed: {report.failed} item(s)")

        if report.manual > 0:
            self.console.print("\n[red]Sync completed with conflicts needing manual resolution[/red]")
        elif report.failed > 0:
            self.console.print("\n[yellow]Sync completed with failures[/yellow]")
        elif report.pushed == 0 and report.pulled == 0 and report.conflicts == 0:
            self.console.print("\n[green]Already in sync. No changes detected.[/green]")
        else:
            self.console.print("\n[green]Sync completed successfully[/green]")

    def print_status(
        self,
        state: SyncState,
        stats: Dict[str, Any],
        cache_info: Dict[str, Any],
    ) -> None:
        """Display the persisted sync status, statistics and cache overview."""
        table = Table(title="Sync Status", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Status", state.sync_status.value)
        table.add_row("Last sync", state.last_sync or "never")
        table.add_row("Next sync", state.next_sync or "not scheduled")
        table.add_row("Interval", f"{state.interval_minutes:g} minute(s)")
        table.add_row("Pending changes", str(state.pending_changes))
        table.add_row("Error count", str(state.error_count))
        if state.last_error:
            table.add_row("Last error", state.last_error)
        table.add_row(
            "Cycles",
            f"{stats['totalSyncs']} ({stats['successfulSyncs']} ok, {stats['failedSyncs']} failed)",
        )
        if stats.get("averageDurationSeconds") is not None:
            table.add_row("Average duration", f"{stats['averageDurationSeconds']:.1f}s")
        table.add_row("Cached data", "yes" if cache_info.get("hasData") else "no")
        table.add_row("Cache is recent", "yes" if cache_info.get("isRecent") else "no")
        sizes = cache_info.get("size") or {}
        table.add_row(
            "Cache entries",
            ", ".join(f"{namespace}={count}" for namespace, count in sizes.items()),
        )
        self.console.print(table)

        if state.manual_holds:
            self.console.print("\n[bold]Held for manual resolution:[/bold]")
            for item_id, reason in sorted(state.manual_holds.items()):
                self.console.print(f"  [yellow]⚠[/yellow] {item_id}: {reason}")

    def print_history(self, events: List[SyncEvent], limit: int = 10) -> None:
        """Display the most recent sync events, newest first."""
        if not events:
            return
        self.console.print("\n[bold]Recent events:[/bold]")
        for event in events[:limit]:
            style = EVENT_STYLES.get(event.event_type, "white")
            self.console.print(
                f"  [dim]{event.timestamp}[/dim] [{style}]{event.event_type.value:<7}[/{style}] "
                f"{event.message}"
            )
