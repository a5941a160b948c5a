"""Console output for the ftpmirror CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .sync.plan import OperationPlan, QueueName
from .sync.status import SyncStatus
from .utils import format_size


class OutputFormatter:
    """Rich-based console output.

    ``quiet`` suppresses everything except errors; ``json_output`` replaces
    human-readable summaries with JSON documents on stdout.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[blue]{message}[/blue]")

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    @staticmethod
    def format_size(size_bytes: int) -> str:
        return format_size(size_bytes)

    def print_plan(self, plan: OperationPlan, verbose: bool = False) -> None:
        """Print the queue sizes of a plan, and every entry when verbose."""
        if self.json_output:
            self.output_json(
                {
                    name.value: [getattr(e, "id", e) for e in plan.queue(name)]
                    for name in QueueName
                }
            )
            return
        if self.quiet:
            return

        if plan.is_empty:
            self.success("Already in sync, nothing to do")
            return

        table = Table(title="Sync plan", show_header=True, header_style="bold")
        table.add_column("Queue")
        table.add_column("Entries", justify="right")
        for name in QueueName:
            table.add_row(name.label, str(len(plan.queue(name))))
        self.console.print(table)
        self.info(f"Transfer size: {format_size(plan.total_transfer_size)}")

        if verbose:
            for name in QueueName:
                for entry in plan.queue(name):
                    entry_id = getattr(entry, "id", entry)
                    self.console.print(f"  [dim]{name.label}:[/dim] {entry_id}")

    def print_summary(self, status: SyncStatus) -> None:
        """Print the final counters of a run."""
        if self.json_output:
            self.output_json(
                {
                    "phase": status.phase.value,
                    "changes": status.change_count,
                    "localFiles": status.local_file_count,
                    "remoteFiles": status.remote_file_count,
                    "localSize": status.local_total_size,
                    "remoteSize": status.remote_total_size,
                    "transferSize": status.transfer_size,
                    "transferredSize": status.transferred_size,
                }
            )
            return
        if self.quiet:
            return

        self.print(
            f"Local: {status.local_file_count} file(s), "
            f"{format_size(status.local_total_size)}"
        )
        self.print(
            f"Remote: {status.remote_file_count} file(s), "
            f"{format_size(status.remote_total_size)}"
        )
        self.success(
            f"Applied {status.change_count} change(s), transferred "
            f"{format_size(status.transferred_size)}"
        )
