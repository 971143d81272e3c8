"""Console reporting for CLI runs."""

from threading import Lock

import httpx
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from core.request_types import Transform
from ui.log_utils import write_cli_log, write_request_log

console = Console()


class ConsoleReporter:
    """Print each constructed or skipped request and keep per-part counts."""

    def __init__(self, *, log_requests: bool = False, out: Console | None = None):
        self._console = out or console
        self._log_requests = log_requests
        self._lock = Lock()
        self._emitted: dict[str, int] = {}
        self._skipped: dict[str, int] = {}
        self._errors: list[str] = []

    def log_request(self, transform: Transform, request: httpx.Request) -> None:
        with self._lock:
            part = transform.part.value
            self._emitted[part] = self._emitted.get(part, 0) + 1
            line = Text()
            line.append(f"{request.method} ", style="bold cyan")
            line.append(str(request.url))
            line.append(f"  [{part}] {transform.key}", style="dim")
            self._console.print(line)
        if self._log_requests:
            write_request_log(transform, request)

    def log_skipped(self, transform: Transform, error: Exception) -> None:
        with self._lock:
            part = transform.part.value
            self._skipped[part] = self._skipped.get(part, 0) + 1
            line = Text()
            line.append("Skipped ", style="yellow")
            line.append(f"[{part}] {transform.key}: {error}")
            self._console.print(line)
        write_cli_log(
            "WARNING",
            f"Could not create request for fuzzing: {error}",
            part=transform.part.value,
            key=transform.key,
        )

    def log_warning(self, message: str) -> None:
        self._console.print(f"[yellow]Warning:[/yellow] {escape(message)}")
        write_cli_log("WARNING", message)

    def log_error(self, message: str) -> None:
        with self._lock:
            self._errors.append(message)
        self._console.print(f"[red][ERROR][/red] {escape(message)}")
        write_cli_log("ERROR", message)

    def summary(self) -> Table:
        """Build a per-part table of emitted and skipped requests."""
        table = Table(title="Mutations", show_header=True, header_style="bold")
        table.add_column("Part")
        table.add_column("Emitted", justify="right", style="green")
        table.add_column("Skipped", justify="right", style="yellow")
        with self._lock:
            for part in sorted(set(self._emitted) | set(self._skipped)):
                table.add_row(part, str(self._emitted.get(part, 0)), str(self._skipped.get(part, 0)))
        return table
