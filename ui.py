# ui.py
# Terminal observers: plain console output and a live rich dashboard

from __future__ import annotations
import sys
from typing import List, Optional

from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from models import PortResult, PortState
from scanner import ScanObserver


class ConsoleObserver(ScanObserver):
    """Prints a carriage-return progress line and one line per open port."""

    def __init__(self, stream=None, err_stream=None):
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr

    def on_progress(self, port: int, percentage: float):
        self.stream.write(f"\rScanning port {port}... progress: {percentage:.2f}%")
        self.stream.flush()

    def on_result(self, result: PortResult):
        self.stream.write(
            f"\nPort {result.port} ({result.protocol.display_name}) {result.state} - {result.service}\n"
        )

    def on_complete(self, results: List[PortResult]):
        self.stream.write("\nScan complete.\n")

    def on_error(self, message: str):
        self.err_stream.write(f"\nError: {message}\n")


class ProgressUI(ScanObserver):
    def __init__(self, host: str, total_tasks: int):
        self.host = host
        self.total_tasks = total_tasks
        self.tasks_done = 0
        self.percentage = 0.0
        self.current_port: Optional[int] = None
        self.results: List[PortResult] = []
        self.errors: List[str] = []
        self.finished = False
        self._live: Optional[Live] = None

    def start(self):
        self._live = Live(self._render(), refresh_per_second=12)
        self._live.start()

    def stop(self):
        if self._live:
            self._live.update(self._render())
            self._live.stop()
            self._live = None

    def on_progress(self, port: int, percentage: float):
        self.tasks_done += 1
        self.current_port = port
        self.percentage = percentage
        self._refresh()

    def on_result(self, result: PortResult):
        self.results.append(result)
        self._refresh()

    def on_complete(self, results: List[PortResult]):
        self.finished = True
        self._refresh()

    def on_error(self, message: str):
        self.errors.append(message)
        self._refresh()

    def _refresh(self):
        if self._live:
            self._live.update(self._render())

    def _render(self):
        header = Panel(Text(f"Portsweep: {self.host}", style="bold cyan"))
        status = "done" if self.finished else f"port {self.current_port or '-'}"
        stats = Panel(
            Group(
                ProgressBar(total=100.0, completed=self.percentage),
                Text(
                    f"Tasks: {self.tasks_done}/{self.total_tasks} | "
                    f"{self.percentage:.1f}% | Open: {len(self.results)} | "
                    f"Errors: {len(self.errors)} | {status}",
                    style="white",
                ),
            ),
            title="Progress",
        )

        table = Table(title="Open Ports (latest 15)")
        table.add_column("Port", justify="right")
        table.add_column("Proto")
        table.add_column("State")
        table.add_column("Service")
        for r in self.results[-15:]:
            style = "green" if r.state is PortState.OPEN else "yellow"
            table.add_row(str(r.port), r.protocol.display_name, Text(str(r.state), style=style), r.service)

        return Group(header, stats, table)
