# Filename: src/straceview/ui/app.py
"""Main Textual application for browsing a parsed trace."""

import logging
from collections import deque

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.reactive import reactive
from textual.widgets import Footer, Header, Static
from textual.worker import Worker, WorkerState

from straceview.export import summarize
from straceview.parser.records import CallRecord, ParseError
from straceview.parser.resolver import Addr2LineResolver

from .call_table import CallTable
from .detail_screen import DetailScreen
from .error_screen import ErrorScreen
from .log_screen import LogScreen

log = logging.getLogger(__name__)


class TraceViewApp(App[None]):
    """Browses call records, their backtraces and the parse errors."""

    TITLE = "straceview"

    BINDINGS = [
        Binding("q,escape", "quit", "Quit", show=True),
        Binding("enter,d", "show_detail", "Detail", show=True),
        Binding("R", "resolve_all", "Resolve all", show=True),
        Binding("e", "show_errors", "Errors", show=True),
        Binding("l", "show_log", "Log", show=True),
    ]

    DEFAULT_CSS = """
    #status-bar {
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    """

    status_text = reactive("")

    def __init__(
        self,
        records: list[CallRecord],
        errors: list[ParseError],
        resolver: Addr2LineResolver,
        log_queue: deque,
        source_name: str = "",
    ):
        super().__init__()
        self.records = records
        self.errors = errors
        self.resolver = resolver
        self.log_queue = log_queue
        self.sub_title = source_name
        self._resolve_worker: Worker | None = None
        self._seen_version = -1

    def compose(self) -> ComposeResult:
        yield Header()
        yield CallTable(id="call-table")
        yield Static(self.status_text, id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.install_screen(LogScreen(self.log_queue), name="log")
        table = self.query_one(CallTable)
        table.load(self.records)
        table.focus()
        self._seen_version = self.resolver.cache.version
        self.update_status()
        self.set_interval(0.5, self.check_resolution)
        log.info(f"Viewer showing {len(self.records)} records.")

    def watch_status_text(self, new_text: str) -> None:
        if self.is_mounted:
            self.query_one("#status-bar", Static).update(new_text)

    def update_status(self) -> None:
        summary = summarize(self.records)
        parts = [
            f"{summary['total_syscalls']} calls",
            f"{summary['failed_syscalls']} failed",
            f"{summary['signals']} signals",
            f"{summary['exits']} exits",
            f"{len(summary['unique_pids'])} PIDs",
        ]
        if summary["incomplete"]:
            parts.append(f"{summary['incomplete']} incomplete")
        parts.append(f"{len(self.errors)} parse errors")
        if self.resolver.cache_size:
            parts.append(f"{self.resolver.cache_size} addresses resolved")
        if self._resolve_worker and self._resolve_worker.state == WorkerState.RUNNING:
            parts.append("resolving...")
        self.status_text = " | ".join(parts)

    def check_resolution(self) -> None:
        """Refreshes the status bar while a resolution worker fills the cache."""
        version = self.resolver.cache.version
        if version != self._seen_version:
            self._seen_version = version
            self.update_status()

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker is not self._resolve_worker:
            return
        if event.state == WorkerState.SUCCESS:
            self.notify(f"Resolved {event.worker.result} frames.", timeout=3)
        elif event.state == WorkerState.ERROR:
            log.error(f"Resolution worker failed: {event.worker.error}")
            self.notify("Frame resolution failed, see log.", severity="error")
        self.update_status()

    # --- Actions ---

    def action_show_detail(self) -> None:
        table = self.query_one(CallTable)
        index = table.selected_index
        if index is None:
            self.notify("No row selected.", severity="warning", timeout=2)
            return
        self.push_screen(DetailScreen(index, self.records[index], self.resolver))

    def action_resolve_all(self) -> None:
        if self._resolve_worker and self._resolve_worker.state == WorkerState.RUNNING:
            self.notify("Already resolving.", timeout=2)
            return
        if not any(record.backtrace for record in self.records):
            self.notify("No backtraces in this trace.", severity="warning", timeout=2)
            return
        log.info("Resolving all backtrace frames...")
        self._resolve_worker = self.run_worker(
            lambda: self.resolver.resolve_records(self.records),
            name="resolve_all",
            group="resolve",
            thread=True,
            exclusive=True,
        )
        self.update_status()

    def action_show_errors(self) -> None:
        self.push_screen(ErrorScreen(self.errors))

    def action_show_log(self) -> None:
        if isinstance(self.screen, LogScreen):
            self.pop_screen()
        else:
            self.push_screen("log")
