# Filename: src/straceview/ui/detail_screen.py
"""Screen showing one record in full, with its backtrace."""

import logging

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Static

from straceview.parser.records import CallRecord
from straceview.parser.resolver import Addr2LineResolver
from straceview.util.display import short_path

from .colors import event_text, result_text

log = logging.getLogger(__name__)


class DetailScreen(Screen):
    """Arguments, outcome and backtrace of a single record."""

    BINDINGS = [
        Binding("escape,q,enter", "app.pop_screen", "Close", show=True),
        Binding("r", "resolve_frames", "Resolve frames", show=True),
    ]

    DEFAULT_CSS = """
    #detail-header {
        height: auto;
        padding: 0 1;
    }
    #detail-body {
        height: auto;
        max-height: 50%;
        border: round $panel;
        padding: 0 1;
    }
    #frame-table {
        height: 1fr;
    }
    """

    def __init__(self, index: int, record: CallRecord, resolver: Addr2LineResolver):
        self.index = index
        self.record = record
        self.resolver = resolver
        self._seen_version = -1
        super().__init__()

    def compose(self) -> ComposeResult:
        with Vertical(id="detail-content"):
            yield Static(self._header_text(), id="detail-header")
            with VerticalScroll(id="detail-body"):
                yield Static(self._body_text(), id="detail-text")
            yield DataTable(id="frame-table", cursor_type="row", zebra_stripes=True)
        yield Footer()

    def _header_text(self) -> Text:
        record = self.record
        return Text.assemble(
            (f"#{self.index + 1} ", "dim"),
            "PID ",
            (str(record.pid), "bold"),
            f"  {record.timestamp or ''}  ",
            event_text(record),
            "  ",
            result_text(record),
        )

    def _body_text(self) -> Text:
        record = self.record
        text = Text()
        if record.signal is not None:
            text.append("Signal: ", style="bold")
            text.append(f"{record.signal.name}\n")
            text.append(record.signal.detail)
        elif record.exit is not None:
            text.append("Process ", style="bold")
            text.append(str(record.exit))
        else:
            text.append(f"{record.name}(", style="bold")
            text.append(record.arguments)
            text.append(")", style="bold")
            if record.is_unfinished:
                text.append("\n\nThe call never completed.", style="yellow")
            else:
                text.append(f" = {record.return_value}")
            if record.error is not None:
                text.append(f"\n\n{record.error.code}", style="bold red")
                text.append(f" ({record.error.message})", style="red")
        return text

    def on_mount(self) -> None:
        table = self.query_one("#frame-table", DataTable)
        table.add_column("#", key="n", width=3)
        table.add_column("Binary", key="binary", width=40)
        table.add_column("Symbol", key="symbol", width=36)
        table.add_column("Address", key="address", width=14)
        table.add_column("Source", key="source", width=50)
        self._fill_frames()
        table.focus()
        self.set_interval(0.25, self._check_resolution)

    def _fill_frames(self) -> None:
        table = self.query_one("#frame-table", DataTable)
        table.clear()
        self._seen_version = self.resolver.cache.version
        if not self.record.backtrace:
            table.add_row(Text("No backtrace recorded for this call.", style="dim"))
            return
        for n, frame in enumerate(self.record.backtrace):
            # The worker stores into the cache before it updates the frame
            location = frame.resolved
            if location is None:
                _, location = self.resolver.cache.lookup((frame.binary, frame.address))
            source = (
                Text(short_path(str(location), 50), style="green")
                if location is not None
                else Text("?", style="dim")
            )
            table.add_row(
                Text(str(n), style="dim"),
                Text(short_path(frame.binary, 40)),
                Text(frame.symbol or "??", style="" if frame.symbol else "dim"),
                Text(frame.address),
                source,
            )

    def _check_resolution(self) -> None:
        if self.resolver.cache.version != self._seen_version:
            self._fill_frames()

    def action_resolve_frames(self) -> None:
        if not self.record.backtrace:
            self.notify("This call has no backtrace.", severity="warning", timeout=2)
            return
        frames = list(self.record.backtrace)
        log.info(f"Resolving {len(frames)} frames of record #{self.index + 1}")
        self.run_worker(
            lambda: self.resolver.resolve_all(frames),
            name="resolve_detail",
            group="resolve_detail",
            thread=True,
            exclusive=True,
        )
