# Filename: src/straceview/ui/error_screen.py
"""Screen listing the lines the parser could not use."""

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Static

from straceview.parser.records import ParseError
from straceview.util.display import clip


class ErrorScreen(Screen):
    BINDINGS = [
        Binding("escape,q,e", "app.pop_screen", "Close", show=True),
    ]

    def __init__(self, errors: list[ParseError]):
        self.errors = errors
        super().__init__()

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(
                Text.assemble(("Parse errors: ", "bold"), str(len(self.errors))),
                id="error-header",
            )
            yield DataTable(id="error-table", cursor_type="row", zebra_stripes=True)
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.add_column("Line", key="line", width=8)
        table.add_column("Message", key="message", width=60)
        table.add_column("Text", key="text", width=80)
        if not self.errors:
            table.add_row(Text("No parse errors.", style="dim"))
        for error in self.errors:
            table.add_row(
                Text(str(error.line_number), style="dim"),
                Text(error.message, style="red"),
                Text(clip(error.raw_line, 80)),
            )
        table.focus()
