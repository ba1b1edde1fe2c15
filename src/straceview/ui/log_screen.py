# Filename: src/straceview/ui/log_screen.py
"""Modal screen for the application log."""

from collections import deque

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import RichLog, Static


class LogScreen(ModalScreen[None]):
    """Shows records from the in-memory log queue, following new ones."""

    BINDINGS = [
        Binding("escape,q,l", "app.pop_screen", "Close Logs", show=True),
        Binding("c", "clear_log", "Clear", show=True),
        Binding("end", "scroll_end", "Scroll End", show=False),
    ]

    DEFAULT_CSS = """
    LogScreen > Container {
        border: thick $accent;
        padding: 1 2;
        width: 80%;
        height: 80%;
        background: $surface;
    }
    #log-header {
        height: auto;
        margin-bottom: 1;
    }
    #app-log {
        height: 1fr;
        border: round $panel;
    }
    """

    def __init__(self, log_queue: deque):
        self.log_queue = log_queue
        super().__init__()

    def compose(self) -> ComposeResult:
        with Container(id="log-modal-container"):
            yield Static("[bold]Application Log[/]", id="log-header")
            yield RichLog(
                id="app-log",
                max_lines=2000,
                auto_scroll=True,
                wrap=False,
                markup=True,
            )

    def on_mount(self) -> None:
        self._write_new_lines()
        self.set_interval(1 / 10, self._write_new_lines)

    def _write_new_lines(self) -> None:
        """Moves queued lines into the widget. The app installs this screen
        once, so the widget keeps the history across visits."""
        log_widget = self.query_one(RichLog)
        while self.log_queue:
            try:
                line = self.log_queue.popleft()
            except IndexError:
                break
            log_widget.write(line)

    def action_clear_log(self) -> None:
        self.query_one(RichLog).clear()
        self.notify("Logs cleared.", timeout=1)

    def action_scroll_end(self) -> None:
        self.query_one(RichLog).scroll_end(animate=False)
