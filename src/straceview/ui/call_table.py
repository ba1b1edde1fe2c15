# Filename: src/straceview/ui/call_table.py
"""DataTable listing the parsed call records."""

import logging

from rich.text import Text
from textual import events
from textual.widgets import DataTable
from textual.widgets.data_table import CellKey

from straceview.parser.records import CallRecord
from straceview.util.display import clip

from .colors import PidColors, event_text, result_text
from .process_graph import ProcessGraph

log = logging.getLogger(__name__)


class CallTable(DataTable):
    """One row per record; the row key is the record's index."""

    INDEX_COL_WIDTH = 6
    PID_COL_WIDTH = 7
    TIME_COL_WIDTH = 15
    EVENT_COL_WIDTH = 20
    RESULT_COL_WIDTH = 16
    FRAMES_COL_WIDTH = 6
    SCROLLBAR_WIDTH = 2
    COLUMN_PADDING = 2
    # The column truncates on display; this only bounds the cell size
    ARGS_CLIP = 400

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.cursor_type = "row"
        self.zebra_stripes = True
        self.pid_colors = PidColors()
        self.graph = ProcessGraph({}, 0)

    def on_mount(self) -> None:
        self._add_columns()

    def _add_columns(self) -> None:
        if self.columns:
            return
        self.add_column("#", key="index", width=self.INDEX_COL_WIDTH)
        self.add_column("PID", key="pid", width=self.PID_COL_WIDTH)
        if self.graph.enabled:
            self.add_column("", key="graph", width=self.graph.width)
        self.add_column("Time", key="time", width=self.TIME_COL_WIDTH)
        self.add_column("Event", key="event", width=self.EVENT_COL_WIDTH)
        self.add_column("Arguments", key="args", width=self._args_column_width())
        self.add_column("Result", key="result", width=self.RESULT_COL_WIDTH)
        self.add_column("Frames", key="frames", width=self.FRAMES_COL_WIDTH)

    def _args_column_width(self) -> int:
        fixed = (
            self.INDEX_COL_WIDTH
            + self.PID_COL_WIDTH
            + self.TIME_COL_WIDTH
            + self.EVENT_COL_WIDTH
            + self.RESULT_COL_WIDTH
            + self.FRAMES_COL_WIDTH
        )
        column_count = 7
        if self.graph.enabled:
            fixed += self.graph.width
            column_count += 1
        w = (
            self.size.width
            - self.SCROLLBAR_WIDTH
            - column_count * self.COLUMN_PADDING
            - fixed
        )
        return max(10, w)

    def on_resize(self, event: events.Resize) -> None:
        column = self.columns.get("args")
        new_width = self._args_column_width()
        if column and column.width != new_width:
            column.width = new_width
            self.refresh()

    @property
    def selected_index(self) -> int | None:
        """Index into the record list of the highlighted row."""
        coordinate = self.cursor_coordinate
        if not self.is_valid_coordinate(coordinate):
            return None
        cell_key: CellKey = self.coordinate_to_cell_key(coordinate)
        if cell_key.row_key.value is None:
            return None
        return int(cell_key.row_key.value)

    def load(self, records: list[CallRecord]) -> None:
        """Replaces the table contents with `records`."""
        self.graph = ProcessGraph.build(records)
        # The graph column comes and goes with the number of processes
        self.clear(columns=True)
        self._add_columns()
        for index, record in enumerate(records):
            self.add_row(*self._row(index, record), key=str(index))
        log.debug(
            f"Loaded {len(records)} rows into the call table "
            f"({len(self.graph.lanes)} processes, {self.graph.width} graph lanes)."
        )

    def _row(self, index: int, record: CallRecord) -> tuple[Text, ...]:
        style = "on grey19" if record.is_unfinished else ""
        if record.kind == "syscall":
            args = Text(clip(record.arguments, self.ARGS_CLIP))
        elif record.signal is not None:
            args = Text(clip(record.signal.detail, self.ARGS_CLIP), style="dim")
        else:
            args = Text("")
        frames = Text(str(len(record.backtrace)) if record.backtrace else "", style="dim")
        cells = [
            Text(str(index + 1), style="dim"),
            self.pid_colors.text(record.pid),
        ]
        if self.graph.enabled:
            cells.append(self.graph.text(index, record))
        cells += [
            Text(record.timestamp or "", style=style),
            event_text(record),
            args,
            result_text(record),
            frames,
        ]
        return tuple(cells)
