# Filename: src/straceview/ui/process_graph.py
"""
A `git log --graph` style lane per process for the call table.

Each PID gets a column that is live from its first record (or the fork that
created it) until its last record (or the wait that reaped it). Columns are
reused once their process is gone. Fork rows draw `*─┐` towards the child's
lane and wait rows draw `*─┘` towards the reaped child.
"""

from dataclasses import dataclass

from rich.text import Text

from straceview.parser.records import CallRecord

from .colors import PID_PALETTE

FORK_SYSCALLS = frozenset({"fork", "vfork", "clone", "clone3"})
WAIT_SYSCALLS = frozenset({"wait4", "waitid", "waitpid"})


@dataclass
class Lane:
    pid: int
    column: int
    first: int
    last: int
    parent: int | None = None


def _positive_int(text: str | None) -> int | None:
    if text is None:
        return None
    text = text.strip()
    if not text.isdigit() or int(text) == 0:
        return None
    return int(text)


def child_pid(record: CallRecord) -> int | None:
    """The PID a successful fork/clone returned to its parent."""
    if record.kind != "syscall" or record.name not in FORK_SYSCALLS:
        return None
    return _positive_int(record.return_value)


def waited_pid(record: CallRecord) -> int | None:
    """The child a wait call reaped, from its result or its first argument."""
    if record.kind != "syscall" or record.name not in WAIT_SYSCALLS:
        return None
    for candidate in (record.return_value, record.arguments.split(",")[0]):
        pid = _positive_int(candidate)
        if pid is not None and pid != record.pid:
            return pid
    return None


class ProcessGraph:
    """Lane layout for a record list, built once with `ProcessGraph.build`."""

    def __init__(self, lanes: dict[int, Lane], width: int):
        self.lanes = lanes
        self.width = width

    @property
    def enabled(self) -> bool:
        """A single process needs no graph."""
        return self.width > 1

    @classmethod
    def build(cls, records: list[CallRecord]) -> "ProcessGraph":
        first: dict[int, int] = {}
        last: dict[int, int] = {}
        parents: dict[int, int] = {}
        for index, record in enumerate(records):
            first.setdefault(record.pid, index)
            last[record.pid] = index
            child = child_pid(record)
            if child is not None:
                first.setdefault(child, index)
                last[child] = index
                parents.setdefault(child, record.pid)
            reaped = waited_pid(record)
            if reaped is not None and reaped in first:
                last[reaped] = index

        # Starts sort before ends on the same row, so a lane is never handed
        # to a new process on the row where its owner still appears
        events = sorted(
            [(index, 0, pid) for pid, index in first.items()]
            + [(index, 1, pid) for pid, index in last.items()]
        )
        lanes: dict[int, Lane] = {}
        free: list[int] = []
        width = 0
        for index, is_end, pid in events:
            if is_end:
                free.append(lanes[pid].column)
                continue
            if free:
                free.sort()
                column = free.pop(0)
            else:
                column = width
                width += 1
            lanes[pid] = Lane(pid, column, index, last[pid], parents.get(pid))
        return cls(lanes, width)

    def is_active(self, column: int, index: int) -> bool:
        return any(
            lane.column == column and lane.first <= index <= lane.last
            for lane in self.lanes.values()
        )

    def cells(self, index: int, record: CallRecord) -> list[tuple[str, int]]:
        """(character, column) pairs for the row at `index`."""
        if not self.enabled:
            return []
        current = self.lanes[record.pid].column if record.pid in self.lanes else 0

        target, joint = None, ""
        child = child_pid(record)
        reaped = waited_pid(record)
        if child is not None and child in self.lanes:
            target, joint = self.lanes[child].column, "┐"
        elif reaped is not None and reaped in self.lanes:
            target, joint = self.lanes[reaped].column, "┘"

        cells = []
        for column in range(self.width):
            if column == current:
                char = "*"
            elif target is not None and column == target:
                char = joint
            elif target is not None and min(current, target) < column < max(current, target):
                char = "─"
            elif self.is_active(column, index):
                char = "│"
            else:
                char = " "
            cells.append((char, column))
        return cells

    def text(
        self, index: int, record: CallRecord, palette: tuple[str, ...] = PID_PALETTE
    ) -> Text:
        text = Text()
        for char, column in self.cells(index, record):
            text.append(char, style=palette[column % len(palette)])
        return text
