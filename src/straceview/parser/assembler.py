# Filename: src/straceview/parser/assembler.py
"""
Assembly of classified lines into an ordered list of call records.

Ordering: records are emitted in the order they become complete. For calls
that are not interleaved this is file order. A call split by the tracer
into `<unfinished ...>` and `<... resumed>` lines is emitted once, at the
position of its resumed line, so records completed by other processes in
between come first.

Backtrace frames belong to the record produced by the nearest preceding
non-frame line; for an unfinished call that is the pending record, which
keeps them when it is merged with its continuation.
"""

import logging
from dataclasses import dataclass

from .detect import FormatMode
from .errors import MalformedLine
from .line import (
    ExitLine,
    FrameLine,
    ResumedLine,
    SignalLine,
    SyscallLine,
    UnfinishedLine,
    UnrecognizedLine,
    classify_line,
    join_arguments,
)
from .backtrace import is_frame_line
from .records import BacktraceFrame, CallRecord, ParseError

log = logging.getLogger(__name__)


@dataclass
class PendingCall:
    """An unfinished call waiting for its resumed line."""

    record: CallRecord
    line_number: int
    raw_line: str


class PendingCalls:
    """Holds at most one in-flight unfinished call per PID."""

    def __init__(self):
        self._calls: dict[int, PendingCall] = {}

    def __len__(self) -> int:
        return len(self._calls)

    def __contains__(self, pid: int) -> bool:
        return pid in self._calls

    def start(self, pending: PendingCall) -> PendingCall | None:
        """Registers a new unfinished call, returning the one it displaced."""
        pid = pending.record.pid
        displaced = self._calls.pop(pid, None)
        self._calls[pid] = pending
        return displaced

    def take(self, pid: int) -> PendingCall | None:
        """Removes and returns the pending call for `pid`, if any."""
        return self._calls.pop(pid, None)

    def drain(self) -> list[PendingCall]:
        """Removes and returns all pending calls, oldest first."""
        calls = list(self._calls.values())
        self._calls.clear()
        return calls


def merge_resumed(pending: CallRecord, resumed: CallRecord) -> CallRecord:
    """Completes an unfinished record in place with its resumed continuation."""
    pending.arguments = join_arguments(pending.arguments, resumed.arguments)
    if resumed.name:
        pending.name = resumed.name
    pending.return_value = resumed.return_value
    pending.error = resumed.error
    # Still incomplete when the continuation itself was cut short
    pending.is_unfinished = resumed.is_unfinished
    pending.is_resumed = False
    return pending


class TraceAssembler:
    """
    Feeds lines through the classifier and builds the record list.

    Usage:
        assembler = TraceAssembler(mode)
        for number, line in enumerate(lines, 1):
            assembler.feed(number, line)
        records, errors = assembler.finish()
    """

    def __init__(self, mode: FormatMode):
        self.mode = mode
        self.records: list[CallRecord] = []
        self.errors: list[ParseError] = []
        self.pending = PendingCalls()
        # Frames seen since the last event line
        self._frames: list[BacktraceFrame] = []
        self._frames_line: tuple[int, str] | None = None
        # Record the current frame block belongs to
        self._frame_target: CallRecord | None = None
        # Set after a rejected line: its frames are dropped without a report
        self._drop_frames = False
        self._line_count = 0
        self._finished = False

    # --- Input ---

    def feed(self, line_number: int, line: str) -> None:
        """Processes one line of trace output."""
        if self._finished:
            raise RuntimeError("TraceAssembler.feed() called after finish()")
        line = line.rstrip("\r\n")
        if not line.strip():
            return
        self._line_count += 1

        try:
            classified = classify_line(line, self.mode)
        except MalformedLine as e:
            if not is_frame_line(line):
                self._end_frame_block()
                self._reject()
            self._error(line_number, str(e), line)
            return

        if isinstance(classified, FrameLine):
            if not self._frames:
                self._frames_line = (line_number, line)
            self._frames.append(classified.frame)
            return

        self._end_frame_block()
        if isinstance(classified, SyscallLine):
            self._emit(classified.record)
        elif isinstance(classified, SignalLine):
            self._emit(classified.record)
        elif isinstance(classified, ExitLine):
            self._on_exit(classified.record)
        elif isinstance(classified, UnfinishedLine):
            self._on_unfinished(classified.record, line_number, line)
        elif isinstance(classified, ResumedLine):
            self._on_resumed(classified.record, line_number, line)
        elif isinstance(classified, UnrecognizedLine):
            self._reject()
            self._error(line_number, classified.reason, line)
        else:
            raise TypeError(f"Unhandled line variant: {classified!r}")

    def finish(self) -> tuple[list[CallRecord], list[ParseError]]:
        """
        Flushes trailing frames and calls that were never resumed, and hands
        over the record and error lists. The assembler accepts no further
        input afterwards.
        """
        if self._finished:
            raise RuntimeError("TraceAssembler.finish() called twice")
        self._end_frame_block()
        for call in self.pending.drain():
            self._error(
                call.line_number,
                f"{call.record.name} call for PID {call.record.pid} was never resumed",
                call.raw_line,
            )
            self.records.append(call.record)
        self._finished = True

        incomplete = sum(1 for r in self.records if r.is_unfinished)
        log.info(
            f"Parsed {self._line_count} lines into {len(self.records)} records "
            f"({incomplete} incomplete, {len(self.errors)} errors)."
        )
        records, errors = self.records, self.errors
        self.records, self.errors = [], []
        return records, errors

    # --- Transitions ---

    def _emit(self, record: CallRecord) -> None:
        self.records.append(record)
        self._frame_target = record
        self._drop_frames = False

    def _on_unfinished(self, record: CallRecord, line_number: int, line: str) -> None:
        displaced = self.pending.start(PendingCall(record, line_number, line))
        if displaced is not None:
            self._error(
                line_number,
                f"PID {record.pid} started {record.name} while "
                f"{displaced.record.name} (line {displaced.line_number}) was unfinished",
                line,
            )
            self.records.append(displaced.record)
        self._frame_target = record
        self._drop_frames = False

    def _on_resumed(self, resumed: CallRecord, line_number: int, line: str) -> None:
        call = self.pending.take(resumed.pid)
        if call is None:
            self._reject()
            self._error(
                line_number,
                f"resumed {resumed.name or 'call'} for PID {resumed.pid} has no unfinished call",
                line,
            )
            return
        if resumed.name and resumed.name != call.record.name:
            self._error(
                line_number,
                f"resumed {resumed.name} does not match unfinished "
                f"{call.record.name} (line {call.line_number})",
                line,
            )
        self._emit(merge_resumed(call.record, resumed))

    def _on_exit(self, record: CallRecord) -> None:
        call = self.pending.take(record.pid)
        if call is not None:
            log.debug(
                f"PID {record.pid} exited during {call.record.name} "
                f"(line {call.line_number}); keeping it as incomplete."
            )
            self.records.append(call.record)
        self._emit(record)

    # --- Helpers ---

    def _reject(self) -> None:
        self._frame_target = None
        self._drop_frames = True

    def _end_frame_block(self) -> None:
        if not self._frames:
            return
        if self._frame_target is not None:
            self._frame_target.backtrace.extend(self._frames)
        elif not self._drop_frames and self._frames_line is not None:
            line_number, line = self._frames_line
            self._error(
                line_number,
                f"{len(self._frames)} backtrace frame(s) with no preceding call",
                line,
            )
        self._frames = []
        self._frames_line = None

    def _error(self, line_number: int, message: str, line: str) -> None:
        log.debug(f"Line {line_number}: {message}")
        self.errors.append(ParseError(line_number, message, line))
