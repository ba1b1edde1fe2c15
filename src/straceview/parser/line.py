# Filename: src/straceview/parser/line.py
"""
Classification and decomposition of single strace output lines.

Every input line maps to exactly one of the line variants below. Shapes are
tried in priority order: backtrace frame, resumed continuation, signal,
exit, unfinished call, regular call. Anything else is UnrecognizedLine.
"""

import re
from dataclasses import dataclass
from typing import Union

from .backtrace import is_frame_line, parse_frame
from .detect import FormatMode
from .errors import MalformedLine
from .grammar import parse_call_result, parse_exit_status, parse_prefix
from .records import (
    NO_PID,
    BacktraceFrame,
    CallRecord,
    ErrnoInfo,
    ExitInfo,
    SignalInfo,
)

UNFINISHED_MARKER = "<unfinished ...>"
# What may follow the marker when the thread went away mid-call, e.g.
# `futex(0x1, FUTEX_WAIT, 0, NULL <unfinished ...>) = ?`
ABANDONED_TAIL_RE = re.compile(r"^\s*\)\s*(?:=\s*\?\s*)?$")

# --- Regular Expressions ---
# Matches `<... read resumed>` at the start of an event body
RESUMED_RE = re.compile(r"^<\.\.\.\s*(?P<syscall>[\w$]*)\s*resumed>")

# Matches `--- SIGCHLD {...} ---`
SIGNAL_RE = re.compile(r"^---\s+(?P<body>.+?)\s+---\s*$")
SIGNAL_NAME_RE = re.compile(r"\bSIG[A-Z0-9_+-]+")

# Matches `+++ exited with 0 +++`
EXIT_RE = re.compile(r"^\+\+\+\s+(?P<body>.+?)\s+\+\+\+\s*$")

# Matches the syscall name and the opening parenthesis
CALL_HEAD_RE = re.compile(r"^(?P<syscall>[A-Za-z_][\w$]*)\(")


# --- Line variants ---
@dataclass(frozen=True)
class SyscallLine:
    """
    A self-contained `name(args) = value` line, or a call cut short by
    `<unfinished ...>) = ?` (is_unfinished set, no return value).
    """

    record: CallRecord


@dataclass(frozen=True)
class UnfinishedLine:
    """`name(args <unfinished ...>`; the record has is_unfinished set."""

    record: CallRecord


@dataclass(frozen=True)
class ResumedLine:
    """
    `<... name resumed>args) = value`; the record has is_resumed set and
    carries only the continuation of the argument text.
    """

    record: CallRecord


@dataclass(frozen=True)
class SignalLine:
    record: CallRecord


@dataclass(frozen=True)
class ExitLine:
    record: CallRecord


@dataclass(frozen=True)
class FrameLine:
    frame: BacktraceFrame


@dataclass(frozen=True)
class UnrecognizedLine:
    reason: str


ClassifiedLine = Union[
    SyscallLine,
    UnfinishedLine,
    ResumedLine,
    SignalLine,
    ExitLine,
    FrameLine,
    UnrecognizedLine,
]


# --- Parsing Functions ---


def scan_arguments(text: str) -> tuple[str, str | None]:
    """
    Splits the text after a call's opening parenthesis into the argument text
    and what follows the matching closing parenthesis.

    Tracks nested parentheses and skips over double-quoted strings, including
    escaped quotes inside them. If `<unfinished ...>` comes before the
    parenthesis closes, the remainder is None. The marker counts at the end
    of the line, or when only `)` and an unknown result `= ?` follow it.

    Raises:
        MalformedLine: On an unterminated string or unbalanced parentheses.
    """
    depth = 1
    in_quotes = False
    escape_next = False
    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
        elif in_quotes:
            if char == "\\":
                escape_next = True
            elif char == '"':
                in_quotes = False
        elif char == '"':
            in_quotes = True
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return text[:i], text[i + 1 :]
        elif char == "<" and text.startswith(UNFINISHED_MARKER, i):
            tail = text[i + len(UNFINISHED_MARKER) :]
            if not tail.strip() or ABANDONED_TAIL_RE.match(tail):
                return text[:i].rstrip(), None

    if in_quotes:
        raise MalformedLine("unterminated quoted string in arguments")
    raise MalformedLine("unbalanced parentheses in arguments")


def join_arguments(head: str, tail: str) -> str:
    """Joins the argument text of an unfinished call with its resumed part."""
    head = head.rstrip()
    tail = tail.lstrip()
    if head.endswith(",") and tail and not tail.startswith(","):
        return f"{head} {tail}"
    return head + tail


def _errno_info(name: str | None, message: str | None) -> ErrnoInfo | None:
    if name is None:
        return None
    return ErrnoInfo(code=name, message=message or "")


def _parse_signal(pid: int, timestamp: str | None, body: str) -> SignalLine:
    name_match = SIGNAL_NAME_RE.search(body)
    if name_match is None:
        name, _, detail = body.partition(" ")
    elif name_match.start() == 0:
        name, detail = name_match.group(), body[name_match.end() :]
    else:
        # e.g. `--- stopped by SIGSTOP ---`
        name, detail = name_match.group(), body
    return SignalLine(
        CallRecord(
            pid=pid,
            timestamp=timestamp,
            signal=SignalInfo(name=name, detail=detail.strip()),
        )
    )


def _parse_exit(pid: int, timestamp: str | None, body: str) -> ExitLine:
    code, signal, core_dumped = parse_exit_status(body)
    return ExitLine(
        CallRecord(
            pid=pid,
            timestamp=timestamp,
            exit=ExitInfo(code=code, signal=signal, core_dumped=core_dumped),
        )
    )


def _left_pending(body: str) -> bool:
    """After scan_arguments found the marker: is the call still in flight?"""
    return body.rstrip().endswith(UNFINISHED_MARKER)


def _parse_resumed(
    pid: int, timestamp: str | None, body: str, match: re.Match
) -> ResumedLine:
    arguments, rest = scan_arguments(body[match.end() :].lstrip())
    if rest is None:
        if _left_pending(body):
            raise MalformedLine("resumed call is unfinished again")
        # `<... futex resumed> <unfinished ...>) = ?`: resumed, then cut short
        return ResumedLine(
            CallRecord(
                pid=pid,
                timestamp=timestamp,
                name=match.group("syscall"),
                arguments=arguments,
                is_resumed=True,
                is_unfinished=True,
            )
        )
    return_value, errno_name, errno_msg = parse_call_result(rest)
    return ResumedLine(
        CallRecord(
            pid=pid,
            timestamp=timestamp,
            name=match.group("syscall"),
            arguments=arguments,
            return_value=return_value,
            error=_errno_info(errno_name, errno_msg),
            is_resumed=True,
        )
    )


def _parse_call(
    pid: int, timestamp: str | None, body: str, match: re.Match
) -> SyscallLine | UnfinishedLine:
    name = match.group("syscall")
    arguments, rest = scan_arguments(body[match.end() :])
    if rest is None:
        record = CallRecord(
            pid=pid,
            timestamp=timestamp,
            name=name,
            arguments=arguments,
            is_unfinished=True,
        )
        if _left_pending(body):
            return UnfinishedLine(record)
        # The thread exited inside the call; nothing will resume it
        return SyscallLine(record)
    return_value, errno_name, errno_msg = parse_call_result(rest)
    return SyscallLine(
        CallRecord(
            pid=pid,
            timestamp=timestamp,
            name=name,
            arguments=arguments,
            return_value=return_value,
            error=_errno_info(errno_name, errno_msg),
        )
    )


def classify_line(line: str, mode: FormatMode) -> ClassifiedLine:
    """
    Classifies one line of strace output and parses its fields.

    Args:
        line: A single line, without its trailing newline.
        mode: The format mode detected for the trace.

    Returns:
        One of the line variants. Lines that match none of the known shapes
        come back as UnrecognizedLine.

    Raises:
        MalformedLine: If the line has a known shape but broken content
            (unbalanced arguments, missing return value, bad frame...).
    """
    if is_frame_line(line):
        return FrameLine(parse_frame(line))

    try:
        pid, timestamp, body = parse_prefix(line, mode.has_pid, mode.has_timestamp)
    except MalformedLine as e:
        return UnrecognizedLine(str(e))
    if pid is None:
        pid = NO_PID

    resumed_match = RESUMED_RE.match(body)
    if resumed_match:
        return _parse_resumed(pid, timestamp, body, resumed_match)

    signal_match = SIGNAL_RE.match(body)
    if signal_match:
        return _parse_signal(pid, timestamp, signal_match.group("body"))

    exit_match = EXIT_RE.match(body)
    if exit_match:
        return _parse_exit(pid, timestamp, exit_match.group("body"))

    call_match = CALL_HEAD_RE.match(body)
    if call_match:
        return _parse_call(pid, timestamp, body, call_match)

    return UnrecognizedLine("not a syscall, signal or exit line")
