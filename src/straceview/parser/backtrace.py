# Filename: src/straceview/parser/backtrace.py
"""Parsing of `strace -k` stack frame lines."""

import re

import pyparsing as pp

from .errors import MalformedLine
from .grammar import backtrace_frame
from .records import BacktraceFrame

# Frames are indented and start with "> "
FRAME_MARKER_RE = re.compile(r"^\s+> ")


def is_frame_line(line: str) -> bool:
    """True if the line is a backtrace frame rather than a trace event."""
    return FRAME_MARKER_RE.match(line) is not None


def parse_frame(line: str) -> BacktraceFrame:
    """
    Parses one backtrace line.

    Accepted shapes:
        ` > /usr/lib/libc.so.6(__write+0x14) [0x10e53e]`
        ` > /usr/lib/libc.so.6() [0x10e53e]`
        ` > /usr/lib/libc.so.6 [0x10e53e]`

    Raises:
        MalformedLine: If the frame does not match, or carries a function name
            without an offset (or an offset without a function name).
    """
    try:
        parsed = backtrace_frame.parse_string(line.strip(), parse_all=True)
    except pp.ParseException as e:
        raise MalformedLine(f"malformed backtrace frame at column {e.col}") from e

    function: str | None = None
    offset: str | None = None
    symbol = (parsed.get("symbol") or "").strip()
    if symbol:
        function, plus, offset = symbol.rpartition("+")
        if not plus:
            raise MalformedLine(f"backtrace symbol {symbol!r} has no offset")
        if not function:
            raise MalformedLine(f"backtrace offset +{offset} has no function name")
        if not offset:
            raise MalformedLine(f"backtrace symbol {symbol!r} has an empty offset")

    return BacktraceFrame(
        binary=parsed["binary"],
        address=parsed["address"],
        function=function,
        offset=offset,
    )
