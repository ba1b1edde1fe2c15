# Filename: src/straceview/parser/reader.py
"""Entry points that turn a trace file or stream into records."""

import itertools
import logging
import os
from collections.abc import Iterable, Iterator

from .assembler import TraceAssembler
from .backtrace import is_frame_line
from .detect import DEFAULT_SAMPLE_SIZE, FormatMode, detect_format
from .errors import TraceSourceError
from .records import CallRecord, ParseError

log = logging.getLogger(__name__)

TraceSource = str | os.PathLike | Iterable[str]


def _peek(lines: Iterator[str], sample_size: int) -> list[str]:
    """
    Reads lines until `sample_size` event lines (or the end) have been seen.
    Blank and frame lines do not count, so a deep backtrace cannot starve
    the detector.
    """
    buffer: list[str] = []
    events = 0
    for line in lines:
        buffer.append(line)
        if line.strip() and not is_frame_line(line):
            events += 1
            if events >= sample_size:
                break
    return buffer


def parse_lines(
    lines: Iterable[str],
    mode_hint: FormatMode | None = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> tuple[list[CallRecord], list[ParseError]]:
    """
    Parses an iterable of trace lines.

    The first lines are buffered for format detection and then replayed, so
    the input is read exactly once and never held in memory as a whole.
    """
    iterator = iter(lines)
    sample = _peek(iterator, sample_size)
    mode = detect_format(sample, sample_size=sample_size, hint=mode_hint)

    assembler = TraceAssembler(mode)
    for line_number, line in enumerate(itertools.chain(sample, iterator), start=1):
        assembler.feed(line_number, line)
    return assembler.finish()


def parse(
    source: TraceSource,
    mode_hint: FormatMode | None = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> tuple[list[CallRecord], list[ParseError]]:
    """
    Parses strace output from a file path or an iterable of lines.

    Malformed lines never abort the parse; they come back in the error list.

    Raises:
        TraceSourceError: If the file cannot be opened or read.
    """
    if not isinstance(source, (str, os.PathLike)):
        return parse_lines(source, mode_hint=mode_hint, sample_size=sample_size)

    path = os.fspath(source)
    log.debug(f"Reading trace from {path}")
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return parse_lines(f, mode_hint=mode_hint, sample_size=sample_size)
    except OSError as e:
        raise TraceSourceError(f"Cannot read trace file '{path}': {e.strerror or e}") from e
