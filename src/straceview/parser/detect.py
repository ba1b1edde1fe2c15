# Filename: src/straceview/parser/detect.py
"""Detection of which PID/timestamp columns a trace file carries."""

import logging
import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from .backtrace import is_frame_line
from .errors import MalformedLine
from .grammar import parse_prefix

log = logging.getLogger(__name__)

# Number of event lines inspected before the mode is locked
DEFAULT_SAMPLE_SIZE = 20

# What an event body may start with: a call, a resumed call, a signal or an exit
EVENT_BODY_RE = re.compile(r"^(?:[A-Za-z_][\w$]*\(|<\.\.\.|---\s|\+\+\+\s)")


@dataclass(frozen=True)
class FormatMode:
    """Which prefix columns precede the event text on every line."""

    has_pid: bool
    has_timestamp: bool

    @property
    def label(self) -> str:
        for name, mode in MODE_NAMES.items():
            if mode == self:
                return name
        return "unknown"  # unreachable for the four modes

    def __str__(self) -> str:
        return self.label


PID_AND_TIME = FormatMode(has_pid=True, has_timestamp=True)
TIME_ONLY = FormatMode(has_pid=False, has_timestamp=True)
PID_ONLY = FormatMode(has_pid=True, has_timestamp=False)
PLAIN = FormatMode(has_pid=False, has_timestamp=False)

# Strictest first
MODES = (PID_AND_TIME, TIME_ONLY, PID_ONLY, PLAIN)

MODE_NAMES = {
    "pid-time": PID_AND_TIME,
    "time": TIME_ONLY,
    "pid": PID_ONLY,
    "plain": PLAIN,
}


def mode_from_name(name: str | None) -> FormatMode | None:
    """Maps a --format value to a mode; "auto" and None mean no hint."""
    if name is None or name == "auto":
        return None
    try:
        return MODE_NAMES[name]
    except KeyError:
        raise ValueError(
            f"Unknown format {name!r}, expected one of: auto, {', '.join(MODE_NAMES)}"
        ) from None


def line_matches(line: str, mode: FormatMode) -> bool:
    """True if the line has exactly the prefix columns of `mode`."""
    try:
        _, _, body = parse_prefix(line, mode.has_pid, mode.has_timestamp)
    except MalformedLine:
        return False
    return EVENT_BODY_RE.match(body) is not None


def strictest_match(line: str) -> FormatMode | None:
    for mode in MODES:
        if line_matches(line, mode):
            return mode
    return None


def detect_format(
    lines: Iterable[str],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    hint: FormatMode | None = None,
) -> FormatMode:
    """
    Decides the format mode from the first event lines of a trace.

    Each sampled line votes for the strictest mode it matches; the mode with
    the most votes wins, ties going to the stricter mode (or to `hint` when
    it is among the leaders). Backtrace frames and blank lines are skipped.
    If nothing matches, the hint is used, falling back to PLAIN so that the
    line parser reports the problems line by line.
    """
    votes: Counter[FormatMode] = Counter()
    sampled = 0
    for line in lines:
        if sampled >= sample_size:
            break
        line = line.rstrip("\r\n")
        if not line.strip() or is_frame_line(line):
            continue
        sampled += 1
        mode = strictest_match(line)
        if mode is not None:
            votes[mode] += 1

    if not votes:
        fallback = hint or PLAIN
        log.warning(
            f"Could not detect trace format from {sampled} lines, assuming '{fallback}'."
        )
        return fallback

    best_count = max(votes.values())
    leaders = [mode for mode in MODES if votes[mode] == best_count]
    if hint in leaders:
        chosen = hint
    else:
        chosen = leaders[0]
        if hint is not None:
            log.warning(
                f"Requested format '{hint}' does not match the trace, using '{chosen}'."
            )
    log.info(
        f"Detected trace format '{chosen}' ({best_count}/{sampled} sampled lines)."
    )
    return chosen
