# Filename: src/straceview/parser/grammar.py
"""
Defines the pyparsing grammar for the fixed-shape parts of strace output.
- Line prefix: optional PID (`123` or `[pid 123]`) and optional timestamp
  (`10:20:30`, `10:20:30.123456`, `1700000000.123456` or any other token
  that is not itself the start of an event)
- Call result: `= value [ERRNO (message)] [annotations...]`
- Exit status: `exited with N` / `killed by SIGX [(core dumped)]`
- Backtrace frame: `> binary(function+offset) [0xaddr]`

Argument lists are free text (nested structs, quoted strings with escapes)
and are not handled here; see `line.scan_arguments`.
"""

import functools
import re

import pyparsing as pp

from .errors import MalformedLine

EQ = pp.Suppress("=")

# --- Prefix ---
_DIGITS_RE = re.compile(r"\d+")

pid = pp.Regex(r"\[pid\s+\d+\]|\d+(?=\s)").set_parse_action(
    lambda t: int(_DIGITS_RE.search(t[0]).group())
)("pid")
# Timestamps are kept verbatim. A bare integer is a PID, and the token may not
# be the event itself (`read(`, `<...`, `---`, `+++`) or a `[pid N]` prefix.
timestamp = pp.Regex(
    r"(?!\d+\s)(?![A-Za-z_][\w$]*\(|<\.\.\.|---|\+\+\+|\[pid\s)\S+(?=\s)"
)("timestamp")
line_body = pp.Regex(r"\S.*")("body")

# --- Call result ---
return_value = pp.Regex(r"0[xX][0-9a-fA-F]+|-?\d+|NULL|\?")("return_value")
errno_part = pp.Regex(r"(?P<errno>E[A-Z0-9_]+)\s+\((?P<message>[^)]*)\)")
# -y paths (`3</etc/passwd>`), -T durations (`<0.000012>`) and decoded
# values like `(Timeout)` are accepted but not kept
annotation = pp.Suppress(pp.Regex(r"<[^>]*>") | pp.nested_expr("(", ")"))
call_result = (
    EQ + return_value + pp.Optional(errno_part) + pp.ZeroOrMore(annotation) + pp.StringEnd()
).parse_with_tabs()

# --- Exit status ---
exit_code = pp.Regex(r"-?\d+").set_parse_action(lambda t: int(t[0]))("code")
signal_name = pp.Regex(r"SIG[A-Z0-9_+-]+|\d+")("signal")
exited = pp.Suppress(pp.Keyword("exited") + pp.Keyword("with")) + exit_code
killed = (
    pp.Suppress(pp.Keyword("killed") + pp.Keyword("by"))
    + signal_name
    + pp.Optional(pp.Literal("(core dumped)")("core_dumped"))
)
exit_status = ((exited | killed) + pp.StringEnd()).parse_with_tabs()

# --- Backtrace frame ---
frame_binary = pp.Regex(r"[^(\[]*[^(\[\s]")("binary")
frame_symbol = pp.Regex(r"\((?P<symbol>[^)]*)\)")
frame_address = pp.Regex(r"\[(?P<address>0[xX][0-9a-fA-F]+)\]")
backtrace_frame = (
    pp.Suppress(">")
    + frame_binary
    + pp.Optional(frame_symbol)
    + frame_address
    + pp.StringEnd()
).parse_with_tabs()


@functools.lru_cache(maxsize=None)
def prefix_parser(has_pid: bool, has_timestamp: bool) -> pp.ParserElement:
    """Returns the parser for one of the four PID x timestamp line layouts."""
    elements: list[pp.ParserElement] = []
    if has_pid:
        elements.append(pid)
    if has_timestamp:
        elements.append(timestamp)
    elements.append(line_body)
    return (pp.And(elements) + pp.StringEnd()).parse_with_tabs()


def parse_prefix(
    line: str, has_pid: bool, has_timestamp: bool
) -> tuple[int | None, str | None, str]:
    """
    Splits a line into (pid, timestamp, body) according to the layout.

    Raises:
        MalformedLine: If the expected PID/timestamp columns are missing.
    """
    try:
        parsed = prefix_parser(has_pid, has_timestamp).parse_string(line, parse_all=True)
    except pp.ParseException as e:
        expected = []
        if has_pid:
            expected.append("PID")
        if has_timestamp:
            expected.append("timestamp")
        what = " and ".join(expected) or "content"
        raise MalformedLine(f"expected {what} at column {e.col}") from e
    return parsed.get("pid"), parsed.get("timestamp"), parsed["body"]


def parse_call_result(text: str) -> tuple[str, str | None, str | None]:
    """
    Parses the text following a call's closing parenthesis.

    Returns:
        (return_value, errno_name, errno_message); the errno fields are None
        when the call did not fail.

    Raises:
        MalformedLine: If there is no `= value` part.
    """
    try:
        parsed = call_result.parse_string(text, parse_all=True)
    except pp.ParseException as e:
        raise MalformedLine(f"missing or malformed return value: {text.strip()!r}") from e
    return parsed["return_value"], parsed.get("errno"), parsed.get("message")


def parse_exit_status(text: str) -> tuple[int | None, str | None, bool]:
    """
    Parses the inside of a `+++ ... +++` marker.

    Returns:
        (exit_code, signal_name, core_dumped)
    """
    try:
        parsed = exit_status.parse_string(text, parse_all=True)
    except pp.ParseException as e:
        raise MalformedLine(f"unrecognized exit status: {text!r}") from e
    return parsed.get("code"), parsed.get("signal"), "core_dumped" in parsed
