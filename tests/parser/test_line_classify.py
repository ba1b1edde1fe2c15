# Filename: tests/parser/test_line_classify.py
"""Tests for classifying and decomposing single strace lines."""

import pytest

from straceview.parser.detect import PID_AND_TIME, PID_ONLY, PLAIN, TIME_ONLY
from straceview.parser.errors import MalformedLine
from straceview.parser.line import (
    ExitLine,
    FrameLine,
    ResumedLine,
    SignalLine,
    SyscallLine,
    UnfinishedLine,
    UnrecognizedLine,
    classify_line,
    join_arguments,
    scan_arguments,
)
from straceview.parser.records import NO_PID


# --- Regular calls ---


def test_write_with_pid_and_timestamp():
    """The canonical write line decomposes into all its fields."""
    line = '12345 10:20:30 write(1, "hello\\n", 6) = 6'
    result = classify_line(line, PID_AND_TIME)
    assert isinstance(result, SyscallLine)
    record = result.record
    assert record.pid == 12345
    assert record.timestamp == "10:20:30"
    assert record.name == "write"
    assert record.arguments == '1, "hello\\n", 6'
    assert record.return_value == "6"
    assert record.error is None
    assert not record.is_unfinished
    assert not record.is_resumed
    assert record.backtrace == []


def test_failed_call_keeps_errno_and_message():
    line = '42 openat(AT_FDCWD, "/nope", O_RDONLY) = -1 ENOENT (No such file or directory)'
    record = classify_line(line, PID_ONLY).record
    assert record.pid == 42
    assert record.timestamp is None
    assert record.return_value == "-1"
    assert record.error.code == "ENOENT"
    assert record.error.message == "No such file or directory"
    assert record.failed


def test_bracketed_pid_prefix():
    record = classify_line("[pid  7781] close(3) = 0", PID_ONLY).record
    assert record.pid == 7781
    assert record.name == "close"


def test_plain_mode_uses_sentinel_pid():
    record = classify_line("getpid() = 4242", PLAIN).record
    assert record.pid == NO_PID
    assert record.arguments == ""
    assert record.return_value == "4242"


@pytest.mark.parametrize(
    "line, expected_return",
    [
        ("mmap(NULL, 8192, PROT_READ, MAP_PRIVATE, 3, 0) = 0x7f2a3c000000", "0x7f2a3c000000"),
        ("brk(NULL) = 0x55d0c8a4b000", "0x55d0c8a4b000"),
        ("exit_group(0) = ?", "?"),
        ("lseek(3, -10, SEEK_END) = -10", "-10"),
        ("shmat(1, NULL, 0) = NULL", "NULL"),
    ],
)
def test_return_value_forms(line, expected_return):
    assert classify_line(line, PLAIN).record.return_value == expected_return


@pytest.mark.parametrize(
    "line",
    [
        'openat(AT_FDCWD, "/etc/passwd", O_RDONLY) = 3</etc/passwd>',
        "read(0, \"\", 1) = 0 <0.000012>",
        "fcntl(3, F_GETFD) = 0x1 (flags FD_CLOEXEC)",
        "select(1, [0], NULL, NULL, {tv_sec=1, tv_usec=0}) = 0 (Timeout)",
    ],
)
def test_trailing_annotations_are_accepted(line):
    result = classify_line(line, PLAIN)
    assert isinstance(result, SyscallLine)
    assert result.record.duration is None


def test_restart_errno_with_unknown_return():
    line = "read(0, 0x7ffd, 1) = ? ERESTARTSYS (To be restarted if SA_RESTART is set)"
    record = classify_line(line, PLAIN).record
    assert record.return_value == "?"
    assert record.error.code == "ERESTARTSYS"


def test_epoch_timestamp():
    record = classify_line("1700000000.123456 getppid() = 1", TIME_ONLY).record
    assert record.timestamp == "1700000000.123456"


@pytest.mark.parametrize("stamp", ["t1", "+0.000125", "2024-01-01T10:00:00"])
def test_any_token_is_a_timestamp(stamp):
    """Timestamps are opaque text; only their position matters."""
    record = classify_line(f"1 {stamp} getppid() = 1", PID_AND_TIME).record
    assert record.pid == 1
    assert record.timestamp == stamp
    assert record.name == "getppid"


def test_event_is_never_taken_for_a_timestamp():
    result = classify_line("1 getppid() = 1", PID_AND_TIME)
    assert isinstance(result, UnrecognizedLine)
    assert "timestamp" in result.reason


# --- Argument scanning ---


def test_nested_parentheses_and_quoted_punctuation():
    line = 'write(1, "a) b (c \\" ) d", 13) = 13'
    record = classify_line(line, PLAIN).record
    assert record.arguments == '1, "a) b (c \\" ) d", 13'


def test_struct_arguments():
    line = "wait4(-1, [{WIFEXITED(s) && WEXITSTATUS(s) == 0}], 0, NULL) = 1234"
    record = classify_line(line, PLAIN).record
    assert record.arguments == "-1, [{WIFEXITED(s) && WEXITSTATUS(s) == 0}], 0, NULL"
    assert record.return_value == "1234"


def test_scan_arguments_stops_at_unfinished_marker():
    assert scan_arguments("3, <unfinished ...>") == ("3,", None)


@pytest.mark.parametrize(
    "text", ["0x1, FUTEX_WAIT, 0, NULL <unfinished ...>) = ?", "NULL <unfinished ...>)"]
)
def test_scan_arguments_stops_at_abandoned_marker(text):
    arguments, rest = scan_arguments(text)
    assert rest is None
    assert arguments.endswith("NULL")


def test_unfinished_marker_inside_string_is_not_a_marker():
    line = 'write(1, "<unfinished ...>", 16) = 16'
    result = classify_line(line, PLAIN)
    assert isinstance(result, SyscallLine)
    assert result.record.arguments == '1, "<unfinished ...>", 16'


def test_unterminated_string_is_malformed():
    with pytest.raises(MalformedLine, match="unterminated"):
        classify_line('write(1, "abc', PLAIN)


def test_unbalanced_parentheses_are_malformed():
    with pytest.raises(MalformedLine, match="unbalanced"):
        classify_line("write(1, 2", PLAIN)


def test_missing_return_value_is_malformed():
    with pytest.raises(MalformedLine, match="return value"):
        classify_line("write(1, 2)", PLAIN)


@pytest.mark.parametrize(
    "head, tail, expected",
    [
        ("3,", '"buf", 10', '3, "buf", 10'),
        ("0", ', "data", 4', '0, "data", 4'),
        ("3, ", '  "x", 1', '3, "x", 1'),
        ("", "", ""),
    ],
)
def test_join_arguments(head, tail, expected):
    assert join_arguments(head, tail) == expected


# --- Unfinished / resumed ---


def test_unfinished_call():
    result = classify_line("1 10:00:01 read(3, <unfinished ...>", PID_AND_TIME)
    assert isinstance(result, UnfinishedLine)
    assert result.record.is_unfinished
    assert result.record.name == "read"
    assert result.record.arguments == "3,"
    assert result.record.return_value is None


def test_resumed_call():
    result = classify_line('1 10:00:03 <... read resumed> "buf", 10) = 10', PID_AND_TIME)
    assert isinstance(result, ResumedLine)
    record = result.record
    assert record.is_resumed
    assert record.name == "read"
    assert record.arguments == '"buf", 10'
    assert record.return_value == "10"


def test_resumed_call_with_error():
    line = "<... wait4 resumed>0x7ffc, 0, NULL) = -1 ECHILD (No child processes)"
    record = classify_line(line, PLAIN).record
    assert record.error.code == "ECHILD"


def test_resumed_call_unfinished_again_is_malformed():
    with pytest.raises(MalformedLine):
        classify_line("<... read resumed>1, <unfinished ...>", PLAIN)


def test_call_abandoned_by_exiting_thread():
    """The call is complete as far as the trace goes, but has no result."""
    line = "17 futex(0x1, FUTEX_WAIT, 0, NULL <unfinished ...>) = ?"
    result = classify_line(line, PID_ONLY)
    assert isinstance(result, SyscallLine)
    record = result.record
    assert record.name == "futex"
    assert record.arguments == "0x1, FUTEX_WAIT, 0, NULL"
    assert record.return_value is None
    assert record.is_unfinished


def test_resumed_call_abandoned_by_exiting_thread():
    result = classify_line("17 <... futex resumed> <unfinished ...>) = ?", PID_ONLY)
    assert isinstance(result, ResumedLine)
    assert result.record.is_unfinished
    assert result.record.arguments == ""
    assert result.record.return_value is None


# --- Signals and exits ---


def test_signal_line():
    line = "100 --- SIGCHLD {si_signo=SIGCHLD, si_code=CLD_EXITED, si_pid=101} ---"
    result = classify_line(line, PID_ONLY)
    assert isinstance(result, SignalLine)
    record = result.record
    assert record.kind == "signal"
    assert record.signal.name == "SIGCHLD"
    assert record.signal.detail == "{si_signo=SIGCHLD, si_code=CLD_EXITED, si_pid=101}"
    assert record.name == ""


def test_stopped_by_signal_line():
    record = classify_line("--- stopped by SIGSTOP ---", PLAIN).record
    assert record.signal.name == "SIGSTOP"
    assert record.signal.detail == "stopped by SIGSTOP"


def test_exit_line():
    result = classify_line("100 10:00:05 +++ exited with 3 +++", PID_AND_TIME)
    assert isinstance(result, ExitLine)
    assert result.record.exit.code == 3
    assert result.record.exit.signal is None
    assert result.record.kind == "exit"


def test_killed_with_core_dump():
    record = classify_line("+++ killed by SIGSEGV (core dumped) +++", PLAIN).record
    assert record.exit.signal == "SIGSEGV"
    assert record.exit.core_dumped
    assert record.exit.code is None
    assert str(record.exit) == "killed by SIGSEGV (core dumped)"


# --- Frames and unrecognized lines ---


def test_frame_line():
    result = classify_line(" > /usr/lib/libc.so.6(__write+0x14) [0x10e53e]", PID_AND_TIME)
    assert isinstance(result, FrameLine)
    assert result.frame.function == "__write"


def test_garbage_is_unrecognized():
    result = classify_line("garbage text not a syscall", PLAIN)
    assert isinstance(result, UnrecognizedLine)


def test_missing_prefix_in_strict_mode_is_unrecognized():
    """A PID mode does not accept lines without a PID column."""
    result = classify_line("close(3) = 0", PID_ONLY)
    assert isinstance(result, UnrecognizedLine)
    assert "PID" in result.reason
