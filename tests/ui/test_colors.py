# Filename: tests/ui/test_colors.py
"""Tests for syscall and PID colouring."""

from straceview.parser.records import CallRecord, ErrnoInfo, ExitInfo, SignalInfo
from straceview.ui.colors import (
    DEFAULT_STYLE,
    PidColors,
    event_text,
    result_text,
    syscall_category,
    syscall_style,
)


def test_categories():
    assert syscall_category("openat") == "file"
    assert syscall_category("clone3") == "process"
    assert syscall_category("mmap") == "memory"
    assert syscall_category("connect") == "network"
    assert syscall_category("unlinkat") == "filesystem"
    assert syscall_category("nanosleep") == "time"
    assert syscall_category("rt_sigaction") == "signal"
    assert syscall_category("seccomp") == "security"
    assert syscall_category("epoll_wait") == "polling"
    assert syscall_category("prlimit64") == "resources"
    assert syscall_category("io_uring_enter") is None
    assert syscall_style("io_uring_enter") == DEFAULT_STYLE


def test_pid_colors_are_stable_and_cycle():
    colors = PidColors(palette=("red", "blue"))
    assert colors.style(100) == "red"
    assert colors.style(200) == "blue"
    assert colors.style(300) == "red"
    assert colors.style(100) == "red"


def test_event_and_result_text():
    call = CallRecord(pid=1, name="read", return_value="-1", error=ErrnoInfo("EAGAIN", "again"))
    assert event_text(call).plain == "read"
    assert result_text(call).plain == "-1 EAGAIN"

    signal = CallRecord(pid=1, signal=SignalInfo("SIGINT"))
    assert event_text(signal).plain == "--- SIGINT ---"
    assert result_text(signal).plain == ""

    exit_record = CallRecord(pid=1, exit=ExitInfo(code=0))
    assert event_text(exit_record).plain == "+++ exited with 0 +++"

    pending = CallRecord(pid=1, name="read", is_unfinished=True)
    assert result_text(pending).plain == "<unfinished>"
