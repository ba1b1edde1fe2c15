# Filename: tests/parser/test_assembler.py
"""Tests for joining unfinished/resumed calls and attaching backtraces."""

import pytest

from straceview.parser.assembler import PendingCall, PendingCalls, TraceAssembler
from straceview.parser.detect import PID_AND_TIME, PLAIN
from straceview.parser.reader import parse_lines
from straceview.parser.records import CallRecord


def assemble(lines, mode=PID_AND_TIME):
    assembler = TraceAssembler(mode)
    for number, line in enumerate(lines, start=1):
        assembler.feed(number, line)
    return assembler.finish()


# --- Pending call table ---


def test_pending_calls_one_per_pid():
    pending = PendingCalls()
    first = PendingCall(CallRecord(pid=1, name="read"), 1, "a")
    second = PendingCall(CallRecord(pid=1, name="write"), 2, "b")
    other = PendingCall(CallRecord(pid=2, name="poll"), 3, "c")
    assert pending.start(first) is None
    assert pending.start(other) is None
    assert pending.start(second) is first
    assert len(pending) == 2
    assert 1 in pending
    assert pending.take(1) is second
    assert pending.take(1) is None
    assert pending.drain() == [other]
    assert len(pending) == 0


# --- Ordering and merging ---


def test_self_contained_lines_keep_file_order():
    records, errors = assemble(
        [
            "1 10:00:00 getpid() = 1",
            "2 10:00:01 getpid() = 2",
            "1 10:00:02 +++ exited with 0 +++",
        ]
    )
    assert errors == []
    assert [(r.pid, r.kind) for r in records] == [(1, "syscall"), (2, "syscall"), (1, "exit")]


def test_interleaved_call_is_emitted_at_resumption():
    """The record completed in between comes before the merged call."""
    records, errors = assemble(
        [
            "1 10:00:01 read(3, <unfinished ...>",
            '2 10:00:02 write(1,"x",1) = 1',
            '1 10:00:03 <... read resumed> "buf", 10) = 10',
        ]
    )
    assert errors == []
    assert len(records) == 2
    write, read = records
    assert (write.pid, write.name) == (2, "write")
    assert (read.pid, read.name) == (1, "read")
    assert read.arguments == '3, "buf", 10'
    assert read.return_value == "10"
    assert read.timestamp == "10:00:01"
    assert not read.is_unfinished
    assert not read.is_resumed


def test_interleaved_call_with_opaque_timestamps():
    """Detection and assembly straight from the raw lines."""
    records, errors = parse_lines(
        [
            "1 t1 read(3, <unfinished ...>",
            '2 t2 write(1,"x",1) = 1',
            '1 t3 <... read resumed> "buf", 10) = 10',
        ]
    )
    assert errors == []
    assert [(r.pid, r.name) for r in records] == [(2, "write"), (1, "read")]
    assert records[1].return_value == "10"
    assert records[1].arguments == '3, "buf", 10'
    assert records[1].timestamp == "t1"


def test_resumed_error_is_kept():
    records, _ = assemble(
        [
            "5 10:00:00 wait4(-1, <unfinished ...>",
            "5 10:00:01 <... wait4 resumed>0x7ffc, 0, NULL) = -1 ECHILD (No child processes)",
        ]
    )
    assert records[0].error.code == "ECHILD"
    assert records[0].arguments == "-1, 0x7ffc, 0, NULL"


def test_unfinished_at_end_of_input_is_incomplete():
    records, errors = assemble(
        [
            "1 10:00:00 read(0, <unfinished ...>",
            "2 10:00:01 close(3) = 0",
        ]
    )
    assert [r.name for r in records] == ["close", "read"]
    assert records[1].is_unfinished
    assert records[1].incomplete
    assert len(errors) == 1
    assert errors[0].line_number == 1
    assert "never resumed" in errors[0].message


def test_exit_flushes_pending_call_without_error():
    records, errors = assemble(
        [
            "1 10:00:00 futex(0x7f, FUTEX_WAIT, 0, NULL <unfinished ...>",
            "1 10:00:05 +++ killed by SIGKILL +++",
        ]
    )
    assert errors == []
    assert [r.kind for r in records] == ["syscall", "exit"]
    assert records[0].is_unfinished
    assert records[1].exit.signal == "SIGKILL"


def test_call_abandoned_by_exiting_thread_is_incomplete():
    records, errors = assemble(
        [
            "1 10:00:00 futex(0x1, FUTEX_WAIT, 0, NULL <unfinished ...>) = ?",
            " > /usr/lib/libc.so.6(syscall+0x1d) [0x11c8fd]",
            "1 10:00:05 +++ exited with 0 +++",
        ]
    )
    assert errors == []
    futex, exit_record = records
    assert (futex.name, futex.arguments) == ("futex", "0x1, FUTEX_WAIT, 0, NULL")
    assert futex.is_unfinished
    assert futex.return_value is None
    assert [f.function for f in futex.backtrace] == ["syscall"]
    assert exit_record.kind == "exit"


def test_resumed_call_cut_short_stays_incomplete():
    records, errors = assemble(
        [
            "1 10:00:00 futex(0x1, FUTEX_WAIT, 0, NULL <unfinished ...>",
            "2 10:00:01 exit_group(0) = ?",
            "1 10:00:02 <... futex resumed> <unfinished ...>) = ?",
            "1 10:00:02 +++ exited with 0 +++",
        ]
    )
    assert errors == []
    assert [(r.pid, r.name, r.is_unfinished) for r in records[:2]] == [
        (2, "exit_group", False),
        (1, "futex", True),
    ]
    assert records[1].arguments == "0x1, FUTEX_WAIT, 0, NULL"
    assert not records[1].is_resumed


def test_duplicate_unfinished_emits_older_as_incomplete():
    records, errors = assemble(
        [
            "1 10:00:00 read(0, <unfinished ...>",
            "1 10:00:01 write(1, <unfinished ...>",
            '1 10:00:02 <... write resumed>"x", 1) = 1',
        ]
    )
    assert [(r.name, r.is_unfinished) for r in records] == [("read", True), ("write", False)]
    assert len(errors) == 1
    assert errors[0].line_number == 2


def test_resumed_name_mismatch_uses_resumed_name():
    records, errors = assemble(
        [
            "1 10:00:00 read(0, <unfinished ...>",
            '1 10:00:01 <... recvfrom resumed>"x", 1) = 1',
        ]
    )
    assert len(records) == 1
    assert records[0].name == "recvfrom"
    assert len(errors) == 1
    assert "does not match" in errors[0].message


def test_orphan_resumed_line_is_an_error():
    records, errors = assemble(
        [
            "1 10:00:00 <... read resumed>\"x\", 1) = 1",
            " > /usr/lib/libc.so.6(read+0x10) [0x1000]",
            "1 10:00:01 close(0) = 0",
        ]
    )
    assert [r.name for r in records] == ["close"]
    assert records[0].backtrace == []
    # The frame under the rejected line is dropped without a second error
    assert len(errors) == 1
    assert errors[0].line_number == 1


# --- Backtraces ---


def test_frames_attach_to_preceding_record():
    records, errors = assemble(
        [
            '100 10:00:00 write(1, "hi", 2) = 2',
            " > /usr/lib/libc.so.6(__write+0x14) [0x10e53e]",
            " > /usr/bin/prog(main+0x20) [0x1149]",
            "100 10:00:01 close(1) = 0",
            " > /usr/lib/libc.so.6(__close+0xb) [0x10f00b]",
        ]
    )
    assert errors == []
    assert [f.function for f in records[0].backtrace] == ["__write", "main"]
    assert [f.function for f in records[1].backtrace] == ["__close"]


def test_frames_of_unfinished_call_survive_the_merge():
    records, errors = assemble(
        [
            "1 10:00:00 read(3, <unfinished ...>",
            " > /usr/lib/libc.so.6(read+0x12) [0x114992]",
            "2 10:00:01 getpid() = 2",
            " > /usr/lib/libc.so.6(getpid+0x7) [0xeb8f7]",
            '1 10:00:02 <... read resumed>"x", 1) = 1',
        ]
    )
    assert errors == []
    getpid, read = records
    assert [f.function for f in getpid.backtrace] == ["getpid"]
    assert [f.function for f in read.backtrace] == ["read"]


def test_leading_frames_without_a_call_are_one_error():
    records, errors = assemble(
        [
            " > /usr/lib/libc.so.6(read+0x12) [0x114992]",
            " > /usr/bin/prog(main+0x20) [0x1149]",
            "1 10:00:00 getpid() = 1",
        ]
    )
    assert len(records) == 1
    assert records[0].backtrace == []
    assert len(errors) == 1
    assert errors[0].line_number == 1


def test_malformed_frame_does_not_end_the_block():
    records, errors = assemble(
        [
            "1 10:00:00 getpid() = 1",
            " > /usr/lib/libc.so.6(getpid) [0xeb8f7]",
            " > /usr/bin/prog(main+0x20) [0x1149]",
        ]
    )
    assert [f.function for f in records[0].backtrace] == ["main"]
    assert len(errors) == 1
    assert errors[0].line_number == 2


# --- Error recovery ---


def test_garbage_line_does_not_stop_parsing():
    records, errors = assemble(
        ["garbage text not a syscall", "getpid() = 1"],
        mode=PLAIN,
    )
    assert [r.name for r in records] == ["getpid"]
    assert len(errors) == 1
    assert errors[0].line_number == 1
    assert errors[0].raw_line == "garbage text not a syscall"


def test_blank_lines_are_skipped():
    records, errors = assemble(["", "getpid() = 1\n", "   "], mode=PLAIN)
    assert len(records) == 1
    assert errors == []


def test_feed_after_finish_is_rejected():
    assembler = TraceAssembler(PLAIN)
    assembler.feed(1, "getpid() = 1")
    records, _ = assembler.finish()
    assert len(records) == 1
    with pytest.raises(RuntimeError):
        assembler.feed(2, "getpid() = 1")
