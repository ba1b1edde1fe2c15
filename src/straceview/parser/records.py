# Filename: src/straceview/parser/records.py
"""
Record types produced by the trace parser.

A parse yields a list of CallRecord objects (one per completed syscall,
signal or exit) and a list of ParseError objects. Backtrace frames hang off
the records they were printed under; their `resolved` field stays None until
a resolver fills it in.
"""

from dataclasses import dataclass, field
from typing import Any

# PID used when the trace carries no PID column
NO_PID = 0


@dataclass(frozen=True)
class ResolvedLocation:
    """Source location of a backtrace address."""

    file: str
    line: int
    column: int | None = None

    def __str__(self) -> str:
        if self.column is not None:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResolvedLocation":
        return cls(file=data["file"], line=data["line"], column=data.get("column"))


@dataclass
class BacktraceFrame:
    """One ` > binary(function+offset) [address]` line."""

    binary: str
    address: str
    function: str | None = None
    offset: str | None = None
    resolved: ResolvedLocation | None = None

    @property
    def symbol(self) -> str:
        """`function+offset`, or an empty string for frames without a symbol."""
        if self.function is None:
            return ""
        return f"{self.function}+{self.offset}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "binary": self.binary,
            "function": self.function,
            "offset": self.offset,
            "address": self.address,
            "resolved": (
                None
                if self.resolved is None
                else {
                    "file": self.resolved.file,
                    "line": self.resolved.line,
                    "column": self.resolved.column,
                }
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BacktraceFrame":
        resolved = data.get("resolved")
        return cls(
            binary=data["binary"],
            address=data["address"],
            function=data.get("function"),
            offset=data.get("offset"),
            resolved=ResolvedLocation.from_dict(resolved) if resolved else None,
        )


@dataclass(frozen=True)
class ErrnoInfo:
    """Symbolic errno plus the message strace printed for it."""

    code: str
    message: str


@dataclass(frozen=True)
class SignalInfo:
    name: str
    detail: str = ""


@dataclass(frozen=True)
class ExitInfo:
    """How a process ended: an exit code, or the signal that killed it."""

    code: int | None = None
    signal: str | None = None
    core_dumped: bool = False

    @property
    def killed(self) -> bool:
        return self.signal is not None

    def __str__(self) -> str:
        if self.signal is not None:
            suffix = " (core dumped)" if self.core_dumped else ""
            return f"killed by {self.signal}{suffix}"
        return f"exited with {self.code}"


@dataclass
class CallRecord:
    """
    One completed syscall, signal or exit event.

    Exactly one of the normal-call fields (name/arguments/return_value/error),
    `signal` or `exit` is populated. `is_unfinished` and `is_resumed` are only
    set on records still being assembled; a record handed back by the parser
    with `is_unfinished` set is a call that never completed.
    """

    pid: int = NO_PID
    timestamp: str | None = None
    name: str = ""
    arguments: str = ""
    return_value: str | None = None
    error: ErrnoInfo | None = None
    duration: float | None = None
    backtrace: list[BacktraceFrame] = field(default_factory=list)
    is_unfinished: bool = False
    is_resumed: bool = False
    signal: SignalInfo | None = None
    exit: ExitInfo | None = None

    @property
    def kind(self) -> str:
        if self.signal is not None:
            return "signal"
        if self.exit is not None:
            return "exit"
        return "syscall"

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def incomplete(self) -> bool:
        return self.is_unfinished

    def __repr__(self) -> str:
        if self.signal is not None:
            body = f"--- {self.signal.name} ---"
        elif self.exit is not None:
            body = f"+++ {self.exit} +++"
        else:
            err_part = f" {self.error.code}" if self.error else ""
            body = f"{self.name}(...) = {self.return_value}{err_part}"
        flags = " UNFINISHED" if self.is_unfinished else ""
        return f"CallRecord(pid={self.pid}, ts={self.timestamp}, {body}{flags})"

    def to_dict(self) -> dict[str, Any]:
        """Serializable form; absent optional fields become None."""
        return {
            "pid": self.pid,
            "timestamp": self.timestamp,
            "name": self.name,
            "arguments": self.arguments,
            "return_value": self.return_value,
            "error": (
                None
                if self.error is None
                else {"code": self.error.code, "message": self.error.message}
            ),
            "duration": self.duration,
            "backtrace": [frame.to_dict() for frame in self.backtrace],
            "is_unfinished": self.is_unfinished,
            "is_resumed": self.is_resumed,
            "signal": (
                None
                if self.signal is None
                else {"name": self.signal.name, "detail": self.signal.detail}
            ),
            "exit": (
                None
                if self.exit is None
                else {
                    "code": self.exit.code,
                    "signal": self.exit.signal,
                    "core_dumped": self.exit.core_dumped,
                }
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CallRecord":
        error = data.get("error")
        signal = data.get("signal")
        exit_info = data.get("exit")
        return cls(
            pid=data["pid"],
            timestamp=data.get("timestamp"),
            name=data.get("name", ""),
            arguments=data.get("arguments", ""),
            return_value=data.get("return_value"),
            error=ErrnoInfo(**error) if error else None,
            duration=data.get("duration"),
            backtrace=[BacktraceFrame.from_dict(f) for f in data.get("backtrace", [])],
            is_unfinished=data.get("is_unfinished", False),
            is_resumed=data.get("is_resumed", False),
            signal=SignalInfo(**signal) if signal else None,
            exit=ExitInfo(**exit_info) if exit_info else None,
        )


@dataclass(frozen=True)
class ParseError:
    """A line the parser could not turn into (part of) a record."""

    line_number: int
    message: str
    raw_line: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"line": self.line_number, "message": self.message, "raw_line": self.raw_line}


@dataclass(frozen=True)
class ResolutionError:
    """A symbolizer invocation that failed for one address."""

    binary: str
    address: str
    message: str
