# Filename: src/straceview/parser/resolver.py
"""
Resolution of backtrace addresses to source locations with addr2line.

Resolution never happens during parsing. Callers invoke it for the frames
they care about; every answer, including "unknown" and tool failures, is
cached per (binary, address) so the tool runs at most once per address.

The cache is thread-safe so that a viewer can resolve from a worker thread
while its UI thread reads results. Resolutions from several threads are
serialized, so two workers asking for the same address run the tool once.
"""

import logging
import re
import subprocess
import threading
from collections.abc import Iterable

from upd8 import Versioned, changes, waits

from .records import BacktraceFrame, CallRecord, ResolutionError, ResolvedLocation

log = logging.getLogger(__name__)

DEFAULT_TOOL = "addr2line"
DEFAULT_TIMEOUT = 5.0

# `file:line`, `file:line:column`, optionally `(discriminator N)`
LOCATION_RE = re.compile(
    r"^(?P<file>.+?):(?P<line>\d+|\?)(?::(?P<column>\d+))?"
    r"(?:\s+\(discriminator \d+\))?$"
)


def parse_addr2line_output(text: str) -> ResolvedLocation | None:
    """
    Parses `addr2line -f` output: a function line then a location line.
    Returns None when addr2line does not know the address (`??:0`, `??:?`).

    Raises:
        ValueError: If the output does not have that shape.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValueError(f"expected a function and a location line, got {text.strip()!r}")
    match = LOCATION_RE.match(lines[1])
    if match is None:
        raise ValueError(f"not a file:line location: {lines[1]!r}")
    file, line = match.group("file"), match.group("line")
    if file.startswith("??") or line == "?" or int(line) == 0:
        return None
    column = match.group("column")
    return ResolvedLocation(
        file=file, line=int(line), column=int(column) if column else None
    )


class ResolutionCache(Versioned):
    """(binary, address) -> location map; misses are stored as None."""

    def __init__(self):
        super().__init__()
        self._entries: dict[tuple[str, str], ResolvedLocation | None] = {}

    @waits
    def lookup(self, key: tuple[str, str]) -> tuple[bool, ResolvedLocation | None]:
        """Returns (found, location)."""
        if key in self._entries:
            return True, self._entries[key]
        return False, None

    @changes
    def store(self, key: tuple[str, str], location: ResolvedLocation | None) -> None:
        self._entries[key] = location

    @waits
    def __len__(self) -> int:
        return len(self._entries)


class Addr2LineResolver:
    """
    Resolves backtrace addresses by running `addr2line -e BINARY -f -C ADDR`.

    Failures (tool missing, timeout, non-zero exit, malformed output) resolve
    to None, are logged, and are recorded in `errors`; they are never raised.
    """

    def __init__(
        self,
        tool: str = DEFAULT_TOOL,
        timeout: float = DEFAULT_TIMEOUT,
        cache: ResolutionCache | None = None,
    ):
        self.tool = tool
        self.timeout = timeout
        self.cache = cache if cache is not None else ResolutionCache()
        self.errors: list[ResolutionError] = []
        # Held from cache lookup to store so an address is never resolved twice
        self._resolving = threading.Lock()

    @property
    def cache_size(self) -> int:
        return len(self.cache)

    def resolve(self, binary: str, address: str) -> ResolvedLocation | None:
        """Returns the source location of `address` in `binary`, cached."""
        key = (binary, address)
        with self._resolving:
            found, location = self.cache.lookup(key)
            if found:
                return location
            location = self._run_tool(binary, address)
            self.cache.store(key, location)
        return location

    def resolve_frame(self, frame: BacktraceFrame) -> ResolvedLocation | None:
        """Resolves one frame in place; an already resolved frame is kept."""
        if frame.resolved is None:
            frame.resolved = self.resolve(frame.binary, frame.address)
        return frame.resolved

    def resolve_all(self, frames: Iterable[BacktraceFrame]) -> int:
        """Resolves every unresolved frame in place. Returns how many resolved."""
        resolved = 0
        for frame in frames:
            if self.resolve_frame(frame) is not None:
                resolved += 1
        return resolved

    def resolve_records(self, records: Iterable[CallRecord]) -> int:
        """Resolves the backtraces of all records."""
        resolved = 0
        for record in records:
            resolved += self.resolve_all(record.backtrace)
        log.info(
            f"Resolved {resolved} frames ({self.cache_size} addresses cached, "
            f"{len(self.errors)} failures)."
        )
        return resolved

    def _fail(self, binary: str, address: str, message: str) -> None:
        log.warning(f"Cannot resolve {binary} {address}: {message}")
        self.errors.append(ResolutionError(binary, address, message))

    def _run_tool(self, binary: str, address: str) -> ResolvedLocation | None:
        cmd = [self.tool, "-e", binary, "-f", "-C", address]
        log.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout
            )
        except FileNotFoundError:
            self._fail(binary, address, f"'{self.tool}' not found")
            return None
        except subprocess.TimeoutExpired:
            self._fail(binary, address, f"'{self.tool}' timed out after {self.timeout}s")
            return None
        except OSError as e:
            self._fail(binary, address, f"could not run '{self.tool}': {e}")
            return None

        if result.returncode != 0:
            detail = (result.stderr or "").strip().splitlines()
            self._fail(
                binary,
                address,
                f"'{self.tool}' exited with {result.returncode}"
                + (f": {detail[0]}" if detail else ""),
            )
            return None

        try:
            location = parse_addr2line_output(result.stdout)
        except ValueError as e:
            self._fail(binary, address, f"unexpected '{self.tool}' output: {e}")
            return None
        if location is None:
            log.debug(f"No source location for {binary} {address}")
        return location
