# Filename: src/straceview/export.py
"""Structured (JSON) form of a parsed trace."""

import json
import logging
import os
from collections.abc import Iterable
from typing import Any, TextIO

from straceview.parser.records import CallRecord, ParseError

log = logging.getLogger(__name__)


def summarize(records: Iterable[CallRecord]) -> dict[str, Any]:
    """Counts calls, failures, signals, exits and PIDs."""
    total = failed = signals = exits = incomplete = 0
    pids: set[int] = set()
    for record in records:
        pids.add(record.pid)
        if record.is_unfinished:
            incomplete += 1
        if record.signal is not None:
            signals += 1
        elif record.exit is not None:
            exits += 1
        else:
            total += 1
            if record.failed:
                failed += 1
    return {
        "total_syscalls": total,
        "failed_syscalls": failed,
        "unique_pids": sorted(pids),
        "signals": signals,
        "exits": exits,
        "incomplete": incomplete,
        # Durations are never computed
        "total_duration": None,
    }


def build_document(
    records: list[CallRecord], errors: list[ParseError]
) -> dict[str, Any]:
    return {
        "entries": [record.to_dict() for record in records],
        "summary": summarize(records),
        "errors": [error.to_dict() for error in errors],
    }


def write_json(
    records: list[CallRecord],
    errors: list[ParseError],
    out: TextIO | str | os.PathLike,
    pretty: bool = False,
) -> None:
    """Writes the document to a stream or a file path."""
    document = build_document(records, errors)
    indent = 2 if pretty else None
    if isinstance(out, (str, os.PathLike)):
        with open(out, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=indent)
            f.write("\n")
        log.info(f"Wrote {len(records)} records to {os.fspath(out)}")
    else:
        json.dump(document, out, indent=indent)
        out.write("\n")


def load_entries(document: dict[str, Any] | str) -> list[CallRecord]:
    """Rebuilds CallRecords from a document (or its JSON text)."""
    if isinstance(document, str):
        document = json.loads(document)
    return [CallRecord.from_dict(entry) for entry in document.get("entries", [])]
