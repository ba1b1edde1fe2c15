# Filename: src/straceview/parser/errors.py
"""Exceptions raised while reading and parsing strace output."""


class MalformedLine(ValueError):
    """
    A line matched a known shape but could not be decomposed.

    Always recoverable: the assembler turns it into a ParseError record and
    moves on to the next line.
    """

    pass


class TraceSourceError(OSError):
    """The trace input could not be opened or read at all."""

    pass
