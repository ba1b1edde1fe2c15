"""Helpers for fitting paths and argument text into table cells."""

import os

ELLIPSIS = "..."


def clip(text: str, width: int) -> str:
    """Cuts `text` to `width` characters, marking the cut with an ellipsis."""
    text = " ".join(text.split("\n"))
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= len(ELLIPSIS):
        return text[:width]
    return text[: width - len(ELLIPSIS)] + ELLIPSIS


def short_path(path: str | os.PathLike, max_length: int, cwd: str | None = None) -> str:
    """
    Shortens a path for display.

    Paths under `cwd` (default: the working directory) become relative. The
    file name is kept whole where it fits; otherwise the directory part is
    elided from the left, then the file name itself.
    """
    path_str = os.fspath(path)
    base = cwd if cwd is not None else os.getcwd()
    if not base.endswith(os.sep):
        base += os.sep
    if path_str.startswith(base):
        path_str = path_str[len(base) :] or "."

    if max_length <= 0:
        return ""
    if len(path_str) <= max_length:
        return path_str
    if max_length <= len(ELLIPSIS):
        return path_str[-max_length:]

    directory, filename = os.path.split(path_str)
    room = max_length - len(ELLIPSIS)
    if len(filename) + 1 > room:
        return ELLIPSIS + filename[-room:]
    # Keep the tail of the directory nearest the file
    keep = room - len(filename) - 1
    tail = directory[-keep:] if keep > 0 else ""
    return f"{ELLIPSIS}{tail}{os.sep}{filename}"
