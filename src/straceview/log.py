# Filename: src/straceview/log.py
"""Logging setup for straceview."""

import logging
import sys
from collections import deque

# --- TRACE level ---
TRACE_LEVEL_NUM = 5
logging.addLevelName(TRACE_LEVEL_NUM, "TRACE")


def trace(self, message, *args, **kws):
    if self.isEnabledFor(TRACE_LEVEL_NUM):
        self._log(TRACE_LEVEL_NUM, message, args, **kws)


logging.Logger.trace = trace

# Messages shown on the viewer's log screen
LOG_QUEUE = deque(maxlen=1000)

LEVEL_MARKUP = (
    (logging.CRITICAL, "bold red"),
    (logging.ERROR, "red"),
    (logging.WARNING, "yellow"),
    (logging.INFO, "green"),
    (logging.DEBUG, "dim"),
    (TRACE_LEVEL_NUM, "dim white on grey11"),
)


class TextualLogHandler(logging.Handler):
    """Formats records with rich markup and appends them to a deque."""

    def __init__(self, log_queue: deque):
        super().__init__()
        self.log_queue = log_queue
        self.setFormatter(logging.Formatter(datefmt="%H:%M:%S"))

    def emit(self, record: logging.LogRecord):
        try:
            plain_msg = f"{record.name}: {record.getMessage()}"
            timestamp = self.formatter.formatTime(record, self.formatter.datefmt)
            for level, style in LEVEL_MARKUP:
                if record.levelno >= level:
                    self.log_queue.append(f"{timestamp} [{style}]{plain_msg}[/]")
                    break
            else:
                self.log_queue.append(f"{timestamp} {plain_msg}")
        except Exception:
            self.handleError(record)


def level_from_name(level_name: str) -> int:
    level_name = level_name.upper()
    if level_name == "TRACE":
        return TRACE_LEVEL_NUM
    return getattr(logging, level_name, logging.INFO)


def setup_logging(
    level_name: str = "INFO", log_file: str | None = None, console: bool = False
):
    """
    Configures the root logger.

    Records always go to LOG_QUEUE for the viewer. With `log_file` they are
    also appended to that file, and with `console` written to stderr (used
    when there is no viewer to show them).
    """
    log_level = level_from_name(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_formatter = logging.Formatter(
        "%(asctime)s %(levelname)-8s %(name)-30s %(message)s", datefmt="%H:%M:%S"
    )

    textual_handler = TextualLogHandler(LOG_QUEUE)
    textual_handler.setLevel(log_level)
    root_logger.addHandler(textual_handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setLevel(log_level)
        stream_handler.setFormatter(
            logging.Formatter("%(levelname)s %(name)s: %(message)s")
        )
        root_logger.addHandler(stream_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(log_formatter)
            root_logger.addHandler(file_handler)
            logging.getLogger("straceview").info(f"Logging to file: {log_file}")
        except OSError as e:
            print(f"Error: Could not open log file '{log_file}': {e}", file=sys.stderr)
            logging.getLogger("straceview").error(
                f"Failed to open log file '{log_file}': {e}"
            )

    logging.getLogger("straceview").info(
        f"Logging configured at level {logging.getLevelName(log_level)}."
    )
