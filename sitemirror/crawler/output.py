"""Severity-aware output logger on the standard `logging` module, coloured through rich."""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
import logging
import logging.handlers
from pathlib import Path
import queue

from rich.console import Console
from rich.text import Text


class MessageType(IntEnum):
    """Output severities mapped onto `logging` levels."""

    INSIGNIFICANT = 5
    NORMAL = logging.INFO
    EMPHASIS = 22
    SUCCESS = 25
    WARNING = logging.WARNING
    ERROR = logging.ERROR


for _level in (MessageType.INSIGNIFICANT, MessageType.EMPHASIS, MessageType.SUCCESS):
    logging.addLevelName(int(_level), _level.name)


DEFAULT_LOGGER_NAME = "sitemirror"
TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"


class PrefixFormatter(logging.Formatter):
    """Render `[timestamp] message`, optionally with the level name.

    A record carrying a `prefix` attribute (see `OutputLogger.log`) uses that
    text verbatim instead of the default prefix.
    """

    def __init__(self, *, show_level: bool = False) -> None:
        super().__init__()
        self.show_level = show_level

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created)
        return f"{stamp.strftime(datefmt or TIMESTAMP_FORMAT)}.{int(record.msecs):03d}"

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        prefix = getattr(record, "prefix", None)
        if prefix is None:
            prefix = f"[{self.formatTime(record)}] "
            if self.show_level:
                prefix += f"{record.levelname} "
        text = f"{prefix}{message}"

        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


# Console colour per severity; levels between entries take the lower one.
SEVERITY_STYLES: dict[int, str] = {
    MessageType.INSIGNIFICANT: "bright_black",
    MessageType.NORMAL: "white",
    MessageType.EMPHASIS: "cyan",
    MessageType.SUCCESS: "green",
    MessageType.WARNING: "yellow",
    MessageType.ERROR: "red",
}


class ConsoleHandler(logging.Handler):
    """Print formatted records to a rich `Console`, coloured by severity."""

    def __init__(self, console: Console | None = None, *, color: bool = True) -> None:
        super().__init__()
        self.console = console or Console(no_color=not color, highlight=False, soft_wrap=True)

    @staticmethod
    def style_for(levelno: int) -> str:
        for level in sorted(SEVERITY_STYLES, reverse=True):
            if levelno >= level:
                return SEVERITY_STYLES[level]
        return SEVERITY_STYLES[MessageType.INSIGNIFICANT]

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            self.console.print(Text(message, style=self.style_for(record.levelno)))
        except Exception:
            self.handleError(record)


class OutputLogger:
    """Logger handed to the crawl engine.

    Emission is synchronous from the caller's point of view; when logging was
    configured with `asynchronous=True` records are queued and written by a
    listener thread instead.
    """

    def __init__(self, logger: logging.Logger | str | None = None) -> None:
        if isinstance(logger, logging.Logger):
            self._logger = logger
        else:
            self._logger = logging.getLogger(logger or DEFAULT_LOGGER_NAME)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def log(self, level: MessageType, message: str, prefix: str | None = None) -> None:
        extra = {"prefix": prefix} if prefix is not None else None
        self._logger.log(int(level), message, extra=extra)

    def insignificant(self, message: str) -> None:
        self.log(MessageType.INSIGNIFICANT, message)

    def normal(self, message: str) -> None:
        self.log(MessageType.NORMAL, message)

    def emphasis(self, message: str) -> None:
        self.log(MessageType.EMPHASIS, message)

    def success(self, message: str) -> None:
        self.log(MessageType.SUCCESS, message)

    def warning(self, message: str) -> None:
        self.log(MessageType.WARNING, message)

    def error(self, message: str) -> None:
        self.log(MessageType.ERROR, message)


def setup_logging(
    *,
    verbose: bool = False,
    show_level: bool = False,
    asynchronous: bool = False,
    log_file: Path | None = None,
    color: bool = True,
) -> logging.handlers.QueueListener | None:
    """Configure the root logger for CLI runs.

    Console lines go through `ConsoleHandler`, coloured by severity unless
    `color` is False; the optional log file stays plain text. Returns the
    started `QueueListener` when `asynchronous` is set; the caller must
    `stop()` it before exiting so queued records are flushed.
    """

    log_level = MessageType.INSIGNIFICANT if verbose else MessageType.NORMAL
    formatter = PrefixFormatter(show_level=show_level)

    handlers: list[logging.Handler] = []

    console_handler = ConsoleHandler(color=color)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    # requests/urllib3 connection chatter is not useful next to crawl output.
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    if not asynchronous:
        for handler in handlers:
            root.addHandler(handler)
        return None

    record_queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    root.addHandler(logging.handlers.QueueHandler(record_queue))
    listener = logging.handlers.QueueListener(
        record_queue,
        *handlers,
        respect_handler_level=True,
    )
    listener.start()
    return listener


__all__ = [
    "ConsoleHandler",
    "DEFAULT_LOGGER_NAME",
    "MessageType",
    "OutputLogger",
    "PrefixFormatter",
    "SEVERITY_STYLES",
    "setup_logging",
]
