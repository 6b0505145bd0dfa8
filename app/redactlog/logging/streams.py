"""Output streams and the physical record write.

A LogStream renders a finished record with its own processor chain and writes
the resulting line to a text file (stdout by default). The StreamWriter is the
physical write the emit interceptor forwards to: it hands every record to
each stream whose minimum level admits it.

RecordLogger is the object structlog wraps. Its level methods receive the
processed record as keyword arguments and pass it to the emit function.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, TextIO, Union

import structlog
from structlog.typing import Processor

from redactlog.errors import LoggerConfigError
from redactlog.logging import formatters

LEVELS: Dict[str, int] = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def parse_level(level: Union[str, int]) -> int:
    """Convert a level name or number into a stdlib logging level.

    Accepts the structlog/stdlib names, the bunyan names trace, warn and
    fatal, and the stdlib integer levels (DEBUG through CRITICAL).

    Raises:
        LoggerConfigError: If the level is not recognized.
    """
    if isinstance(level, bool):
        raise LoggerConfigError(f"Unknown log level: {level!r}")
    if isinstance(level, int):
        if level in LEVELS.values():
            return level
    elif isinstance(level, str):
        name = level.strip().lower()
        if name in LEVELS:
            return LEVELS[name]
    raise LoggerConfigError(f"Unknown log level: {level!r}")


def _stdout() -> TextIO:
    return sys.stdout


@dataclass
class LogStream:
    """A destination for records with its own minimum level and rendering.

    Attributes:
        processors: Chain applied to a copy of the record; the last one must
            return the rendered line.
        level: Minimum stdlib level written to this stream.
        file: Text file the lines are written to.
    """

    processors: Sequence[Processor]
    level: int = logging.INFO
    file: TextIO = field(default_factory=_stdout)

    def write(self, record: Dict[str, Any]) -> None:
        method_name = record.get("level", "info")
        if LEVELS.get(method_name, logging.INFO) < self.level:
            return

        rendered: Any = dict(record)
        for processor in self.processors:
            rendered = processor(None, method_name, rendered)

        self.file.write(rendered + "\n")
        self.file.flush()


def console_stream(
    level: int = logging.INFO,
    colors: bool = True,
    file: Optional[TextIO] = None,
) -> LogStream:
    """Human-readable, optionally colorized lines for a local terminal."""
    return LogStream(
        processors=[
            formatters.prepare_console_record,
            structlog.dev.ConsoleRenderer(
                colors=colors,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ],
        level=level,
        file=file or sys.stdout,
    )


def cloud_logging_stream(
    level: int = logging.INFO, file: Optional[TextIO] = None
) -> LogStream:
    """Structured JSON lines for the Google Cloud Logging agent.

    Managed hosts collect stdout, so records are written there and flushed
    one by one; nothing is buffered in process when it exits.
    """
    return LogStream(
        processors=[
            formatters.add_cloud_logging_fields,
            structlog.processors.JSONRenderer(),
        ],
        level=level,
        file=file or sys.stdout,
    )


class StreamWriter:
    """Write each record to every configured stream."""

    def __init__(self, streams: Iterable[LogStream]):
        self.streams = tuple(streams)
        if not self.streams:
            raise LoggerConfigError("At least one log stream is required")

    @property
    def min_level(self) -> int:
        return min(stream.level for stream in self.streams)

    def __call__(self, record: Dict[str, Any]) -> None:
        for stream in self.streams:
            stream.write(record)


class RecordLogger:
    """Wrapped logger receiving fully processed records from structlog."""

    def __init__(self, emit: Callable[[Dict[str, Any]], Any]):
        self._emit = emit

    def _write(self, /, **record: Any) -> Any:
        return self._emit(record)

    debug = info = warning = error = critical = msg = _write
