"""Exception types raised by redactlog.

Configuration errors surface from the factories at startup. Serialization
errors surface from the log call itself and are never swallowed.
"""


class RedactlogError(Exception):
    """Base class for all redactlog errors."""


class LoggerConfigError(RedactlogError):
    """Invalid logger options (unknown level, malformed redaction options)."""


class RedactionConfigError(LoggerConfigError):
    """A redaction path could not be parsed."""


class LogRecordSerializationError(RedactlogError):
    """A record payload could not be converted to JSON text."""


class GlobalReplaceError(RedactlogError):
    """The global replace function did not return a JSON object."""
