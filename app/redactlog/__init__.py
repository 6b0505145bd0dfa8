"""redactlog - structured logging with redaction for server processes.

One call returns a ready-to-use structlog logger: JSON for Google Cloud
Logging on managed hosts, colorized console output everywhere else. Every
record passes through the redaction pipeline right before it is written.

Example:
    from redactlog import RedactOptions, create_logger, create_logging_middleware

    logger = create_logger(
        redact=RedactOptions(paths=["password", "req.headers.authorization"]),
    )
    app.middleware("http")(create_logging_middleware("my-project", logger))
"""

from redactlog.errors import (
    GlobalReplaceError,
    LogRecordSerializationError,
    LoggerConfigError,
    RedactionConfigError,
    RedactlogError,
)
from redactlog.logging import (
    SENSITIVE_HEADER_PATHS,
    RedactOptions,
    Redactor,
    create_detailed_request_serializers,
    create_logger,
    pattern_replacer,
)
from redactlog.middleware import RequestLoggingMiddleware, create_logging_middleware

__all__ = [
    "GlobalReplaceError",
    "LogRecordSerializationError",
    "LoggerConfigError",
    "RedactionConfigError",
    "RedactlogError",
    "SENSITIVE_HEADER_PATHS",
    "RedactOptions",
    "Redactor",
    "create_detailed_request_serializers",
    "create_logger",
    "pattern_replacer",
    "RequestLoggingMiddleware",
    "create_logging_middleware",
]
