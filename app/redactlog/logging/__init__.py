"""Structured logging with redaction.

This package builds structlog loggers whose records are redacted right
before they are written.

Public API:
    - create_logger(): Build a logger for the current host
    - create_detailed_request_serializers(): Serializer table for err/req/res
    - RedactOptions / Redactor: Redaction rule set and its compiled form
    - EmitInterceptor: Redacting wrapper around a record write
    - bind_request_context(): Context manager for request-scoped trace fields

Example:
    from redactlog.logging import create_logger, RedactOptions

    logger = create_logger(redact=RedactOptions(paths=["password"]))
    logger.info("login", user="a", password="secret")
"""

from redactlog.logging.setup import build_processors, create_logger

from redactlog.logging.redaction import (
    DEFAULT_CENSOR,
    SENSITIVE_HEADER_PATHS,
    RedactOptions,
    Redactor,
    compile_redactor,
    pattern_replacer,
)

from redactlog.logging.serializers import create_detailed_request_serializers

from redactlog.logging.interceptor import RESERVED_FIELDS, EmitInterceptor

from redactlog.logging.streams import (
    LogStream,
    StreamWriter,
    cloud_logging_stream,
    console_stream,
    parse_level,
)

from redactlog.logging.context import (
    SAMPLED_KEY,
    SPAN_KEY,
    TRACE_KEY,
    bind_request_context,
    clear_request_context,
    get_trace_context,
)

__all__ = [
    # Setup
    "build_processors",
    "create_logger",
    # Redaction
    "DEFAULT_CENSOR",
    "SENSITIVE_HEADER_PATHS",
    "RedactOptions",
    "Redactor",
    "compile_redactor",
    "pattern_replacer",
    # Serializers
    "create_detailed_request_serializers",
    # Interceptor
    "RESERVED_FIELDS",
    "EmitInterceptor",
    # Streams
    "LogStream",
    "StreamWriter",
    "cloud_logging_stream",
    "console_stream",
    "parse_level",
    # Context
    "SAMPLED_KEY",
    "SPAN_KEY",
    "TRACE_KEY",
    "bind_request_context",
    "clear_request_context",
    "get_trace_context",
]
