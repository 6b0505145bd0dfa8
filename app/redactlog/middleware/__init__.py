"""HTTP middleware - public API.

Exports:
    create_logging_middleware: Function middleware factory
    RequestLoggingMiddleware: Class form for app.add_middleware
    extract_trace_context / TraceContext: Trace header parsing
"""

from redactlog.middleware.request_logging import (
    REQUEST_FINISHED,
    RequestLoggingMiddleware,
    create_logging_middleware,
    make_http_request_data,
    prefix_function_name,
)
from redactlog.middleware.tracing import TraceContext, extract_trace_context

__all__ = [
    "REQUEST_FINISHED",
    "RequestLoggingMiddleware",
    "create_logging_middleware",
    "make_http_request_data",
    "prefix_function_name",
    "TraceContext",
    "extract_trace_context",
]
