"""Request context binding for structured logging.

This module binds trace identifiers to structlog's context variables so
every record emitted while a request is handled carries them, including
records from loggers the request handler never received explicitly.

Usage:
    from redactlog.logging import bind_request_context

    with bind_request_context(trace="projects/p/traces/abc", span="123"):
        logger.info("processing_request")

Dependencies:
    - structlog.contextvars
"""

from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import structlog

# Special fields recognized by Google Cloud Logging in structured JSON logs
TRACE_KEY = "logging.googleapis.com/trace"
SPAN_KEY = "logging.googleapis.com/spanId"
SAMPLED_KEY = "logging.googleapis.com/trace_sampled"


def trace_fields(trace: str, span: Optional[str] = None) -> Dict[str, Any]:
    """Build the fields binding a record to a trace and optional span."""
    fields: Dict[str, Any] = {TRACE_KEY: trace}
    if span is not None:
        fields[SPAN_KEY] = span
    return fields


@contextmanager
def bind_request_context(
    trace: str,
    span: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind trace context to all logs within the context manager.

    Args:
        trace: Trace resource name (projects/<project>/traces/<id>).
        span: Span identifier, if known.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is bound to structlog's context vars for the block.
    """
    context = trace_fields(trace, span)
    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_trace_context() -> Dict[str, Any]:
    """Get the trace and span currently bound to the logging context.

    Returns:
        A dict with the bound trace/span keys; empty outside a request.
    """
    ctx = structlog.contextvars.get_contextvars()
    return {key: ctx[key] for key in (TRACE_KEY, SPAN_KEY) if key in ctx}


def clear_request_context() -> None:
    """Clear all request-scoped context from the logging context."""
    structlog.contextvars.clear_contextvars()
