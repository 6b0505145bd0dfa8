"""Trace context extraction from inbound request headers.

Headers are checked in this order:
    traceparent             W3C Trace Context: 00-<trace>-<span>-<flags>
    X-Cloud-Trace-Context   Google: <trace>[/<span>][;o=<0|1>]

When neither is present a new trace id is generated and the request is
reported as not sampled.
"""

import re
import uuid
from dataclasses import dataclass
from typing import Mapping, Optional

TRACEPARENT_HEADER = "traceparent"
CLOUD_TRACE_HEADER = "x-cloud-trace-context"

_TRACEPARENT = re.compile(
    r"^(?P<version>[0-9a-f]{2})-(?P<trace>[0-9a-f]{32})-(?P<span>[0-9a-f]{16})-(?P<flags>[0-9a-f]{2})$"
)
_CLOUD_TRACE = re.compile(
    r"^(?P<trace>[0-9a-fA-F]+)(?:/(?P<span>\d+))?(?:;o=(?P<options>\d+))?$"
)


@dataclass(frozen=True)
class TraceContext:
    """Trace identifiers of one request.

    Attributes:
        trace: Trace resource name, projects/<project>/traces/<id> when a
            project id is known, the bare trace id otherwise.
        span: Span id, if the caller sent one.
        sampled: Whether the caller sampled this trace.
    """

    trace: str
    span: Optional[str] = None
    sampled: bool = False


def format_trace(trace_id: str, project_id: Optional[str]) -> str:
    if project_id:
        return f"projects/{project_id}/traces/{trace_id}"
    return trace_id


def _parse_traceparent(value: str) -> Optional[TraceContext]:
    match = _TRACEPARENT.match(value.strip().lower())
    if match is None or match.group("version") == "ff":
        return None
    # All-zero ids are invalid traceparent values
    if set(match.group("trace")) == {"0"} or set(match.group("span")) == {"0"}:
        return None
    return TraceContext(
        trace=match.group("trace"),
        span=match.group("span"),
        sampled=bool(int(match.group("flags"), 16) & 1),
    )


def _parse_cloud_trace(value: str) -> Optional[TraceContext]:
    match = _CLOUD_TRACE.match(value.strip())
    if match is None:
        return None
    return TraceContext(
        trace=match.group("trace"),
        span=match.group("span"),
        sampled=match.group("options") == "1",
    )


def extract_trace_context(
    headers: Mapping[str, str], project_id: Optional[str] = None
) -> TraceContext:
    """Read the trace context of a request from its headers.

    Args:
        headers: Request headers. Lookups use lowercase names, which
            Starlette's Headers matches case-insensitively.
        project_id: Google Cloud project used to build the trace name.

    Returns:
        The extracted context, or a new unsampled trace.
    """
    context = None
    traceparent = headers.get(TRACEPARENT_HEADER)
    if traceparent:
        context = _parse_traceparent(traceparent)
    if context is None:
        cloud_trace = headers.get(CLOUD_TRACE_HEADER)
        if cloud_trace:
            context = _parse_cloud_trace(cloud_trace)
    if context is None:
        context = TraceContext(trace=uuid.uuid4().hex)

    return TraceContext(
        trace=format_trace(context.trace, project_id),
        span=context.span,
        sampled=context.sampled,
    )
