"""Serializers for well-known record fields.

Each serializer reduces a rich runtime object to a small JSON-serializable
summary before the redaction step sees the record. Values that do not have
the expected shape are returned unchanged.

Usage:
    from redactlog.logging.serializers import create_detailed_request_serializers

    serializers = create_detailed_request_serializers()
    serializers["req"](request)
    # {"method": "GET", "url": "/items?page=2", "query": {"page": "2"}, ...}
"""

from http import HTTPStatus
from typing import Any, Callable, Dict

import structlog
from starlette.requests import Request
from starlette.responses import Response

Serializer = Callable[[Any], Any]


def _format_stack(err: BaseException) -> str:
    # Same traceback text structlog renders for exc_info
    event_dict = structlog.processors.format_exc_info(None, "error", {"exc_info": err})
    return event_dict["exception"]


def serialize_error(err: Any) -> Any:
    """Summarize an exception as name, message and stack."""
    if not isinstance(err, BaseException):
        return err

    summary: Dict[str, Any] = {
        "name": type(err).__name__,
        "message": str(err),
        "stack": _format_stack(err),
    }
    code = getattr(err, "code", None)
    if code is None:
        code = getattr(err, "errno", None)
    if isinstance(code, (str, int)) and not isinstance(code, bool):
        summary["code"] = code
    return summary


def request_path_with_query(request: Request) -> str:
    """Path and query string of a request, as received."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def _request_url(request: Request) -> str:
    return getattr(request.state, "original_url", None) or request_path_with_query(request)


def _query(request: Request) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        query[key] = values[0] if len(values) == 1 else values
    return query


def serialize_request(req: Any) -> Any:
    """Summarize an HTTP request.

    Only method, URL, query, body, headers and the client address are kept;
    the ASGI scope, receive channel and app state are left out.
    """
    if not isinstance(req, Request):
        return req

    client = req.client
    return {
        "method": req.method,
        # original_url is captured by the request logging middleware before
        # mounts and routers rewrite the scope path
        "url": _request_url(req),
        "query": _query(req),
        "body": getattr(req.state, "body", None),
        "headers": dict(req.headers),
        "remoteAddress": client.host if client else None,
        "remotePort": client.port if client else None,
    }


def render_response_header(res: Response) -> str:
    """Render the HTTP/1.1 status line and headers of a response."""
    try:
        reason = HTTPStatus(res.status_code).phrase
    except ValueError:
        reason = ""
    lines = [f"HTTP/1.1 {res.status_code} {reason}".rstrip()]
    for name, value in res.raw_headers:
        lines.append(f"{name.decode('latin-1')}: {value.decode('latin-1')}")
    return "\r\n".join(lines) + "\r\n\r\n"


def serialize_response(res: Any) -> Any:
    """Summarize an HTTP response as status code and header block."""
    if not isinstance(res, Response) or not res.status_code:
        return res

    return {
        "statusCode": res.status_code,
        "header": render_response_header(res),
    }


def create_detailed_request_serializers() -> Dict[str, Serializer]:
    """Build the serializer table for the err, req and res fields.

    Returns:
        A new mapping from field name to serializer function.
    """
    return {
        "err": serialize_error,
        "req": serialize_request,
        "res": serialize_response,
    }
