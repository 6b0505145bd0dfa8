"""Request logging middleware for FastAPI / Starlette applications.

Each request gets a child logger bound to its trace and span
(``request.state.log``) and produces exactly one "Request finished" record
carrying the serialized request and response.

On Cloud Functions (K_SERVICE set) the record also carries an httpRequest
field so Logs Explorer renders it as a request log, plus the trace, span and
sampled fields. The function name is prepended to the request URL because
Logs Explorer otherwise only shows ``/?query`` for function invocations.

Usage:
    from fastapi import FastAPI
    from redactlog import create_logger, create_logging_middleware

    logger = create_logger()
    app = FastAPI()
    app.middleware("http")(create_logging_middleware("my-project", logger))

    @app.get("/items")
    async def items(request: Request):
        request.state.log.info("listing_items")
"""

import json
import time
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import parse_qsl

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.types import ASGIApp
from structlog.typing import FilteringBoundLogger

from redactlog.configuration import LoggingSettings, load_settings
from redactlog.logging.context import SAMPLED_KEY, bind_request_context, trace_fields
from redactlog.logging.serializers import request_path_with_query
from redactlog.middleware.tracing import TraceContext, extract_trace_context

CallNext = Callable[[Request], Awaitable[Response]]

REQUEST_FINISHED = "Request finished"


async def read_body(request: Request) -> Any:
    """Read and decode a request body for the req serializer.

    JSON and urlencoded form bodies are parsed; anything else (including
    malformed JSON) is kept as text. A client that disconnects before the
    body arrives yields None.
    """
    try:
        body = await request.body()
    except ClientDisconnect:
        return None
    if not body:
        return None

    content_type = request.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return json.loads(body)
        except ValueError:
            pass
    elif content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(body.decode("utf-8", errors="replace")))
    return body.decode("utf-8", errors="replace")


def prefix_function_name(request_url: Optional[str], function_name: str) -> Optional[str]:
    """Prepend /<function_name> to a relative URL that does not start with it."""
    if (
        request_url
        and request_url.startswith("/")
        and not request_url.startswith(f"/{function_name}")
    ):
        return f"/{function_name}{request_url}"
    return request_url


def make_http_request_data(
    request: Request, response: Optional[Response], latency: float
) -> Dict[str, Any]:
    """Build a Cloud Logging httpRequest entry for one exchange.

    Args:
        request: The inbound request.
        response: The response, or None when the app raised.
        latency: Seconds spent handling the request.
    """
    data = {
        "requestMethod": request.method,
        "requestUrl": getattr(request.state, "original_url", None)
        or request_path_with_query(request),
        "status": response.status_code if response is not None else 500,
        "userAgent": request.headers.get("user-agent"),
        "referer": request.headers.get("referer"),
        "remoteIp": request.client.host if request.client else None,
        "protocol": f"HTTP/{request.scope.get('http_version', '1.1')}",
        "latency": f"{latency:.9f}s",
        "responseSize": response.headers.get("content-length")
        if response is not None
        else None,
    }
    return {key: value for key, value in data.items() if value is not None}


def create_logging_middleware(
    project_id: Optional[str],
    logger: FilteringBoundLogger,
    *,
    settings: Optional[LoggingSettings] = None,
    log_request_body: bool = True,
) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """Create an HTTP middleware logging every request.

    Args:
        project_id: Google Cloud project used to build trace names.
        logger: Logger from create_logger; request logs and child loggers
            derive from it.
        settings: Explicit settings; read from the environment when omitted.
        log_request_body: Read the request body so the req serializer can
            include it.

    Returns:
        A function ``(request, call_next) -> response`` for
        ``app.middleware("http")`` or ``BaseHTTPMiddleware(dispatch=...)``.
    """
    settings = settings if settings is not None else load_settings()
    cloud_function_name = settings.cloud_function_name

    def make_child_logger(context: TraceContext) -> FilteringBoundLogger:
        return logger.bind(**trace_fields(context.trace, context.span))

    def emit_request_log(
        request: Request,
        response: Optional[Response],
        http_request: Dict[str, Any],
        context: TraceContext,
    ) -> None:
        fields: Dict[str, Any] = {"req": request, "res": response}
        if cloud_function_name:
            fields["httpRequest"] = {
                **http_request,
                "requestUrl": prefix_function_name(
                    http_request.get("requestUrl"), cloud_function_name
                ),
            }
            fields.update(trace_fields(context.trace, context.span))
            fields[SAMPLED_KEY] = context.sampled
        logger.info(REQUEST_FINISHED, **fields)

    async def logging_middleware(request: Request, call_next: CallNext) -> Response:
        context = extract_trace_context(request.headers, project_id)
        request.state.original_url = request_path_with_query(request)
        if log_request_body:
            request.state.body = await read_body(request)
        request.state.log = make_child_logger(context)

        start = time.perf_counter()
        try:
            with bind_request_context(context.trace, context.span):
                response = await call_next(request)
        except BaseException as exc:
            latency = time.perf_counter() - start
            http_request = make_http_request_data(request, None, latency)
            try:
                emit_request_log(request, None, http_request, context)
            except Exception as log_error:
                # The app error keeps propagating; the logging failure is its cause
                raise exc from log_error
            raise

        http_request = make_http_request_data(
            request, response, time.perf_counter() - start
        )
        emit_request_log(request, response, http_request, context)
        return response

    return logging_middleware


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Class form of create_logging_middleware for ``app.add_middleware``.

    Example:
        app.add_middleware(
            RequestLoggingMiddleware,
            project_id="my-project",
            logger=logger,
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        project_id: Optional[str],
        logger: FilteringBoundLogger,
        settings: Optional[LoggingSettings] = None,
        log_request_body: bool = True,
    ):
        super().__init__(
            app,
            dispatch=create_logging_middleware(
                project_id,
                logger,
                settings=settings,
                log_request_body=log_request_body,
            ),
        )
