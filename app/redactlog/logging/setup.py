"""Logger factory.

create_logger assembles a structlog bound logger whose write path always runs
through the emit interceptor. Output depends on where the process runs:

    - Managed Google host (GAE_SERVICE or K_SERVICE set): JSON lines on
      stdout for the Cloud Logging agent, logger named after the service.
    - Anywhere else: colorized console lines on stdout, logger "default".

Usage:
    from redactlog import create_logger, RedactOptions

    logger = create_logger(
        level="debug",
        redact=RedactOptions(paths=["password", "req.headers.authorization"]),
    )
    logger.info("user_logged_in", user="a", password="secret")

Dependencies:
    - redactlog.configuration.LoggingSettings
"""

from typing import Any, Callable, List, Mapping, Optional, Union

import structlog
from structlog.typing import FilteringBoundLogger, Processor

from redactlog.configuration import LoggingSettings, load_settings
from redactlog.logging.formatters import (
    add_record_header,
    apply_serializers,
    capture_exc_info,
    fold_callsite,
)
from redactlog.logging.interceptor import EmitInterceptor
from redactlog.logging.redaction import RedactOptions, compile_redactor
from redactlog.logging.serializers import create_detailed_request_serializers
from redactlog.logging.streams import (
    LogStream,
    RecordLogger,
    StreamWriter,
    cloud_logging_stream,
    console_stream,
    parse_level,
)

DEFAULT_LOGGER_NAME = "default"
DEFAULT_LEVEL = "info"


def build_processors(
    name: str,
    serializers: Optional[Mapping[str, Callable[[Any], Any]]] = None,
    src: bool = False,
) -> List[Processor]:
    """Build the processor chain turning a log call into a record.

    Args:
        name: Logger name written to the name field.
        serializers: Serializer table; defaults to the detailed request
            serializers.
        src: Record the call site in the src field.

    Returns:
        The list of structlog processors, ending with the msg rename.
    """
    processors: List[Processor] = [
        # Add context variables (trace and span of the current request)
        structlog.contextvars.merge_contextvars,
        capture_exc_info,
        apply_serializers(
            serializers if serializers is not None else create_detailed_request_serializers()
        ),
        add_record_header(name),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="time"),
    ]

    if src:
        processors.extend(
            [
                structlog.processors.CallsiteParameterAdder(
                    parameters=[
                        structlog.processors.CallsiteParameter.PATHNAME,
                        structlog.processors.CallsiteParameter.LINENO,
                        structlog.processors.CallsiteParameter.FUNC_NAME,
                    ],
                    additional_ignores=["redactlog.logging"],
                ),
                fold_callsite,
            ]
        )

    processors.append(structlog.processors.EventRenamer("msg"))
    return processors


def select_streams(
    settings: LoggingSettings, level: int, colors: bool = True
) -> tuple[str, List[LogStream]]:
    """Pick the logger name and output streams for the current host.

    Returns:
        Tuple of (logger name, streams).
    """
    service_name = settings.google_service_name
    if service_name:
        return service_name, [cloud_logging_stream(level)]
    return DEFAULT_LOGGER_NAME, [console_stream(level, colors=colors)]


def create_logger(
    level: Optional[Union[str, int]] = None,
    redact: Optional[Union[RedactOptions, Mapping[str, Any]]] = None,
    *,
    settings: Optional[LoggingSettings] = None,
    src: bool = False,
    colors: bool = True,
) -> FilteringBoundLogger:
    """Create a logger that redacts every record before writing it.

    Args:
        level: Minimum severity. Defaults to settings.LOG_LEVEL, then "info".
        redact: Redaction rule set, as RedactOptions or a mapping of its
            fields (paths, censor, remove, global_replace).
        settings: Explicit settings; read from the environment when omitted.
        src: Record the call site (file, line, function) in every record.
        colors: Colorize console output. Ignored on managed hosts.

    Returns:
        A structlog bound logger. Use ``logger.bind(**fields)`` for child
        loggers; they share streams, serializers and redaction rules.

    Raises:
        LoggerConfigError: If the level or the redaction options are invalid.

    Example:
        logger = create_logger(redact={"paths": ["req.headers.cookie"]})
        logger.info("Request finished", req=request, res=response)
    """
    settings = settings if settings is not None else load_settings()
    if level is None:
        level = settings.LOG_LEVEL or DEFAULT_LEVEL
    log_level = parse_level(level)

    name, streams = select_streams(settings, log_level, colors=colors)

    options = RedactOptions.coerce(redact)
    writer = StreamWriter(streams)
    emit = EmitInterceptor(writer, compile_redactor(options), options.global_replace)

    wrapper_class = structlog.make_filtering_bound_logger(writer.min_level)
    return wrapper_class(RecordLogger(emit), build_processors(name, src=src), {})
