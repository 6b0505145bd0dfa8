"""structlog processors used to build and render log records.

Record building (run by the bound logger, before the emit interceptor):
    capture_exc_info: exc_info -> err field
    apply_serializers: reduce err/req/res with the serializer table
    add_record_header: reserved v/name/hostname/pid fields
    fold_callsite: call-site parameters -> src field

Rendering (run per stream, after the emit interceptor):
    prepare_console_record: reshape a record for structlog's ConsoleRenderer
    add_cloud_logging_fields: severity/message for Google Cloud Logging
"""

import os
import socket
import sys
from typing import Any, Callable, Dict, Mapping, Optional

EventDict = Dict[str, Any]

# structlog level names to Cloud Logging severities
CLOUD_SEVERITIES = {
    "debug": "DEBUG",
    "info": "INFO",
    "warning": "WARNING",
    "error": "ERROR",
    "critical": "CRITICAL",
}

# Reserved fields the console output leaves out
CONSOLE_HIDDEN_FIELDS = ("v", "hostname", "pid")


def _exception_from(exc_info: Any) -> Optional[BaseException]:
    if isinstance(exc_info, BaseException):
        return exc_info
    if isinstance(exc_info, tuple):
        return exc_info[1]
    if exc_info:
        return sys.exc_info()[1]
    return None


def capture_exc_info(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Move exc_info (as set by logger.exception) into the err field.

    An explicit err field passed by the caller takes precedence.
    """
    exc_info = event_dict.pop("exc_info", None)
    if "err" not in event_dict:
        exc = _exception_from(exc_info)
        if exc is not None:
            event_dict["err"] = exc
    return event_dict


def apply_serializers(serializers: Mapping[str, Callable[[Any], Any]]):
    """Create a processor that reduces known fields with their serializer.

    Args:
        serializers: Mapping from field name to serializer function.

    Returns:
        A structlog processor function.

    Example:
        apply_serializers(create_detailed_request_serializers())
    """
    table = dict(serializers)

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, serialize in table.items():
            if key in event_dict:
                event_dict[key] = serialize(event_dict[key])
        return event_dict

    return processor


def add_record_header(name: str):
    """Create a processor that sets the v, name, hostname and pid fields.

    These fields are owned by the logger and replace caller-supplied values
    of the same name.

    Args:
        name: Logger name written to every record.

    Returns:
        A structlog processor function.
    """
    hostname = socket.gethostname()

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["v"] = 0
        event_dict["name"] = name
        event_dict["hostname"] = hostname
        event_dict["pid"] = os.getpid()
        return event_dict

    return processor


def fold_callsite(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Collect CallsiteParameterAdder output into a single src field."""
    event_dict["src"] = {
        "file": event_dict.pop("pathname", None),
        "line": event_dict.pop("lineno", None),
        "func": event_dict.pop("func_name", None),
    }
    return event_dict


def _error_stack(event_dict: Mapping[str, Any]) -> Optional[str]:
    err = event_dict.get("err")
    if isinstance(err, dict) and isinstance(err.get("stack"), str):
        return err["stack"]
    return None


def prepare_console_record(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Reshape a record into the keys structlog's ConsoleRenderer displays.

    time, level, name and msg become the timestamp, level, logger and event
    columns; an error stack is printed below the line.
    """
    record = dict(event_dict)
    for key in CONSOLE_HIDDEN_FIELDS:
        record.pop(key, None)

    console: EventDict = {
        "timestamp": record.pop("time", None),
        "level": record.pop("level", method_name),
        "logger": record.pop("name", None),
        "event": record.pop("msg", ""),
    }

    src = record.pop("src", None)
    if isinstance(src, dict):
        console["src"] = f"{src.get('file')}:{src.get('line')} in {src.get('func')}"

    stack = _error_stack(record)
    if stack is not None:
        console["exception"] = stack
        record["err"] = {k: v for k, v in record["err"].items() if k != "stack"}

    for key, value in record.items():
        console.setdefault(key, value)
    return console


def add_cloud_logging_fields(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the severity and message fields read by Google Cloud Logging.

    The message is the error stack when an err field is present so Error
    Reporting can pick it up, and msg otherwise.
    """
    level = event_dict.get("level", method_name)
    stack = _error_stack(event_dict)
    return {
        **event_dict,
        "severity": CLOUD_SEVERITIES.get(level, "DEFAULT"),
        "message": stack if stack is not None else event_dict.get("msg", ""),
    }
