"""Redaction of every record right before it is written.

The EmitInterceptor wraps the physical write of the logger. For each record
it serializes the payload (every field except the reserved ones), applies the
optional global replace function to that text, parses it back, runs the
Redactor over the copy and writes the redacted values back onto the record.
The caller's objects are never mutated because the Redactor only ever sees
the parsed copy.

Reserved fields are the ones a log backend relies on. ``msg`` is not one of
them: a message can carry sensitive data and is redacted like any other
payload field.
"""

import datetime
import decimal
import enum
import json
import pathlib
import uuid
from typing import Any, Callable, Dict, Mapping, Optional

from redactlog.errors import GlobalReplaceError, LogRecordSerializationError
from redactlog.logging.redaction import Redactor

RESERVED_FIELDS = frozenset({"v", "level", "name", "hostname", "pid", "time", "src"})

Record = Dict[str, Any]
Write = Callable[[Record], Any]


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (uuid.UUID, decimal.Decimal, pathlib.PurePath)):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_payload(payload: Mapping[str, Any]) -> str:
    """Convert a record payload to JSON text.

    Raises:
        LogRecordSerializationError: If a value cannot be represented as JSON,
            the payload contains a circular reference, or a float is NaN or
            infinite.
    """
    try:
        return json.dumps(
            payload, default=_json_default, separators=(",", ":"), allow_nan=False
        )
    except (TypeError, ValueError) as e:
        raise LogRecordSerializationError(f"Log record payload is not serializable: {e}") from e


def parse_payload(text: str) -> Dict[str, Any]:
    """Parse the output of a global replace function back into a payload."""
    if not isinstance(text, str):
        raise GlobalReplaceError(
            f"global_replace must return a string, got {type(text).__name__}"
        )
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise GlobalReplaceError(f"global_replace produced invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise GlobalReplaceError(
            f"global_replace must produce a JSON object, got {type(payload).__name__}"
        )
    return payload


class EmitInterceptor:
    """Redact records before forwarding them to the real write.

    Args:
        write: The physical write, called once per record.
        redactor: Compiled path rules applied to the payload copy.
        global_replace: Optional transform of the serialized payload text.
    """

    def __init__(
        self,
        write: Write,
        redactor: Optional[Redactor] = None,
        global_replace: Optional[Callable[[str], str]] = None,
    ):
        self._write = write
        self._redactor = redactor or Redactor()
        self._global_replace = global_replace

    def __call__(self, record: Record) -> Any:
        rest = {key: value for key, value in record.items() if key not in RESERVED_FIELDS}

        text = serialize_payload(rest)
        if self._global_replace is not None:
            payload = parse_payload(self._global_replace(text))
        else:
            payload = json.loads(text)

        redacted = self._redactor(payload)

        # Top-level keys dropped by a remove rule disappear from the record
        for key in rest.keys() - redacted.keys():
            del record[key]
        for key, value in redacted.items():
            if key not in RESERVED_FIELDS:
                record[key] = value

        return self._write(record)
