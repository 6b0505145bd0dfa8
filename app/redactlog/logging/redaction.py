"""Path-based redaction of log payloads.

A Redactor is compiled once from a list of field paths and reused for every
record. Paths use dot/bracket notation into a JSON-like tree:

    password                   top-level key
    req.headers.authorization  nested keys
    req.headers["x-api-key"]   keys that are not plain identifiers
    users[0].email             list index
    users[*].email             every element of a list
    *.token                    every top-level key, then "token"

Usage:
    from redactlog.logging.redaction import Redactor

    redact = Redactor(["password", "req.headers.cookie"])
    redact({"user": "a", "password": "secret"})
    # {"user": "a", "password": "[REDACTED]"}

The redactor mutates its argument in place and returns it. Callers that need
to keep the original intact must pass a copy; the emit interceptor passes a
JSON round-tripped copy of every record payload.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from redactlog.errors import LoggerConfigError, RedactionConfigError

DEFAULT_CENSOR = "[REDACTED]"

# Request headers that carry credentials in the summary produced by the
# `req` serializer.
SENSITIVE_HEADER_PATHS = (
    "req.headers.authorization",
    "req.headers.cookie",
    'req.headers["proxy-authorization"]',
    'req.headers["x-api-key"]',
)


class _Wildcard:
    def __repr__(self) -> str:
        return "*"


WILDCARD = _Wildcard()

Segment = Union[str, int, _Wildcard]

_TOKEN = re.compile(
    r"""
    (?P<ident>[^.\[\]"'\s]+)
  | \[(?P<index>\d+|\*)\]
  | \[(?P<quote>["'])(?P<key>.*?)(?P=quote)\]
    """,
    re.VERBOSE,
)


def parse_path(path: str) -> Tuple[Segment, ...]:
    """Split a redaction path into segments.

    Args:
        path: Path in dot/bracket notation.

    Returns:
        Tuple of string keys, integer indexes and WILDCARD markers.

    Raises:
        RedactionConfigError: If the path is empty or malformed.
    """
    if not isinstance(path, str) or not path.strip():
        raise RedactionConfigError(f"Invalid redaction path: {path!r}")

    segments: List[Segment] = []
    pos = 0
    after_dot = False
    while pos < len(path):
        if path[pos] == ".":
            if not segments or after_dot:
                raise RedactionConfigError(f"Invalid redaction path: {path!r}")
            after_dot = True
            pos += 1
            continue

        match = _TOKEN.match(path, pos)
        if match is None:
            raise RedactionConfigError(f"Invalid redaction path: {path!r}")

        ident = match.group("ident")
        if ident is not None:
            # "a[0]b" has no separator before "b"
            if segments and not after_dot:
                raise RedactionConfigError(f"Invalid redaction path: {path!r}")
            segments.append(WILDCARD if ident == "*" else ident)
        else:
            if after_dot:
                raise RedactionConfigError(f"Invalid redaction path: {path!r}")
            index = match.group("index")
            if index == "*":
                segments.append(WILDCARD)
            elif index is not None:
                segments.append(int(index))
            else:
                segments.append(match.group("key"))

        after_dot = False
        pos = match.end()

    if after_dot:
        raise RedactionConfigError(f"Invalid redaction path: {path!r}")
    return tuple(segments)


def _matching_keys(node: Any, segment: Segment) -> List[Union[str, int]]:
    if isinstance(node, dict):
        if segment is WILDCARD:
            return list(node.keys())
        key = str(segment)
        return [key] if key in node else []

    if isinstance(node, list):
        if segment is WILDCARD:
            return list(range(len(node)))
        if isinstance(segment, str):
            if not segment.isdigit():
                return []
            segment = int(segment)
        return [segment] if segment < len(node) else []

    return []


class Redactor:
    """Compiled set of redaction paths.

    Args:
        paths: Field paths to redact.
        censor: Replacement value, or a callable receiving the original value
            and the matched path (list of strings) and returning the
            replacement.
        remove: Delete matched keys instead of censoring them. Matched list
            elements are set to None so indexes stay stable.

    Raises:
        RedactionConfigError: If any path is malformed.
    """

    def __init__(
        self,
        paths: Iterable[str] = (),
        censor: Any = DEFAULT_CENSOR,
        remove: bool = False,
    ):
        if isinstance(paths, str):
            raise RedactionConfigError("paths must be a list of strings, not a string")
        self.paths = tuple(paths)
        self._compiled = tuple(parse_path(path) for path in self.paths)
        self._censor = censor
        self._censor_is_callable = callable(censor)
        self._remove = remove

    def __call__(self, payload: Any) -> Any:
        if not isinstance(payload, (dict, list)):
            return payload
        for segments in self._compiled:
            self._apply(payload, segments, [])
        return payload

    def _apply(self, node: Any, segments: Sequence[Segment], trail: List[str]) -> None:
        head, rest = segments[0], segments[1:]
        for key in _matching_keys(node, head):
            if rest:
                child = node[key]
                if isinstance(child, (dict, list)):
                    self._apply(child, rest, trail + [str(key)])
            else:
                self._censor_at(node, key, trail + [str(key)])

    def _censor_at(self, node: Any, key: Union[str, int], path: List[str]) -> None:
        if self._remove:
            if isinstance(node, dict):
                del node[key]
            else:
                node[key] = None
        elif self._censor_is_callable:
            node[key] = self._censor(node[key], path)
        else:
            node[key] = self._censor

    def __repr__(self) -> str:
        return f"Redactor(paths={list(self.paths)!r}, remove={self._remove!r})"


@dataclass(frozen=True)
class RedactOptions:
    """Redaction rule set accepted by create_logger.

    Attributes:
        paths: Field paths to redact (see module docstring for the syntax).
        censor: Replacement value or callable ``(value, path) -> value``.
        remove: Delete matched keys instead of censoring them.
        global_replace: Transform applied to the JSON text of the whole
            payload before path rules run. Its output must still be a JSON
            object.
    """

    paths: Sequence[str] = ()
    censor: Any = DEFAULT_CENSOR
    remove: bool = False
    global_replace: Optional[Callable[[str], str]] = None

    @classmethod
    def coerce(
        cls, value: Union["RedactOptions", Mapping[str, Any], None]
    ) -> "RedactOptions":
        """Accept RedactOptions, a mapping of its fields, or None."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            try:
                return cls(**value)
            except TypeError as e:
                raise LoggerConfigError(f"Invalid redact options: {e}") from e
        raise LoggerConfigError(
            f"redact must be RedactOptions or a mapping, got {type(value).__name__}"
        )


def compile_redactor(options: RedactOptions) -> Redactor:
    """Build the Redactor described by a rule set."""
    if options.global_replace is not None and not callable(options.global_replace):
        raise LoggerConfigError("global_replace must be callable")
    return Redactor(options.paths, censor=options.censor, remove=options.remove)


def pattern_replacer(
    patterns: Iterable[Union[str, "re.Pattern[str]"]],
    replacement: str = DEFAULT_CENSOR,
) -> Callable[[str], str]:
    """Create a global replace function from regular expressions.

    The returned function runs over the JSON text of the payload, so patterns
    should only match inside string values; a replacement that breaks the
    JSON structure makes the log call fail.

    Args:
        patterns: Regular expressions (strings or compiled) to replace.
        replacement: Text substituted for every match.

    Returns:
        A function suitable for RedactOptions.global_replace.

    Example:
        RedactOptions(
            global_replace=pattern_replacer([r"Bearer [A-Za-z0-9._~+/-]+=*"]),
        )
    """
    compiled = [re.compile(p) if isinstance(p, str) else p for p in patterns]

    def replace(text: str) -> str:
        for pattern in compiled:
            text = pattern.sub(replacement, text)
        return text

    return replace
