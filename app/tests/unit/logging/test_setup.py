"""Unit tests for redactlog.logging.setup module.

Tests cover:
- Stream selection for local and managed hosts
- Level handling
- Redaction through the full logger
- Serializers, child loggers and exceptions end to end
"""

import copy
import re

import pytest
import structlog
from starlette.requests import Request
from starlette.responses import Response

from redactlog.configuration import LoggingSettings
from redactlog.errors import (
    LogRecordSerializationError,
    LoggerConfigError,
    RedactionConfigError,
)
from redactlog.logging.redaction import DEFAULT_CENSOR, RedactOptions
from redactlog.logging.setup import build_processors, create_logger

RESERVED = ("v", "level", "name", "hostname", "pid", "time")


@pytest.mark.unit
class TestCreateLoggerStreams:
    """Test suite for environment-dependent stream selection."""

    def test_local_logger_writes_console_lines(self, local_settings, capsys):
        logger = create_logger(settings=local_settings, colors=False)

        logger.info("hello", user="a")

        out = capsys.readouterr().out
        assert "hello" in out
        assert "user=a" in out
        assert "default" in out
        assert not out.lstrip().startswith("{")

    def test_app_engine_logger_writes_json(self, app_engine_settings, read_records):
        logger = create_logger(settings=app_engine_settings)

        logger.info("hello", user="a")

        [record] = read_records()
        assert record["name"] == "orders"
        assert record["msg"] == "hello"
        assert record["message"] == "hello"
        assert record["severity"] == "INFO"
        assert record["user"] == "a"
        assert record["v"] == 0
        assert record["level"] == "info"
        assert isinstance(record["pid"], int)
        assert record["hostname"]
        assert record["time"].endswith("Z")

    def test_cloud_function_logger_is_named_after_function(
        self, cloud_function_settings, read_records
    ):
        logger = create_logger(settings=cloud_function_settings)

        logger.warning("careful")

        [record] = read_records()
        assert record["name"] == "checkout"
        assert record["severity"] == "WARNING"

    def test_settings_read_from_environment(self, monkeypatch, read_records):
        monkeypatch.setenv("GAE_SERVICE", "from-env")
        monkeypatch.delenv("K_SERVICE", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "info")

        logger = create_logger()
        logger.debug("hidden")
        logger.info("shown")

        records = read_records()
        assert [r["msg"] for r in records] == ["shown"]
        assert records[0]["name"] == "from-env"


@pytest.mark.unit
class TestCreateLoggerLevels:
    """Test suite for level handling."""

    def test_explicit_level_filters(self, app_engine_settings, read_records):
        logger = create_logger(level="warning", settings=app_engine_settings)

        logger.debug("d")
        logger.info("i")
        logger.warning("w")
        logger.error("e")

        assert [r["msg"] for r in read_records()] == ["w", "e"]

    def test_level_from_settings(self, read_records):
        settings = LoggingSettings(LOG_LEVEL="error", GAE_SERVICE="orders", K_SERVICE=None)
        logger = create_logger(settings=settings)

        logger.warning("w")
        logger.critical("c")

        [record] = read_records()
        assert record["msg"] == "c"
        assert record["level"] == "critical"

    def test_bunyan_level_names(self, app_engine_settings, read_records):
        logger = create_logger(level="fatal", settings=app_engine_settings)

        logger.error("e")
        logger.fatal("f")

        assert [r["msg"] for r in read_records()] == ["f"]

    def test_invalid_level_raises(self, local_settings):
        with pytest.raises(LoggerConfigError):
            create_logger(level="loud", settings=local_settings)


@pytest.mark.unit
class TestCreateLoggerRedaction:
    """Test suite for redaction through the assembled logger."""

    def test_redacts_configured_paths(self, app_engine_settings, read_records):
        logger = create_logger(
            redact=RedactOptions(paths=["password", "user.token"]),
            settings=app_engine_settings,
        )
        user = {"id": 1, "token": "t"}
        original = copy.deepcopy(user)

        logger.info("login", password="secret", user=user)

        [record] = read_records()
        assert record["password"] == DEFAULT_CENSOR
        assert record["user"] == {"id": 1, "token": DEFAULT_CENSOR}
        assert user == original

    def test_redact_options_as_mapping(self, app_engine_settings, read_records):
        logger = create_logger(
            redact={"paths": ["password"], "censor": "***"},
            settings=app_engine_settings,
        )

        logger.info("login", password="secret")

        assert read_records()[0]["password"] == "***"

    def test_reserved_fields_are_not_redacted(self, app_engine_settings, read_records):
        logger = create_logger(
            redact=RedactOptions(paths=["*", "name", "level"]),
            settings=app_engine_settings,
        )

        logger.info("hello", secret="s")

        [record] = read_records()
        assert record["name"] == "orders"
        assert record["level"] == "info"
        assert record["msg"] == DEFAULT_CENSOR
        assert record["secret"] == DEFAULT_CENSOR

    def test_global_replace(self, app_engine_settings, read_records):
        logger = create_logger(
            redact=RedactOptions(
                paths=["card"],
                global_replace=lambda text: re.sub(r"[\w.]+@[\w.]+", "[EMAIL]", text),
            ),
            settings=app_engine_settings,
        )

        logger.info("mail sent to a@example.com", card="4111")

        [record] = read_records()
        assert record["msg"] == "mail sent to [EMAIL]"
        assert record["card"] == DEFAULT_CENSOR

    def test_invalid_path_raises_at_construction(self, local_settings):
        with pytest.raises(RedactionConfigError):
            create_logger(redact=RedactOptions(paths=["a..b"]), settings=local_settings)

    def test_unserializable_value_raises_at_call_site(self, app_engine_settings, capsys):
        logger = create_logger(settings=app_engine_settings)

        with pytest.raises(LogRecordSerializationError):
            logger.info("hello", handle=object())

        assert capsys.readouterr().out == ""


@pytest.mark.unit
class TestCreateLoggerRecords:
    """Test suite for serializers, children and exceptions end to end."""

    def test_request_and_response_are_serialized(self, app_engine_settings, read_records):
        logger = create_logger(
            redact=RedactOptions(paths=["req.headers.authorization"]),
            settings=app_engine_settings,
        )
        request = Request(
            {
                "type": "http",
                "method": "GET",
                "scheme": "http",
                "path": "/items",
                "root_path": "",
                "query_string": b"page=2",
                "headers": [(b"authorization", b"Bearer abc")],
                "client": ("10.0.0.1", 5555),
                "server": ("testserver", 80),
            }
        )

        logger.info("Request finished", req=request, res=Response("ok", status_code=200))

        [record] = read_records()
        assert record["req"]["url"] == "/items?page=2"
        assert record["req"]["headers"]["authorization"] == DEFAULT_CENSOR
        assert record["res"]["statusCode"] == 200
        assert record["res"]["header"].startswith("HTTP/1.1 200 OK")

    def test_child_logger_binds_fields(self, app_engine_settings, read_records):
        logger = create_logger(settings=app_engine_settings)
        child = logger.bind(request_id="r-1")

        child.info("from child")
        logger.info("from parent")

        child_record, parent_record = read_records()
        assert child_record["request_id"] == "r-1"
        assert child_record["name"] == "orders"
        assert "request_id" not in parent_record

    def test_bound_fields_are_redacted(self, app_engine_settings, read_records):
        logger = create_logger(
            redact=RedactOptions(paths=["session"]), settings=app_engine_settings
        )

        logger.bind(session="abc").info("hello")

        assert read_records()[0]["session"] == DEFAULT_CENSOR

    def test_exception_logging_produces_err(self, app_engine_settings, read_records):
        logger = create_logger(settings=app_engine_settings)

        try:
            raise ValueError("boom")
        except ValueError:
            logger.exception("failed")

        [record] = read_records()
        assert record["level"] == "error"
        assert record["err"]["name"] == "ValueError"
        assert record["err"]["message"] == "boom"
        assert record["message"] == record["err"]["stack"]
        assert "exc_info" not in record

    def test_err_field(self, app_engine_settings, read_records):
        logger = create_logger(settings=app_engine_settings)

        logger.error("failed", err=KeyError("k"))

        assert read_records()[0]["err"]["name"] == "KeyError"

    def test_context_variables_are_merged(self, app_engine_settings, read_records):
        logger = create_logger(settings=app_engine_settings)

        with structlog.contextvars.bound_contextvars(tenant="acme"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = read_records()
        assert inside["tenant"] == "acme"
        assert "tenant" not in outside

    def test_src_records_call_site(self, app_engine_settings, read_records):
        logger = create_logger(settings=app_engine_settings, src=True)

        logger.info("here")

        [record] = read_records()
        assert record["src"]["file"].endswith("test_setup.py")
        assert record["src"]["func"] == "test_src_records_call_site"
        assert isinstance(record["src"]["line"], int)

    def test_src_absent_by_default(self, app_engine_settings, read_records):
        create_logger(settings=app_engine_settings).info("here")

        assert "src" not in read_records()[0]


@pytest.mark.unit
class TestBuildProcessors:
    def test_chain_ends_with_msg_rename(self):
        processors = build_processors("default")

        result = {"event": "hello"}
        for processor in processors:
            result = processor(None, "info", result)

        assert result["msg"] == "hello"
        assert "event" not in result
        assert result["name"] == "default"
        assert result["level"] == "info"

    def test_src_adds_callsite_processors(self):
        assert len(build_processors("default", src=True)) == len(build_processors("default")) + 2
