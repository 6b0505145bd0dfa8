"""Shared fixtures for redactlog tests."""

import json
import sys
from pathlib import Path

import pytest

# Ensure the application package root is on sys.path so `import redactlog`
# works when pytest is invoked without an installed package.
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from redactlog.configuration import LoggingSettings


@pytest.fixture
def local_settings():
    """Settings for a process running outside any managed host."""
    return LoggingSettings(LOG_LEVEL="debug", GAE_SERVICE=None, K_SERVICE=None)


@pytest.fixture
def app_engine_settings():
    """Settings for an App Engine service named "orders"."""
    return LoggingSettings(LOG_LEVEL="debug", GAE_SERVICE="orders", K_SERVICE=None)


@pytest.fixture
def cloud_function_settings():
    """Settings for a Cloud Function named "checkout"."""
    return LoggingSettings(LOG_LEVEL="debug", GAE_SERVICE=None, K_SERVICE="checkout")


@pytest.fixture
def read_records(capsys):
    """Return the JSON records written to stdout since the last call."""

    def _read():
        out = capsys.readouterr().out
        return [json.loads(line) for line in out.splitlines() if line.strip()]

    return _read
