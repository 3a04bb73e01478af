"""
Shared pytest configuration.

Async tests use pytest-asyncio with explicit ``@pytest.mark.asyncio``.
"""

import os
import tempfile
from typing import Generator

import pytest

from pulseboard.logging.models import Entry, LogLevel

from tests.helpers import FakeProcessStats, get_free_port


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Remove PULSEBOARD_* variables and run from an empty directory so no
    stray .env file takes part in configuration.
    """
    for name in list(os.environ):
        if name.startswith("PULSEBOARD_"):
            monkeypatch.delenv(name)

    monkeypatch.chdir(tmp_path)


@pytest.fixture
def free_port() -> int:
    return get_free_port()


@pytest.fixture
def process_stats() -> FakeProcessStats:
    return FakeProcessStats()


@pytest.fixture
def temp_log_directory() -> Generator[str, None, None]:
    with tempfile.TemporaryDirectory() as temp_directory:
        yield temp_directory


@pytest.fixture
def sample_entry() -> Entry:
    return Entry(
        message="Test log message",
        level=LogLevel.INFO,
    )
