"""
Pytest fixtures for the inventory stock analytics test suite.

Provides:
- Structured logging configured once per session
- A deterministic clock pinned to 2024-03-01
- Shared stock fixtures (builders live in tests/factories.py)
- A log capture helper for asserting on structured log records
"""

import json
import logging
from datetime import UTC, date, datetime
from io import StringIO

import pytest

from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.factories import TODAY


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


class LogCapture:
    """Collects JSON log lines written under the inventory_kernel logger."""

    def __init__(self) -> None:
        self.stream = StringIO()
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(StructuredFormatter())

    @property
    def records(self) -> list[dict]:
        lines = self.stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    def messages(self) -> list[str]:
        return [r["message"] for r in self.records]

    def find(self, message: str) -> list[dict]:
        return [r for r in self.records if r["message"] == message]


@pytest.fixture
def log_capture():
    """Attach a capturing handler at DEBUG for the duration of a test."""
    capture = LogCapture()
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.addHandler(capture.handler)
    root.setLevel(logging.DEBUG)
    yield capture
    root.removeHandler(capture.handler)
    root.setLevel(previous_level)


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 1, 9, 30, tzinfo=UTC))


@pytest.fixture
def today() -> date:
    return TODAY

