"""
Shared fixtures for harness tests.

Provides:
    - Captured structured log output
    - Mock database collaborator
    - Started contexts with the state reset installed
    - A runner factory with configurable settings
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from integration_harness import HarnessSettings, SequentialRunner
from integration_harness.monitoring import configure_logging
from integration_harness.testing import DatabaseMock, create_test_context


SUITES_DIR = Path(__file__).parent / "suites"


@pytest.fixture(autouse=True)
def log_output() -> io.StringIO:
    """Route the process-wide structured logger into a buffer."""
    output = io.StringIO()
    configure_logging(level="debug", output=output)
    return output


@pytest.fixture
def database() -> DatabaseMock:
    return DatabaseMock()


@pytest.fixture
def context(database):
    """Node context backed by the database fixture, reset installed."""
    return create_test_context("node", database=database)


@pytest.fixture
def browser_context(database):
    return create_test_context("browser", database=database)


@pytest.fixture
def run():
    """Run a context with the given settings overrides."""
    def _run(ctx, **settings):
        return SequentialRunner(HarnessSettings(**settings)).run(ctx)
    return _run


@pytest.fixture
def suites_dir() -> Path:
    return SUITES_DIR
