"""
Integration Harness - Testing Utilities

Tools for testing harness hosts and child test modules.

Components:
    DatabaseMock       - Mock database collaborator with clear tracking
    FilesystemMock     - In-memory filesystem shim
    create_test_config - Mock-backed HarnessConfig

Usage:
    from integration_harness.testing import DatabaseMock, create_test_context

    context = create_test_context("browser")
    context.it("works", lambda: None)
    report = SequentialRunner().run(context)

    assert context.database.clear_count == 1
"""

from integration_harness.testing.mock import (
    DatabaseMock,
    FilesystemMock,
    MockConfig,
    CallRecord,
)

from integration_harness.testing.fixtures import (
    create_test_config,
    create_test_context,
    SAMPLE_ENVIRONMENTS,
    DEFAULT_TITLE,
)

__all__ = [
    # Mocks
    "DatabaseMock",
    "FilesystemMock",
    "MockConfig",
    "CallRecord",
    # Fixtures
    "create_test_config",
    "create_test_context",
    "SAMPLE_ENVIRONMENTS",
    "DEFAULT_TITLE",
]
