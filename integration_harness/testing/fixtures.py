"""
Test Fixtures - Common fixtures for testing harness hosts and test modules.

Provides:
    - Sample environment descriptors
    - Complete (or deliberately incomplete) configurations
    - Ready-to-use contexts with the state reset installed
"""

from __future__ import annotations

from typing import Any, Iterable, TYPE_CHECKING

from integration_harness.config import HarnessConfig
from integration_harness.testing.mock import DatabaseMock, FilesystemMock

if TYPE_CHECKING:
    from integration_harness.capabilities import HarnessContext


SAMPLE_ENVIRONMENTS: dict[str, dict[str, Any]] = {
    "node": {"platform": "node", "runtime": "v8"},
    "browser": {"platform": "browser", "runtime": "chrome"},
    "react-native-ios": {"platform": "react-native", "os": "ios", "runtime": "jsc"},
    "react-native-android": {"platform": "react-native", "os": "android", "runtime": "hermes"},
    "electron": {"platform": "electron", "runtime": "v8"},
}

DEFAULT_TITLE = "Integration tests"


def create_test_config(
    environment: str | dict[str, Any] = "node",
    omit: Iterable[str] = (),
    **overrides: Any,
) -> HarnessConfig:
    """
    Create a HarnessConfig backed by mocks.

    Args:
        environment: Key into SAMPLE_ENVIRONMENTS or a descriptor.
        omit: Capability names to leave unset.
        **overrides: Replacement bindings (database, title, fs, environment).

    Returns:
        HarnessConfig
    """
    if isinstance(environment, str):
        environment = dict(SAMPLE_ENVIRONMENTS[environment])

    bindings: dict[str, Any] = {
        "database": DatabaseMock(),
        "title": DEFAULT_TITLE,
        "fs": FilesystemMock(),
        "environment": environment,
    }
    bindings.update(overrides)
    for name in omit:
        bindings[name] = None
    return HarnessConfig(**bindings)


def create_test_context(
    environment: str | dict[str, Any] = "node",
    install_reset: bool = True,
    **overrides: Any,
) -> "HarnessContext":
    """
    Create a started HarnessContext backed by mocks.

    Args:
        environment: Key into SAMPLE_ENVIRONMENTS or a descriptor.
        install_reset: Register the state reset after_each hook.
        **overrides: Replacement bindings.
    """
    from integration_harness.capabilities import start_harness
    from integration_harness.lifecycle import install_state_reset

    context = start_harness(create_test_config(environment, **overrides))
    if install_reset:
        install_state_reset(context)
    return context
