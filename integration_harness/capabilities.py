"""
Capability Gate - startup verification of host-supplied bindings.

The host must supply four capabilities before anything registers:

    database     - database collaborator exposing clear_test_state()
    title        - non-empty string naming the root suite
    fs           - filesystem shim handed to test modules
    environment  - object describing the execution context

start_harness() either returns a HarnessContext or raises
MissingCapabilityError naming every absent capability. There is no
partial context: when it raises, no suite exists and no test runs.
"""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field
from numbers import Number
from types import ModuleType
from typing import Any, Callable, Optional, Union
from pathlib import Path

from integration_harness.config import HarnessConfig
from integration_harness.environment import EnvironmentDescriptor, TestPredicate, environment_test
from integration_harness.errors import MissingCapabilityError
from integration_harness.lifecycle import LifecycleHooks
from integration_harness.monitoring.logging import get_logger
from integration_harness.suite import RegisterFn, Suite, SuiteRegistry, TestBody


def _present(value: Any) -> bool:
    return value is not None


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _object_like(value: Any) -> bool:
    # Scalars are not descriptors; containers and arbitrary objects are.
    return value is not None and not isinstance(value, (str, bytes, Number))


@dataclass(frozen=True)
class Capability:
    """A named binding the harness requires at startup."""

    name: str
    description: str
    check: Callable[[Any], bool] = _present

    def is_present(self, value: Any) -> bool:
        return self.check(value)


REQUIRED_CAPABILITIES: tuple[Capability, ...] = (
    Capability("database", "database binding exposing clear_test_state()"),
    Capability("title", "title of the root suite", _non_empty_string),
    Capability("fs", "filesystem shim"),
    Capability("environment", "environment descriptor object", _object_like),
)


def check_capabilities(
    bindings: Mapping[str, Any],
    required: tuple[Capability, ...] = REQUIRED_CAPABILITIES,
) -> list[str]:
    """
    Names of required capabilities that are absent, in required order.

    A key that is missing from bindings and a key bound to a value that
    fails the capability's check both count as absent.
    """
    return [cap.name for cap in required if not cap.is_present(bindings.get(cap.name))]


@dataclass
class HarnessContext:
    """
    Everything test modules may use, produced by a successful gate.

    Attributes:
        database: Database collaborator.
        title: Root suite title.
        fs: Filesystem shim.
        environment: Environment descriptor.
        registry: Suite registry holding the root suite.
        hooks: Lifecycle extension points (after_each etc.).
        path: POSIX path helpers, identical on every host.
    """

    database: Any
    title: str
    fs: Any
    environment: EnvironmentDescriptor
    registry: SuiteRegistry
    hooks: LifecycleHooks = field(default_factory=LifecycleHooks)
    path: ModuleType = posixpath

    @property
    def root_suite(self) -> Suite:
        return self.registry.root

    def it(self, title: str, body: Optional[TestBody] = None, **kwargs: Any) -> Any:
        """Base registration primitive bound to the current suite."""
        return self.registry.it(title, body, **kwargs)

    def it_environment(self, predicate: TestPredicate) -> RegisterFn:
        """Registration primitive that skips unless predicate(environment)."""
        return environment_test(self.registry.it, predicate, self.environment)

    def describe(self, title: str, fn: Optional[Callable[[], Any]] = None) -> Any:
        return self.registry.describe(title, fn)

    def include(self, module: Union[str, Path, ModuleType]) -> ModuleType:
        return self.registry.include(module, self)


def start_harness(config: HarnessConfig) -> HarnessContext:
    """
    Verify capabilities and build the harness context.

    Raises:
        MissingCapabilityError: If any required capability is absent.
    """
    bindings = config.as_bindings()
    missing = check_capabilities(bindings)
    if missing:
        error = MissingCapabilityError(
            missing,
            details={"required": [c.name for c in REQUIRED_CAPABILITIES]},
        )
        get_logger().harness_error("capability_missing", error, missing=missing)
        raise error

    context = HarnessContext(
        database=config.database,
        title=config.title,
        fs=config.fs,
        environment=config.environment,
        registry=SuiteRegistry(config.title),
    )
    get_logger().info(
        "harness_ready",
        f"Root suite '{config.title}' ready",
        title=config.title,
    )
    return context


def start_harness_from_namespace(namespace: Mapping[str, Any]) -> HarnessContext:
    """Gate over an arbitrary mapping, e.g. a module's globals()."""
    return start_harness(HarnessConfig(**{
        cap.name: namespace.get(cap.name) for cap in REQUIRED_CAPABILITIES
    }))
