"""
Integration Harness v1.0 - Cross-environment integration-test harness.

Architecture:
    start_harness → HarnessContext → SuiteRegistry → SequentialRunner → RunReport

Public API (stable):
    start_harness        - Verify host capabilities, return a HarnessContext.
    HarnessConfig        - The four bindings: database, title, fs, environment.
    HarnessContext       - it / it_environment / describe / include / hooks.
    environment_test     - Wrap a registration function with an environment predicate.
    install_state_reset  - Clear database state after every test.
    SequentialRunner     - Run tests one at a time, in declaration order.
    run_harness          - Gate, compose and run in one call.

Guarantees:
    - A missing capability aborts before any test registers.
    - A false environment predicate reports the test as skipped; its body
      never runs. A raising predicate reports the test as errored.
    - Exactly one state reset follows every test, skipped ones included,
      and completes before the next test starts.

Example:
    from integration_harness import HarnessConfig, run_harness

    report = run_harness(
        HarnessConfig(
            database=realm,
            title="Node.js integration",
            fs=LocalFilesystem(),
            environment={"platform": "node"},
        ),
        modules=["tests_integration.realm_constructor"],
    )
    print(report.format_summary())

    # In a child test module
    def register_tests(context):
        @context.it_environment(lambda env: env["platform"] == "browser")("uses IndexedDB")
        def _():
            ...
"""

from integration_harness.capabilities import (
    Capability,
    HarnessContext,
    REQUIRED_CAPABILITIES,
    check_capabilities,
    start_harness,
    start_harness_from_namespace,
)
from integration_harness.config import HarnessConfig, HarnessSettings
from integration_harness.environment import (
    SkipDecision,
    environment_in,
    environment_is,
    environment_test,
    negate,
)
from integration_harness.errors import (
    HarnessError,
    InvalidTransitionError,
    MissingCapabilityError,
    PredicateError,
    StateResetError,
    SuiteLoadError,
)
from integration_harness.lifecycle import (
    LifecycleHooks,
    StateResetHook,
    TestState,
    install_state_reset,
)
from integration_harness.reporting import RunReport, TestOutcome, TestResult
from integration_harness.runner import SequentialRunner, run_harness
from integration_harness.suite import Suite, SuiteRegistry, TestCase

__version__ = "1.0.0"

__all__ = [
    # Capability gate
    "Capability",
    "HarnessContext",
    "REQUIRED_CAPABILITIES",
    "check_capabilities",
    "start_harness",
    "start_harness_from_namespace",
    # Configuration
    "HarnessConfig",
    "HarnessSettings",
    # Environment filter
    "SkipDecision",
    "environment_test",
    "environment_is",
    "environment_in",
    "negate",
    # Suites
    "Suite",
    "SuiteRegistry",
    "TestCase",
    # Lifecycle
    "LifecycleHooks",
    "StateResetHook",
    "TestState",
    "install_state_reset",
    # Running and reporting
    "SequentialRunner",
    "run_harness",
    "RunReport",
    "TestOutcome",
    "TestResult",
    # Errors
    "HarnessError",
    "MissingCapabilityError",
    "SuiteLoadError",
    "PredicateError",
    "StateResetError",
    "InvalidTransitionError",
    # Version
    "__version__",
]
