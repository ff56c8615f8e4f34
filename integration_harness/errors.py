"""
Harness Errors - Structured error types.

Error hierarchy:
    HarnessError (base)
    ├── MissingCapabilityError (fatal, load time)
    ├── SuiteLoadError (fatal, load time)
    ├── PredicateError (per test)
    ├── StateResetError (harness-level, invalidates isolation)
    └── InvalidTransitionError
"""

from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """Base error for all harness-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MissingCapabilityError(HarnessError):
    """
    Raised when the host did not supply one or more required capabilities.

    This is a fatal load-time condition. It is raised before any suite
    exists, so no test registers or runs.
    """

    def __init__(
        self,
        missing: list[str],
        details: dict[str, Any] | None = None,
    ):
        names = ", ".join(missing)
        noun = "capability" if len(missing) == 1 else "capabilities"
        super().__init__(
            f"Missing required {noun}: {names}. "
            f"Expected {names} to be supplied by the host",
            details,
        )
        self.missing = list(missing)


class SuiteLoadError(HarnessError):
    """
    Raised when a child test module cannot be included.

    Examples:
    - Module cannot be imported
    - Module has no register_tests(context) function
    """

    def __init__(
        self,
        module: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"Cannot include test module '{module}': {message}", details)
        self.module = module


class PredicateError(HarnessError):
    """
    Raised (and recorded) when an environment predicate throws.

    The affected test is reported as failed, never silently skipped.
    The original exception is available as __cause__.
    """

    def __init__(
        self,
        test_title: str,
        cause: BaseException,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"Environment predicate for '{test_title}' raised "
            f"{type(cause).__name__}: {cause}",
            details,
        )
        self.test_title = test_title
        self.__cause__ = cause


class StateResetError(HarnessError):
    """
    Raised when the database collaborator fails to clear test state.

    Attributed to the test that just completed. A failed reset
    invalidates isolation for every subsequent test in the run.
    """

    def __init__(
        self,
        test_title: str,
        cause: BaseException,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"State reset after '{test_title}' failed: "
            f"{type(cause).__name__}: {cause}",
            details,
        )
        self.test_title = test_title
        self.__cause__ = cause


class InvalidTransitionError(HarnessError):
    """
    Raised for invalid test lifecycle transitions.

    Examples:
    - SKIPPED → RUNNING (a skipped body never runs)
    - REGISTERED → COMPLETED (must run first)
    """

    def __init__(
        self,
        from_state: str,
        to_state: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        msg = message or f"Invalid transition: {from_state} → {to_state}"
        super().__init__(msg, details)
        self.from_state = from_state
        self.to_state = to_state
