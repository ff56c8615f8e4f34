"""
Test Lifecycle - per-test states, extension points and the state reset hook.

State machine (per test):

    REGISTERED → SKIPPED ───────────┐
         │                          ▼
         └──→ RUNNING → COMPLETED → STATE_RESET

Every test reaches STATE_RESET, including skipped ones. The reset is an
idempotent no-op from the database's point of view when nothing was
persisted.
"""

from __future__ import annotations

import inspect
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from integration_harness.errors import InvalidTransitionError, StateResetError
from integration_harness.monitoring.logging import get_logger

if TYPE_CHECKING:
    from integration_harness.capabilities import HarnessContext
    from integration_harness.suite import TestCase


class TestState(Enum):
    """Lifecycle states of a single registered test."""

    __test__ = False

    REGISTERED = "registered"
    SKIPPED = "skipped"
    RUNNING = "running"
    COMPLETED = "completed"
    STATE_RESET = "state_reset"


# Valid state transitions (from -> to)
VALID_TRANSITIONS: dict[TestState, set[TestState]] = {
    TestState.REGISTERED: {TestState.SKIPPED, TestState.RUNNING},
    TestState.SKIPPED: {TestState.STATE_RESET},
    TestState.RUNNING: {TestState.COMPLETED},
    TestState.COMPLETED: {TestState.STATE_RESET},
    TestState.STATE_RESET: set(),  # Terminal for this run
}


def is_valid_transition(from_state: TestState, to_state: TestState) -> bool:
    """Check if a lifecycle transition is valid."""
    return to_state in VALID_TRANSITIONS.get(from_state, set())


def check_transition(from_state: TestState, to_state: TestState) -> None:
    """Raise InvalidTransitionError unless from_state → to_state is allowed."""
    if not is_valid_transition(from_state, to_state):
        raise InvalidTransitionError(from_state.value, to_state.value)


LifecycleCallback = Callable[["TestCase"], Union[None, Awaitable[None]]]


@dataclass
class Hook:
    """A registered lifecycle callback.

    Attributes:
        event: Extension point name.
        callback: Function to call with the concluded test.
        name: Label used in logs.
    """

    event: str
    callback: LifecycleCallback
    name: str = ""

    def __call__(self, test: "TestCase") -> Any:
        return self.callback(test)


class LifecycleHooks:
    """Ordered lifecycle extension points the runner invokes.

    Events:
        before_each: Before a non-skipped test body runs
        after_each: After every test concludes, skipped ones included

    Callbacks may be plain functions or coroutine functions; the runner
    awaits anything awaitable before moving on. Unlike observer-style
    hooks, errors propagate to the runner.

    Example:
        hooks = LifecycleHooks()

        @hooks.after_each
        def log_test(test):
            print(test.full_title)
    """

    EVENTS = ("before_each", "after_each")

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = {event: [] for event in self.EVENTS}
        self._lock = threading.Lock()

    def register(
        self,
        event: str,
        callback: LifecycleCallback,
        name: str = "",
    ) -> Hook:
        """Register a callback on an extension point.

        Raises:
            ValueError: If event is unknown.
        """
        if event not in self._hooks:
            raise ValueError(f"Unknown event: {event}")

        hook = Hook(event=event, callback=callback, name=name or _callable_name(callback))
        with self._lock:
            self._hooks[event].append(hook)
        return hook

    def unregister(self, hook: Hook) -> bool:
        """Remove a hook. Returns True if it was registered."""
        with self._lock:
            if hook in self._hooks.get(hook.event, []):
                self._hooks[hook.event].remove(hook)
                return True
        return False

    def get(self, event: str) -> list[Hook]:
        """Hooks for an event, in registration order."""
        with self._lock:
            return list(self._hooks.get(event, []))

    def before_each(self, func: LifecycleCallback) -> LifecycleCallback:
        """Decorator registering a before_each callback."""
        self.register("before_each", func)
        return func

    def after_each(self, func: LifecycleCallback) -> LifecycleCallback:
        """Decorator registering an after_each callback."""
        self.register("after_each", func)
        return func


def _callable_name(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or type(func).__name__


class StateResetHook:
    """
    Clears all persisted database state after a test.

    Calls database.clear_test_state(). If that returns an awaitable the
    hook awaits it, so the next test cannot start until teardown has
    completed. A failure is raised as StateResetError attributed to the
    test that just concluded.

    Usage:
        hook = StateResetHook(database)
        context.hooks.register("after_each", hook, name="state_reset")
    """

    def __init__(self, database: Any) -> None:
        self.database = database
        self.invocations = 0

    async def __call__(self, test: "TestCase") -> None:
        self.invocations += 1
        try:
            result = self.database.clear_test_state()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            raise StateResetError(test.full_title, e) from e
        get_logger().state_reset(test.full_title)


def install_state_reset(context: "HarnessContext") -> StateResetHook:
    """Register a StateResetHook bound to the context's database."""
    hook = StateResetHook(context.database)
    context.hooks.register("after_each", hook, name="state_reset")
    return hook
