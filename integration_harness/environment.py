"""
Environment Filter - environment-conditional test registration.

A test can declare "skip unless the environment satisfies P" without its
body knowing the mechanism:

    it_node = environment_test(suite.it, lambda env: env["platform"] == "node", env)

    @it_node("reads files through the fs shim")
    def test_reads(): ...

The predicate is evaluated once, at registration time. A false result
registers the test as skipped (still reported). A raising predicate
registers the test as errored, so a broken predicate is visible instead
of masking a coverage gap.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Iterable

if TYPE_CHECKING:
    from integration_harness.suite import RegisterFn

EnvironmentDescriptor = Any
TestPredicate = Callable[[EnvironmentDescriptor], bool]


class SkipDecision(Enum):
    """Outcome of evaluating a test's predicate at registration."""

    RUN = "run"
    SKIP = "skip"
    ERROR = "error"


# Combining decisions: the most severe wins
_SEVERITY = (SkipDecision.RUN, SkipDecision.SKIP, SkipDecision.ERROR)


def evaluate_predicate(
    predicate: TestPredicate,
    environment: EnvironmentDescriptor,
) -> tuple[SkipDecision, BaseException | None]:
    """Evaluate a predicate once against the environment."""
    try:
        included = predicate(environment)
    except Exception as e:
        return SkipDecision.ERROR, e
    return (SkipDecision.RUN if included else SkipDecision.SKIP), None


def environment_test(
    register: "RegisterFn",
    predicate: TestPredicate,
    environment: EnvironmentDescriptor,
) -> "RegisterFn":
    """
    Wrap a registration function with an environment predicate.

    Args:
        register: Base registration primitive, register(title, body=None, **kw).
        predicate: Pure function of the environment descriptor.
        environment: The current environment descriptor.

    Returns:
        A registration function with the same signature as register.
    """

    @wraps(register)
    def environment_register(title: str, body: Callable[..., Any] | None = None, **kwargs: Any):
        decision, error = evaluate_predicate(predicate, environment)
        # Stacked filters: the outer decision arrives in kwargs.
        outer_decision = kwargs.pop("skip_decision", SkipDecision.RUN)
        outer_error = kwargs.pop("predicate_error", None)
        decision = max(decision, outer_decision, key=_SEVERITY.index)
        error = outer_error if outer_error is not None else error
        return register(
            title,
            body,
            skip_decision=decision,
            predicate_error=error,
            **kwargs,
        )

    return environment_register


# =============================================================================
# Predicate helpers
# =============================================================================

def read_field(environment: EnvironmentDescriptor, key: str) -> Any:
    """Read a field from a mapping or attribute-bearing descriptor.

    Raises:
        KeyError: If the descriptor has no such field.
    """
    if isinstance(environment, Mapping):
        return environment[key]
    try:
        return getattr(environment, key)
    except AttributeError:
        raise KeyError(key) from None


def environment_is(**expected: Any) -> TestPredicate:
    """Predicate true when every given field equals its expected value.

    Example:
        environment_is(platform="node")
    """
    def predicate(environment: EnvironmentDescriptor) -> bool:
        return all(read_field(environment, k) == v for k, v in expected.items())

    predicate.__name__ = "environment_is(" + ", ".join(f"{k}={v!r}" for k, v in expected.items()) + ")"
    return predicate


def environment_in(key: str, values: Iterable[Any]) -> TestPredicate:
    """Predicate true when environment[key] is one of values."""
    allowed = frozenset(values)

    def predicate(environment: EnvironmentDescriptor) -> bool:
        return read_field(environment, key) in allowed

    predicate.__name__ = f"environment_in({key!r}, {sorted(map(repr, allowed))})"
    return predicate


def negate(predicate: TestPredicate) -> TestPredicate:
    """Invert a predicate."""
    def inverted(environment: EnvironmentDescriptor) -> bool:
        return not predicate(environment)

    inverted.__name__ = f"not {getattr(predicate, '__name__', 'predicate')}"
    return inverted
