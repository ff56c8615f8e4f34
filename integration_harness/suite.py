"""
Suite Registry - composition of test groups under one named root suite.

Child test modules are loaded by dotted import name or by file path and
expose one function:

    def register_tests(context):
        context.it("opens the default path", test_default_path)

        @context.describe("schema")
        def _():
            context.it("rejects unknown types", test_unknown_types)

The registry performs no filtering, setup or assertions. It only decides
where each registration lands.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Protocol, Union

from integration_harness.environment import SkipDecision
from integration_harness.errors import PredicateError, SuiteLoadError
from integration_harness.lifecycle import TestState, check_transition
from integration_harness.monitoring.logging import get_logger

if TYPE_CHECKING:
    from integration_harness.capabilities import HarnessContext

logger = logging.getLogger(__name__)

TestBody = Callable[[], Any]

REGISTER_FUNCTION = "register_tests"


@dataclass(eq=False)
class TestCase:
    """A registered test leaf.

    Attributes:
        title: Test title within its suite.
        body: Sync callable or coroutine function.
        suite: Owning suite.
        skip_decision: Result of the environment predicate, if any.
        predicate_error: PredicateError when the predicate raised.
        state: Current lifecycle state.
    """

    __test__ = False

    title: str
    body: TestBody
    suite: "Suite" = field(repr=False)
    skip_decision: SkipDecision = SkipDecision.RUN
    predicate_error: PredicateError | None = None
    state: TestState = TestState.REGISTERED

    @property
    def full_title(self) -> str:
        return f"{self.suite.full_title} {self.title}"

    @property
    def skipped(self) -> bool:
        return self.skip_decision is SkipDecision.SKIP

    def advance(self, to_state: TestState) -> None:
        """Move to the next lifecycle state, enforcing the state machine."""
        check_transition(self.state, to_state)
        self.state = to_state


@dataclass(eq=False)
class Suite:
    """A named group of tests and nested suites."""

    title: str
    parent: Optional["Suite"] = field(default=None, repr=False)
    tests: list[TestCase] = field(default_factory=list)
    children: list["Suite"] = field(default_factory=list)
    # Declaration order across tests and child suites
    _entries: list[Union[TestCase, "Suite"]] = field(default_factory=list, repr=False)

    @property
    def full_title(self) -> str:
        if self.parent is None:
            return self.title
        return f"{self.parent.full_title} {self.title}"

    @property
    def root(self) -> "Suite":
        suite = self
        while suite.parent is not None:
            suite = suite.parent
        return suite

    def add_test(self, test: TestCase) -> None:
        self.tests.append(test)
        self._entries.append(test)

    def add_child(self, title: str) -> "Suite":
        child = Suite(title=title, parent=self)
        self.children.append(child)
        self._entries.append(child)
        return child

    def mark(self) -> int:
        return len(self._entries)

    def truncate(self, mark: int) -> None:
        """Drop every test and child suite declared after mark."""
        dropped = self._entries[mark:]
        del self._entries[mark:]
        self.tests = [t for t in self.tests if t not in dropped]
        self.children = [c for c in self.children if c not in dropped]

    def walk(self) -> Iterator[TestCase]:
        """Yield every test below this suite in declaration order."""
        for entry in self._entries:
            if isinstance(entry, Suite):
                yield from entry.walk()
            else:
                yield entry


class RegisterFn(Protocol):
    def __call__(self, title: str, body: Optional[TestBody] = None, **kwargs: Any) -> Any: ...


class SuiteRegistry:
    """
    Owns the single root suite and the current registration target.

    Usage:
        registry = SuiteRegistry("Node.js integration")
        registry.it("works", body)

        with registry.suite("nested"):
            registry.it("works too", body)

        registry.include("tests_integration.realm_constructor", context)
    """

    def __init__(self, title: str) -> None:
        self.root = Suite(title=title)
        self._stack: list[Suite] = [self.root]
        self._included: list[str] = []

    @property
    def title(self) -> str:
        return self.root.title

    @property
    def current(self) -> Suite:
        """Suite that receives registrations right now."""
        return self._stack[-1]

    @property
    def included_modules(self) -> list[str]:
        return list(self._included)

    def it(
        self,
        title: str,
        body: Optional[TestBody] = None,
        *,
        skip_decision: SkipDecision = SkipDecision.RUN,
        predicate_error: BaseException | None = None,
    ) -> Any:
        """
        Register a test in the current suite.

        Called with a body it registers immediately and returns the
        TestCase. Called with the title only it returns a decorator.
        """
        suite = self.current

        def add(fn: Optional[TestBody]) -> TestCase:
            error = None
            if predicate_error is not None:
                error = PredicateError(f"{suite.full_title} {title}", predicate_error)
            test = TestCase(
                title=title,
                body=fn,
                suite=suite,
                skip_decision=skip_decision,
                predicate_error=error,
            )
            suite.add_test(test)
            return test

        if body is not None:
            return add(body)

        def decorator(fn: TestBody) -> TestBody:
            add(fn)
            return fn

        return decorator

    @contextmanager
    def suite(self, title: str) -> Iterator[Suite]:
        """Context manager making a new child suite the registration target."""
        child = self.current.add_child(title)
        self._stack.append(child)
        try:
            yield child
        finally:
            self._stack.pop()

    def describe(self, title: str, fn: Optional[Callable[[], Any]] = None) -> Any:
        """Declare a nested suite whose registrations happen inside fn.

        Usable directly, describe("title", fn), or as a decorator.
        """
        def run(callback: Callable[[], Any]) -> Callable[[], Any]:
            with self.suite(title):
                callback()
            return callback

        if fn is not None:
            with self.suite(title) as child:
                fn()
            return child
        return run

    def include(self, module: Union[str, Path, ModuleType], context: "HarnessContext") -> ModuleType:
        """
        Load a child test module and let it register under the current suite.

        Args:
            module: Dotted import name, path to a .py file, or a module.
            context: Harness context passed to register_tests().

        Returns:
            The loaded module.

        Raises:
            SuiteLoadError: If the module cannot be loaded or has no
                register_tests function.
        """
        loaded = load_module(module)
        name = loaded.__name__

        register = getattr(loaded, REGISTER_FUNCTION, None)
        if not callable(register):
            raise SuiteLoadError(name, f"module has no {REGISTER_FUNCTION}(context) function")

        target = self.current
        mark = target.mark()
        before = sum(1 for _ in self.root.walk())
        try:
            register(context)
        except SuiteLoadError:
            target.truncate(mark)
            raise
        except Exception as e:
            # A half-registered module leaves nothing behind.
            target.truncate(mark)
            raise SuiteLoadError(
                name, f"{REGISTER_FUNCTION}() raised {type(e).__name__}: {e}"
            ) from e
        added = sum(1 for _ in self.root.walk()) - before

        self._included.append(name)
        get_logger().info(
            "suite_included",
            f"Included '{name}' under '{self.current.full_title}'",
            module=name,
            suite=self.current.full_title,
            tests=added,
        )
        return loaded

    def walk(self) -> Iterator[TestCase]:
        """Every registered test, in declaration order."""
        return self.root.walk()

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())


def load_module(module: Union[str, Path, ModuleType]) -> ModuleType:
    if isinstance(module, ModuleType):
        return module

    if isinstance(module, Path) or str(module).endswith(".py"):
        path = Path(module)
        if not path.is_file():
            raise SuiteLoadError(str(module), "file not found")
        name = f"integration_harness_modules.{path.stem}"
        try:
            spec = importlib.util.spec_from_file_location(name, path)
            if spec is None or spec.loader is None:
                raise SuiteLoadError(str(module), "not a loadable Python file")
            loaded = importlib.util.module_from_spec(spec)
            sys.modules[name] = loaded
            spec.loader.exec_module(loaded)
            logger.debug(f"Loaded test module {name} from {path}")
        except SuiteLoadError:
            raise
        except Exception as e:
            sys.modules.pop(name, None)
            raise SuiteLoadError(str(module), f"{type(e).__name__}: {e}") from e
        return loaded

    try:
        return importlib.import_module(str(module))
    except Exception as e:
        raise SuiteLoadError(str(module), f"{type(e).__name__}: {e}") from e
