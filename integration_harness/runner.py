"""
Sequential Runner - drives every registered test through its lifecycle.

One test at a time, in declaration order, on a single event loop:

    1. Skip decision (taken at registration) → SKIPPED or RUNNING
    2. before_each hooks, body (sync or coroutine)  → COMPLETED
    3. after_each hooks, awaited to completion      → STATE_RESET
    4. Next test

No parallelism, timeouts or retries. The after_each extension point is
where StateResetHook binds; the next test never starts before every
after_each callback for the previous one has finished.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from pathlib import Path
from types import ModuleType
from typing import Iterable, Union

from integration_harness.capabilities import HarnessContext, start_harness
from integration_harness.config import HarnessConfig, HarnessSettings
from integration_harness.environment import SkipDecision
from integration_harness.errors import StateResetError
from integration_harness.lifecycle import LifecycleHooks, StateResetHook, TestState, install_state_reset
from integration_harness.monitoring.logging import StructuredLogger, get_logger
from integration_harness.reporting import RunReport, TestOutcome, TestResult
from integration_harness.suite import TestCase


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class SequentialRunner:
    """
    Runs a harness context's tests strictly sequentially.

    Usage:
        context = start_harness(config)
        install_state_reset(context)
        context.include("tests_integration.realm_constructor")

        report = SequentialRunner().run(context)
        print(report.format_summary())
    """

    def __init__(
        self,
        settings: HarnessSettings | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.settings = settings or HarnessSettings()
        self._logger = logger

    @property
    def logger(self) -> StructuredLogger:
        return self._logger or get_logger()

    def run(self, context: HarnessContext) -> RunReport:
        """Run all tests on a fresh event loop."""
        return asyncio.run(self.run_async(context))

    async def run_async(self, context: HarnessContext) -> RunReport:
        """Run all tests on the current event loop."""
        log = self.logger.bind(suite=context.title)
        tests = list(context.registry.walk())
        report = RunReport(title=context.title)

        log.info("run_start", f"Running {len(tests)} tests", tests=len(tests))

        for index, test in enumerate(tests):
            result = await self.run_test(test, context.hooks, log)
            report.results.append(result)

            stop = False
            if result.reset_error is not None and self.settings.stop_on_reset_failure:
                report.aborted = True
                stop = True
            elif self.settings.fail_fast and not result.ok:
                stop = True

            if stop:
                report.not_run = [t.full_title for t in tests[index + 1:]]
                break

        log.info(
            "run_complete",
            "Run finished" if not report.aborted else "Run aborted",
            succeeded=report.passed,
            aborted=report.aborted,
            counts=report.counts(),
        )
        return report

    async def run_test(
        self,
        test: TestCase,
        hooks: LifecycleHooks,
        log: StructuredLogger | None = None,
    ) -> TestResult:
        """Run one test and its after_each hooks."""
        log = log or self.logger
        result = TestResult(
            full_title=test.full_title,
            suite=test.suite.full_title,
            outcome=TestOutcome.PASSED,
        )

        if test.skip_decision is not SkipDecision.RUN:
            # Predicate errors bypass RUNNING just like skips; only the outcome differs.
            test.advance(TestState.SKIPPED)
            if test.predicate_error is not None:
                result.outcome = TestOutcome.ERROR
                result.error = test.predicate_error
                log.harness_error("predicate_error", test.predicate_error, test=test.full_title)
            else:
                result.outcome = TestOutcome.SKIPPED
        else:
            test.advance(TestState.RUNNING)
            log.test_start(test.full_title)
            started = time.perf_counter()
            try:
                for hook in hooks.get("before_each"):
                    await _maybe_await(hook(test))
                await _maybe_await(test.body())
            except Exception as e:
                result.outcome = TestOutcome.FAILED
                result.error = e
            result.duration_ms = (time.perf_counter() - started) * 1000
            test.advance(TestState.COMPLETED)

        log.test_finished(
            test.full_title,
            result.outcome.value,
            result.duration_ms,
            error=str(result.error) if result.error else None,
        )

        await self._after_each(test, hooks, result, log)
        test.advance(TestState.STATE_RESET)
        return result

    async def _after_each(
        self,
        test: TestCase,
        hooks: LifecycleHooks,
        result: TestResult,
        log: StructuredLogger,
    ) -> None:
        # Every callback runs even if an earlier one failed; the reset must not be skipped.
        for hook in hooks.get("after_each"):
            try:
                await _maybe_await(hook(test))
                if isinstance(hook.callback, StateResetHook):
                    result.reset_count += 1
            except StateResetError as e:
                result.reset_error = e
                result.outcome = TestOutcome.ERROR
                log.harness_error("state_reset_failed", e, test=test.full_title)
            except Exception as e:
                result.outcome = TestOutcome.ERROR
                if result.error is None:
                    result.error = e
                log.harness_error("after_each_failed", e, test=test.full_title, hook=hook.name)


def run_harness(
    config: HarnessConfig,
    modules: Iterable[Union[str, Path, ModuleType]] = (),
    settings: HarnessSettings | None = None,
) -> RunReport:
    """
    Gate, compose and run in one call.

    Raises:
        MissingCapabilityError: Before anything registers.
        SuiteLoadError: If a module cannot be included.
    """
    context = start_harness(config)
    install_state_reset(context)
    for module in modules:
        context.include(module)
    return SequentialRunner(settings).run(context)
