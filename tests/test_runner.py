"""
Tests for the sequential runner: skip semantics, isolation, teardown ordering.
"""

import asyncio
import json

import pytest

from integration_harness import (
    PredicateError,
    SequentialRunner,
    StateResetError,
    TestOutcome,
    TestState,
    environment_is,
    install_state_reset,
    run_harness,
)
from integration_harness.testing import DatabaseMock, MockConfig, create_test_config, create_test_context


class TestSkipSemantics:
    """Environment-gated tests through a full run."""

    def test_browser_only_test_skipped_on_node(self, context, database, run):
        executed = []
        context.it_environment(lambda env: env["platform"] == "browser")(
            "opens IndexedDB", lambda: executed.append(True)
        )

        report = run(context)

        assert executed == []
        assert [r.outcome for r in report.results] == [TestOutcome.SKIPPED]
        assert report.results[0].full_title == "Integration tests opens IndexedDB"
        assert database.clear_count == 1
        assert report.passed

    def test_run_complete_logged_with_counts(self, context, log_output, run):
        context.it_environment(environment_is(platform="browser"))("opens IndexedDB", lambda: None)
        context.it("runs", lambda: None)

        report = run(context)

        entries = [json.loads(line) for line in log_output.getvalue().splitlines()]
        complete = entries[-1]
        assert complete["event"] == "run_complete"
        assert complete["succeeded"] is True
        assert complete["aborted"] is False
        assert complete["counts"] == report.counts()

    def test_matching_environment_runs(self, browser_context, run):
        executed = []
        browser_context.it_environment(environment_is(platform="browser"))(
            "opens IndexedDB", lambda: executed.append(True)
        )

        report = run(browser_context)

        assert executed == [True]
        assert report.results[0].outcome is TestOutcome.PASSED

    def test_skipped_tests_are_reported_not_omitted(self, context, suites_dir, run):
        context.include(suites_dir / "environment_gated.py")

        report = run(context)

        assert report.counts()["skipped"] == 1
        assert len(report.results) == 3
        assert context.fs.exists("/ran/node")
        assert context.fs.exists("/ran/everywhere")
        assert not context.fs.exists("/ran/browser")

    def test_raising_predicate_reported_as_error(self, context, database, run):
        executed = []

        def broken(env):
            raise AttributeError("descriptor has no 'engine'")

        context.it_environment(broken)("needs engine", lambda: executed.append(True))

        report = run(context)
        result = report.results[0]

        assert executed == []
        assert result.outcome is TestOutcome.ERROR
        assert isinstance(result.error, PredicateError)
        assert isinstance(result.error.__cause__, AttributeError)
        assert database.clear_count == 1
        assert not report.passed


class TestOutcomes:
    """Pass/fail recording."""

    def test_pass_and_fail(self, context, run):
        def fails():
            assert 1 == 2, "mismatch"

        context.it("passes", lambda: None)
        context.it("fails", fails)

        report = run(context)

        assert [r.outcome for r in report.results] == [TestOutcome.PASSED, TestOutcome.FAILED]
        assert isinstance(report.results[1].error, AssertionError)
        assert report.results[1].duration_ms >= 0
        assert not report.passed

    def test_async_body_awaited(self, context, run):
        steps = []

        async def body():
            steps.append("start")
            await asyncio.sleep(0)
            steps.append("end")

        context.it("async", body)
        report = run(context)

        assert steps == ["start", "end"]
        assert report.results[0].outcome is TestOutcome.PASSED

    def test_async_body_failure(self, context, run):
        async def body():
            raise ValueError("async failure")

        context.it("async", body)
        report = run(context)

        assert report.results[0].outcome is TestOutcome.FAILED
        assert str(report.results[0].error) == "async failure"

    def test_all_tests_end_in_state_reset(self, context, run):
        context.it("runs", lambda: None)
        context.it_environment(environment_is(platform="browser"))("skips", lambda: None)

        run(context)

        assert [t.state for t in context.registry.walk()] == [TestState.STATE_RESET] * 2


class TestIsolation:
    """State reset after every test."""

    def test_exactly_one_reset_per_test(self, context, database, run):
        context.it("passes", lambda: None)
        context.it("fails", lambda: 1 / 0)
        context.it_environment(environment_is(platform="browser"))("skipped", lambda: None)

        report = run(context)

        assert database.clear_count == 3
        assert [r.reset_count for r in report.results] == [1, 1, 1]

    def test_persisted_state_not_visible_to_next_test(self, context, suites_dir, run):
        context.include(suites_dir / "realm_constructor.py")

        report = run(context)

        assert [r.outcome for r in report.results] == [TestOutcome.PASSED] * 3

    def test_without_reset_state_leaks(self, database, suites_dir, run):
        context = create_test_context("node", install_reset=False, database=database)
        context.include(suites_dir / "realm_constructor.py")

        report = run(context)

        assert report.results[1].outcome is TestOutcome.FAILED
        assert "leaked" in str(report.results[1].error)
        assert [r.reset_count for r in report.results] == [0, 0, 0]

    def test_reset_runs_after_failure(self, context, database, run):
        def fails():
            database.put("half-written.realm", {})
            raise RuntimeError("crashed mid-write")

        context.it("crashes", fails)
        context.it("sees nothing", lambda: None)

        run(context)

        assert database.records == {}
        assert database.clear_count == 2

    def test_reset_precedes_next_test(self, context, run):
        order = []
        context.hooks.register("before_each", lambda t: order.append(f"start {t.title}"))
        context.hooks.register("after_each", lambda t: order.append(f"end {t.title}"))
        context.it("one", lambda: None)
        context.it("two", lambda: None)

        run(context)

        assert order == ["start one", "end one", "start two", "end two"]

    def test_async_reset_completes_before_next_test(self, run):
        database = DatabaseMock(MockConfig(async_clear=True, clear_delay_ms=5))
        context = create_test_context("node", database=database)
        context.it("one", lambda: database.events.append("body one"))
        context.it("two", lambda: database.events.append("body two"))

        run(context)

        assert database.events == [
            "body one", "clear_started", "cleared",
            "body two", "clear_started", "cleared",
        ]

    def test_reset_runs_even_if_earlier_after_each_fails(self, database, run):
        context = create_test_context("node", install_reset=False, database=database)

        def broken_hook(test):
            raise RuntimeError("reporter crashed")

        context.hooks.register("after_each", broken_hook)
        install_state_reset(context)
        context.it("one", lambda: None)

        report = run(context)

        assert database.clear_count == 1
        assert report.results[0].outcome is TestOutcome.ERROR
        assert "reporter crashed" in str(report.results[0].error)
        assert report.results[0].reset_error is None
        assert report.results[0].reset_count == 1

    def test_other_after_each_hooks_are_not_resets(self, context, run):
        context.hooks.register("after_each", lambda t: None, name="reporter")
        context.it("one", lambda: None)

        report = run(context)

        assert report.results[0].reset_count == 1

    def test_before_each_skipped_for_skipped_tests(self, context, run):
        seen = []
        context.hooks.register("before_each", lambda t: seen.append(t.title))
        context.it_environment(environment_is(platform="browser"))("skipped", lambda: None)
        context.it("runs", lambda: None)

        run(context)

        assert seen == ["runs"]

    def test_before_each_failure_fails_test(self, context, database, run):
        executed = []

        def setup(test):
            raise RuntimeError("fixture missing")

        context.hooks.register("before_each", setup)
        context.it("guarded", lambda: executed.append(True))

        report = run(context)

        assert executed == []
        assert report.results[0].outcome is TestOutcome.FAILED
        assert database.clear_count == 1


class TestResetFailure:
    """A failed reset invalidates the rest of the run."""

    def test_attributed_to_completed_test_and_aborts(self, run):
        database = DatabaseMock(fail_after=2)
        context = create_test_context("node", database=database)
        for title in ("one", "two", "three", "four"):
            context.it(title, lambda: None)

        report = run(context)

        assert [r.outcome for r in report.results] == [TestOutcome.PASSED, TestOutcome.ERROR]
        failed = report.results[1]
        assert isinstance(failed.reset_error, StateResetError)
        assert failed.reset_error.test_title == "Integration tests two"
        assert [r.reset_count for r in report.results] == [1, 0]
        assert report.aborted
        assert report.not_run == ["Integration tests three", "Integration tests four"]
        assert not report.passed

    def test_continue_when_configured(self, run):
        database = DatabaseMock(fail_on_clear=True)
        context = create_test_context("node", database=database)
        context.it("one", lambda: None)
        context.it("two", lambda: None)

        report = run(context, stop_on_reset_failure=False)

        assert len(report.results) == 2
        assert not report.aborted
        assert all(r.outcome is TestOutcome.ERROR for r in report.results)

    def test_logged(self, log_output, run):
        context = create_test_context("node", database=DatabaseMock(fail_on_clear=True))
        context.it("one", lambda: None)

        run(context)

        events = [json.loads(line)["event"] for line in log_output.getvalue().splitlines()]
        assert "state_reset_failed" in events
        assert events[-1] == "run_complete"


class TestFailFast:
    """fail_fast setting."""

    def test_stops_after_first_failure(self, context, database, run):
        context.it("fails", lambda: 1 / 0)
        context.it("never runs", lambda: None)

        report = run(context, fail_fast=True)

        assert len(report.results) == 1
        assert report.not_run == ["Integration tests never runs"]
        assert not report.aborted
        assert database.clear_count == 1

    def test_skips_do_not_stop(self, context, run):
        context.it_environment(environment_is(platform="browser"))("skipped", lambda: None)
        context.it("runs", lambda: None)

        report = run(context, fail_fast=True)

        assert len(report.results) == 2


class TestRunHarness:
    """End-to-end helper."""

    def test_gate_compose_run(self, suites_dir):
        config = create_test_config("node", title="Node.js integration")

        report = run_harness(
            config,
            modules=[suites_dir / "realm_constructor.py", suites_dir / "environment_gated.py"],
        )

        assert report.title == "Node.js integration"
        assert len(report.results) == 6
        assert report.counts() == {"passed": 5, "failed": 0, "skipped": 1, "error": 0}
        assert config.database.clear_count == 6
        assert all(r.full_title.startswith("Node.js integration ") for r in report.results)

    def test_missing_capability_runs_nothing(self, suites_dir):
        from integration_harness import MissingCapabilityError

        config = create_test_config("node", omit=["fs"])

        with pytest.raises(MissingCapabilityError, match="fs"):
            run_harness(config, modules=[suites_dir / "realm_constructor.py"])

        assert config.database.clear_count == 0
        assert config.database.calls == []

    def test_run_async_on_existing_loop(self, context, database):
        context.it("one", lambda: None)

        report = asyncio.run(SequentialRunner().run_async(context))

        assert report.passed
        assert database.clear_count == 1
