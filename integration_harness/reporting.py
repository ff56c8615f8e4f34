"""
Run reporting - per-test results and the run summary.

Skipped tests are always reported (never silently omitted) so the summary
reflects environment coverage.
"""

from __future__ import annotations

import json
import statistics
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TestOutcome(Enum):
    """Reported outcome of a concluded test."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"  # Harness-level: predicate raised or state reset failed


@dataclass
class TestResult:
    """Result of one test, including its state reset.

    Attributes:
        full_title: Title prefixed with every enclosing suite title.
        suite: Full title of the owning suite.
        outcome: Reported outcome.
        duration_ms: Body run time (0 for skipped tests).
        error: Exception raised by the body or the predicate.
        reset_error: StateResetError raised by the after-each reset, if any.
        reset_count: Number of state resets that completed after this test.
    """

    __test__ = False

    full_title: str
    suite: str
    outcome: TestOutcome
    duration_ms: float = 0.0
    error: BaseException | None = None
    reset_error: BaseException | None = None
    reset_count: int = 0

    @property
    def ok(self) -> bool:
        return self.outcome in (TestOutcome.PASSED, TestOutcome.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.full_title,
            "suite": self.suite,
            "outcome": self.outcome.value,
            "duration_ms": round(self.duration_ms, 3),
            "error": _describe(self.error),
            "reset_error": _describe(self.reset_error),
            "reset_count": self.reset_count,
        }


def _describe(error: BaseException | None) -> str | None:
    if error is None:
        return None
    return f"{type(error).__name__}: {error}"


@dataclass
class RunReport:
    """
    Summary of a whole run grouped under the root suite title.

    Attributes:
        title: Root suite title.
        results: Results in execution order.
        not_run: Titles of tests never reached (run aborted or fail-fast).
        aborted: True when a state reset failure stopped the run.
    """

    title: str
    results: list[TestResult] = field(default_factory=list)
    not_run: list[str] = field(default_factory=list)
    aborted: bool = False

    def counts(self) -> dict[str, int]:
        """Number of results per outcome (every outcome present)."""
        counts = {outcome.value: 0 for outcome in TestOutcome}
        for result in self.results:
            counts[result.outcome.value] += 1
        return counts

    @property
    def passed(self) -> bool:
        """True when nothing failed or errored and the run finished."""
        return not self.aborted and not self.not_run and all(r.ok for r in self.results)

    def by_outcome(self, outcome: TestOutcome) -> list[TestResult]:
        return [r for r in self.results if r.outcome is outcome]

    def duration_stats(self) -> dict[str, float]:
        """Duration statistics over executed (non-skipped) tests."""
        durations = [
            r.duration_ms for r in self.results
            if r.outcome in (TestOutcome.PASSED, TestOutcome.FAILED)
        ]
        if not durations:
            return {"total_ms": 0.0, "mean_ms": 0.0, "median_ms": 0.0, "max_ms": 0.0}
        return {
            "total_ms": sum(durations),
            "mean_ms": statistics.mean(durations),
            "median_ms": statistics.median(durations),
            "max_ms": max(durations),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "passed": self.passed,
            "aborted": self.aborted,
            "counts": self.counts(),
            "durations": self.duration_stats(),
            "results": [r.to_dict() for r in self.results],
            "not_run": list(self.not_run),
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def format_summary(self) -> str:
        """Human-readable summary, one line per test then the totals."""
        symbols = {
            TestOutcome.PASSED: "✓",
            TestOutcome.FAILED: "✗",
            TestOutcome.SKIPPED: "-",
            TestOutcome.ERROR: "!",
        }
        lines = [self.title]
        for result in self.results:
            line = f"  {symbols[result.outcome]} {result.full_title}"
            if result.outcome is TestOutcome.SKIPPED:
                line += " (skipped)"
            lines.append(line)
            for err in (result.error, result.reset_error):
                if err is not None:
                    lines.append(f"      {_describe(err)}")
        for title in self.not_run:
            lines.append(f"  ? {title} (not run)")

        counts = self.counts()
        totals = ", ".join(f"{n} {name}" for name, n in counts.items() if n)
        lines.append("")
        lines.append(totals or "no tests")
        if self.aborted:
            lines.append("Run aborted: state reset failed, isolation no longer guaranteed")
        return "\n".join(lines)
