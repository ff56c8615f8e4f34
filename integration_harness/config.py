"""
Harness configuration.

Two structs:
    HarnessConfig   - the capability bindings supplied by the host
    HarnessSettings - runner and logging knobs
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Literal


@dataclass
class HarnessConfig:
    """Capability bindings supplied by the host process.

    Any field may be left as None; the capability gate decides whether
    the configuration is complete.

    Args:
        database: Database collaborator exposing clear_test_state().
        title: Name of the root suite.
        fs: Filesystem shim handed to test modules.
        environment: Descriptor of the current execution context.

    Example:
        config = HarnessConfig(
            database=realm_binding,
            title="Node.js integration",
            fs=LocalFilesystem(),
            environment={"platform": "node", "runtime": "cpython"},
        )
    """

    database: Any = None
    title: str | None = None
    fs: Any = None
    environment: Any = None

    def as_bindings(self) -> dict[str, Any]:
        """Bindings keyed by capability name."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class HarnessSettings:
    """Runner and logging settings.

    Args:
        log_level: Minimum structured log level.
        log_format: "json" for JSON lines, "text" for human-readable.
        fail_fast: Stop scheduling tests after the first failure.
        stop_on_reset_failure: Abort the run when a state reset fails.
    """

    log_level: str = "info"
    """Minimum log level."""

    log_format: Literal["json", "text"] = "json"
    """Structured log output format."""

    fail_fast: bool = False
    """Stop after the first FAILED or ERROR test."""

    stop_on_reset_failure: bool = True
    """A failed reset invalidates isolation for the rest of the run."""

    def __post_init__(self) -> None:
        """Validate settings."""
        self.log_level = self.log_level.lower()
        if self.log_level not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError(f"Unknown log_level: {self.log_level}")
        if self.log_format not in ("json", "text"):
            raise ValueError(f"log_format must be 'json' or 'text', got {self.log_format!r}")

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "HarnessSettings":
        """Build settings from INTEGRATION_HARNESS_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            log_level=env.get("INTEGRATION_HARNESS_LOG_LEVEL", "info"),
            log_format=env.get("INTEGRATION_HARNESS_LOG_FORMAT", "json"),
            fail_fast=env.get("INTEGRATION_HARNESS_FAIL_FAST", "").lower() in _TRUTHY,
        )
