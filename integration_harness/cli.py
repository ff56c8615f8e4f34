"""
CLI - Command-line interface.

Thin wrapper over gate + registry + runner. A bootstrap module supplies
the host bindings:

    # bootstrap_node.py
    def harness_config():
        return HarnessConfig(database=..., title="Node.js", fs=..., environment={...})

    TEST_MODULES = ["tests_integration.realm_constructor"]

    $ integration-harness run bootstrap_node.py --log-format text
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_LOAD_ERROR = 2


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="integration-harness",
        description="Cross-environment integration-test harness",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the integration suite")
    run_parser.add_argument(
        "bootstrap",
        help="Bootstrap module (dotted name or .py path) defining harness_config()",
    )
    run_parser.add_argument(
        "-m", "--module",
        action="append",
        default=[],
        help="Child test module to include (repeatable, after TEST_MODULES)",
    )
    run_parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    run_parser.add_argument("--log-level", help="Structured log level (default: info)")
    run_parser.add_argument("--log-format", choices=["json", "text"], help="Structured log format")
    run_parser.add_argument("--fail-fast", action="store_true", help="Stop after the first failure")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return EXIT_OK

    if parsed.command == "version":
        from integration_harness import __version__
        print(f"integration-harness {__version__}")
        return EXIT_OK

    if parsed.command == "run":
        return _cmd_run(parsed)

    return EXIT_FAILED


def _cmd_run(args: argparse.Namespace) -> int:
    """Handle run command."""
    from integration_harness.capabilities import start_harness
    from integration_harness.config import HarnessSettings
    from integration_harness.errors import HarnessError
    from integration_harness.lifecycle import install_state_reset
    from integration_harness.monitoring.logging import configure_logging
    from integration_harness.runner import SequentialRunner
    from integration_harness.suite import load_module

    try:
        settings = HarnessSettings.from_env()
        settings = replace(
            settings,
            log_level=args.log_level or settings.log_level,
            log_format=args.log_format or settings.log_format,
            fail_fast=args.fail_fast or settings.fail_fast,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR

    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    try:
        bootstrap = load_module(_bootstrap_target(args.bootstrap))
        factory = getattr(bootstrap, "harness_config", None)
        if not callable(factory):
            print(f"Error: {args.bootstrap} has no harness_config() function", file=sys.stderr)
            return EXIT_LOAD_ERROR

        context = start_harness(factory())
        install_state_reset(context)

        for module in list(getattr(bootstrap, "TEST_MODULES", [])) + args.module:
            context.include(module)
    except HarnessError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR

    report = SequentialRunner(settings).run(context)

    if args.json:
        print(report.to_json())
    else:
        print(report.format_summary())

    return EXIT_OK if report.passed else EXIT_FAILED


def _bootstrap_target(value: str) -> str | Path:
    return Path(value) if value.endswith(".py") else value


if __name__ == "__main__":
    sys.exit(main())
