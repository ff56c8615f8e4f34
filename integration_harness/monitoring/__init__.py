"""
Observability for the integration harness.

Components:
    StructuredLogger - JSON structured logging

Example:
    from integration_harness.monitoring import configure_logging

    logger = configure_logging(level="debug", json_format=False)
    logger.info("run_start", suite="node integration")
"""

from integration_harness.monitoring.logging import (
    StructuredLogger,
    LogLevel,
    LogRecord,
    configure_logging,
    get_logger,
)

__all__ = [
    "StructuredLogger",
    "LogLevel",
    "LogRecord",
    "configure_logging",
    "get_logger",
]
