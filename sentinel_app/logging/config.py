"""
Centralized logging configuration for the Crypto Sentinel system.

This module provides standardized logging configuration using structlog
for all components. Estimators, the decision engine and the delivery layer
all log through this configuration so that output is consistently structured.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    # Reports go to stdout, so logs go to stderr
    logging.basicConfig(
        level=log_level,
        stream=sys.stderr,
        format="%(message)s"
    )
    # basicConfig is a no-op once handlers exist; keep the level in sync
    logging.getLogger().setLevel(log_level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_decision_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for decision cascade auditing.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound with decision subsystem context
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="decision",
        audit_trail=True
    )


def log_stage_decision(
    logger: FilteringBoundLogger,
    stage: str,
    triggered: bool,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log one stage of the decision cascade with standardized format.

    Args:
        logger: Structlog logger instance
        stage: Name of the cascade stage (e.g. "leverage_breaker")
        triggered: Whether the stage decided the outcome
        reason: Detailed reason for the decision
        context: Additional context data
    """
    bound_logger = logger.bind(
        stage=stage,
        stage_result="TRIGGERED" if triggered else "PASSED",
        reason=reason,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if triggered:
        bound_logger.info("Decision stage triggered")
    else:
        bound_logger.debug("Decision stage passed")
