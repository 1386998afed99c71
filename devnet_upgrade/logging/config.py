"""
Centralized logging configuration for the upgrade state subsystem.

This module provides standardized logging configuration using structlog.
Components receive their logger through their constructor; the factories
below supply the defaults so every stage change and reconciliation decision
lands in the same structured audit trail.
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

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

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
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

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


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for stage transitions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the state machine audit trail
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="state_machine",
        audit_trail=True
    )


def get_reconcile_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for reconciliation decisions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the reconciliation audit trail
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="reconciliation",
        audit_trail=True
    )


def _stage_value(stage: Any) -> str:
    if stage is None:
        return ""
    return str(getattr(stage, "value", stage))


def log_state_transition(
    logger: FilteringBoundLogger,
    upgrade_name: str,
    from_stage: Any,
    to_stage: Any,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a stage transition with standardized format.

    Args:
        logger: Structlog logger instance
        upgrade_name: Name of the upgrade being tracked
        from_stage: Stage before the transition
        to_stage: Stage after the transition
        reason: Why the transition happened
        context: Additional context data
    """
    bound_logger = logger.bind(
        upgrade_name=upgrade_name,
        from_stage=_stage_value(from_stage),
        to_stage=_stage_value(to_stage),
        reason=reason,
        event_type="state_transition"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Stage transition")


def log_reconciliation(
    logger: FilteringBoundLogger,
    upgrade_name: str,
    saved_stage: Any,
    detected_stage: Any,
    applied: bool,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log the outcome of comparing the saved stage with the detected one.

    Args:
        logger: Structlog logger instance
        upgrade_name: Name of the upgrade being reconciled
        saved_stage: Stage read from the state file
        detected_stage: Stage derived from live chain observation
        applied: Whether the detected stage was written back
        context: Additional context data
    """
    bound_logger = logger.bind(
        upgrade_name=upgrade_name,
        saved_stage=_stage_value(saved_stage),
        detected_stage=_stage_value(detected_stage),
        reconcile_result="APPLIED" if applied else "KEPT",
        event_type="reconciliation"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if applied or saved_stage == detected_stage:
        bound_logger.info("Reconciliation")
    else:
        bound_logger.warning("Reconciliation skipped")
