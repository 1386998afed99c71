"""
Logging configuration and utilities for the upgrade state subsystem.
"""
from .config import (
    configure_logging,
    get_logger,
    get_reconcile_logger,
    get_state_logger,
    log_reconciliation,
    log_state_transition,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "get_reconcile_logger",
    "get_state_logger",
    "log_reconciliation",
    "log_state_transition",
]
