"""
Error classification for upgrade state management.

This module provides the structured exception hierarchy used by the state
store, transitioner, detector and resume facade, so callers can match on
the kind of failure instead of parsing messages.
"""

from .state_failures import (
    UpgradeStateError,
    StateCorruptionError,
    InvalidTransitionError,
    UpgradeInProgressError,
    PersistenceError,
    DetectionError,
)
from .recovery import (
    UnrecoverableError,
    GracefulDegradationError,
)

__all__ = [
    # State failures
    "UpgradeStateError",
    "StateCorruptionError",
    "InvalidTransitionError",
    "UpgradeInProgressError",
    "PersistenceError",
    "DetectionError",
    # Recovery Categories
    "UnrecoverableError",
    "GracefulDegradationError",
]
