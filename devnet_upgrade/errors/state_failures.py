"""
Failure classifications for persisted upgrade state.

Corruption and lock contention stop an automatic resume and need an
operator; detection failures only degrade reconciliation accuracy.
"""

from typing import Any, Dict, Optional

from .recovery import GracefulDegradationError, UnrecoverableError


def _stage_name(stage: Any) -> str:
    if stage is None:
        return ""
    return str(getattr(stage, "value", stage))


class UpgradeStateError(Exception):
    """Base class for upgrade state failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class StateCorruptionError(UpgradeStateError, UnrecoverableError):
    """State file is unreadable JSON, fails its checksum, or breaks an invariant."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(f"upgrade state file is corrupted: {reason}", **kwargs)
        self.reason = reason


class InvalidTransitionError(UpgradeStateError):
    """A stage change outside the transition graph was requested."""

    def __init__(self, from_stage: Any, to_stage: Any, **kwargs):
        super().__init__(
            f"invalid state transition from {_stage_name(from_stage)} to {_stage_name(to_stage)}",
            **kwargs
        )
        self.from_stage = from_stage
        self.to_stage = to_stage


class UpgradeInProgressError(UpgradeStateError, UnrecoverableError):
    """Another process holds the upgrade lock."""

    def __init__(self, upgrade_name: str = "", stage: Any = None, **kwargs):
        if upgrade_name:
            message = (
                f"another upgrade is in progress: {upgrade_name} "
                f"(stage: {_stage_name(stage)})"
            )
        else:
            message = "another upgrade is in progress (could not acquire lock)"
        super().__init__(message, **kwargs)
        self.upgrade_name = upgrade_name
        self.stage = stage


class PersistenceError(UpgradeStateError):
    """File system failure while reading or writing upgrade state."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class DetectionError(GracefulDegradationError):
    """Live chain state could not be observed."""

    def __init__(self, message: str, status: str = "unknown", **kwargs):
        super().__init__(
            message,
            degraded_functionality="stage_detection",
            fallback_strategy="saved_stage",
            **kwargs
        )
        self.status = status
