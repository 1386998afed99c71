"""
Upgrade stage tracking.

Models for the persisted upgrade record, the stage transition graph and
live-chain stage detection.
"""

from .detector import StateDetector
from .models import (
    TERMINAL_STAGES,
    NodeSwitch,
    StageTransition,
    UpgradeStage,
    UpgradeState,
    ValidatorVote,
)
from .transitions import StateTransitioner

__all__ = [
    "NodeSwitch",
    "StageTransition",
    "StateDetector",
    "StateTransitioner",
    "TERMINAL_STAGES",
    "UpgradeStage",
    "UpgradeState",
    "ValidatorVote",
]
