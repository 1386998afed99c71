"""
Data models for resumable upgrade state.

This module defines the persisted record of an in-flight upgrade: the stage
enumeration, per-validator vote and per-node switch tracking, the append-only
stage history, and the camelCase JSON layout written to the state file.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils.time import format_timestamp, parse_timestamp, utc_now

CURRENT_SCHEMA_VERSION = 1

MODE_DOCKER = "docker"
MODE_LOCAL = "local"
VALID_MODES = (MODE_DOCKER, MODE_LOCAL)


class UpgradeStage(str, Enum):
    """Stages of the resumable upgrade workflow."""
    INITIALIZED = "Initialized"
    PROPOSAL_SUBMITTED = "ProposalSubmitted"
    VOTING = "Voting"
    WAITING_FOR_HEIGHT = "WaitingForHeight"
    CHAIN_HALTED = "ChainHalted"
    SWITCHING_BINARY = "SwitchingBinary"
    VERIFYING_RESUME = "VerifyingResume"
    COMPLETED = "Completed"
    FAILED = "Failed"
    PROPOSAL_REJECTED = "ProposalRejected"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Completed, Failed and ProposalRejected accept no further transitions."""
        return self in TERMINAL_STAGES


TERMINAL_STAGES = frozenset({
    UpgradeStage.COMPLETED,
    UpgradeStage.FAILED,
    UpgradeStage.PROPOSAL_REJECTED,
})


def _parse_stage(value: Any) -> Optional[UpgradeStage]:
    """Empty string on disk means "no stage" (seed history entry)."""
    if value is None or value == "":
        return None
    return UpgradeStage(value)


def _require_bool(data: dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be a boolean")
    return value


def _require_int(data: dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer")
    return value


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    return value


@dataclass
class ValidatorVote:
    """Governance vote status for a single validator."""
    address: str
    moniker: str = ""
    voted: bool = False
    tx_hash: str = ""
    timestamp: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "moniker": self.moniker,
            "voted": self.voted,
            "txHash": self.tx_hash,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidatorVote":
        return cls(
            address=_require_str(data, "address"),
            moniker=_require_str(data, "moniker"),
            voted=_require_bool(data, "voted"),
            tx_hash=_require_str(data, "txHash"),
            timestamp=parse_timestamp(data.get("timestamp")),
        )


@dataclass
class NodeSwitch:
    """Binary switch progress for a single node."""
    node_name: str
    switched: bool = False
    stopped: bool = False
    started: bool = False
    old_binary: str = ""
    new_binary: str = ""
    timestamp: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeName": self.node_name,
            "switched": self.switched,
            "stopped": self.stopped,
            "started": self.started,
            "oldBinary": self.old_binary,
            "newBinary": self.new_binary,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeSwitch":
        return cls(
            node_name=_require_str(data, "nodeName"),
            switched=_require_bool(data, "switched"),
            stopped=_require_bool(data, "stopped"),
            started=_require_bool(data, "started"),
            old_binary=_require_str(data, "oldBinary"),
            new_binary=_require_str(data, "newBinary"),
            timestamp=parse_timestamp(data.get("timestamp")),
        )


@dataclass
class StageTransition:
    """One audit entry in the stage history."""
    from_stage: Optional[UpgradeStage]
    to_stage: UpgradeStage
    timestamp: datetime
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_stage.value if self.from_stage else "",
            "to": self.to_stage.value,
            "timestamp": format_timestamp(self.timestamp),
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StageTransition":
        to_stage = _parse_stage(data.get("to"))
        if to_stage is None:
            raise ValueError("stage history entry is missing 'to'")
        timestamp = parse_timestamp(data.get("timestamp"))
        if timestamp is None:
            raise ValueError("stage history entry is missing 'timestamp'")
        return cls(
            from_stage=_parse_stage(data.get("from")),
            to_stage=to_stage,
            timestamp=timestamp,
            reason=_require_str(data, "reason"),
        )


@dataclass
class UpgradeState:
    """
    Complete persisted state of one upgrade attempt.

    upgrade_name, mode and skip_governance are fixed at creation. The stage,
    stage_history, updated_at and error fields change only through
    StateTransitioner.transition_to; checksum is derived by the store.
    """

    upgrade_name: str
    mode: str
    skip_governance: bool = False
    stage: Optional[UpgradeStage] = UpgradeStage.INITIALIZED
    schema_version: int = CURRENT_SCHEMA_VERSION
    checksum: str = ""

    # Governance / target parameters
    proposal_id: int = 0
    upgrade_height: int = 0
    target_binary: str = ""
    target_image: str = ""
    target_version: str = ""

    # Progress tracking
    validator_votes: list[ValidatorVote] = field(default_factory=list)
    node_switches: list[NodeSwitch] = field(default_factory=list)

    error: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    stage_history: list[StageTransition] = field(default_factory=list)

    @classmethod
    def create(cls, upgrade_name: str, mode: str, skip_governance: bool = False) -> "UpgradeState":
        """Start a new upgrade at Initialized with its seed history entry."""
        now = utc_now()
        return cls(
            upgrade_name=upgrade_name,
            mode=mode,
            skip_governance=skip_governance,
            stage=UpgradeStage.INITIALIZED,
            created_at=now,
            updated_at=now,
            stage_history=[
                StageTransition(
                    from_stage=None,
                    to_stage=UpgradeStage.INITIALIZED,
                    timestamp=now,
                    reason="upgrade initiated",
                )
            ],
        )

    def any_node_switched(self) -> bool:
        return any(ns.switched for ns in self.node_switches)

    def all_nodes_switched(self) -> bool:
        """True when at least one switch is recorded and every one completed."""
        return bool(self.node_switches) and all(ns.switched for ns in self.node_switches)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the state file layout."""
        return {
            "version": self.schema_version,
            "checksum": self.checksum,
            "upgradeName": self.upgrade_name,
            "stage": self.stage.value if self.stage else "",
            "mode": self.mode,
            "skipGovernance": self.skip_governance,
            "proposalID": self.proposal_id,
            "upgradeHeight": self.upgrade_height,
            "targetBinary": self.target_binary,
            "targetImage": self.target_image,
            "targetVersion": self.target_version,
            "validatorVotes": [vote.to_dict() for vote in self.validator_votes],
            "nodeSwitches": [ns.to_dict() for ns in self.node_switches],
            "error": self.error,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "stageHistory": [entry.to_dict() for entry in self.stage_history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UpgradeState":
        """
        Build state from the state file layout.

        Missing optional keys take their defaults so files written before a
        field existed still load. Invariants are not checked here; see
        StateStore.validate_state.

        Raises:
            ValueError, TypeError: If a field has the wrong shape or type
        """
        if not isinstance(data, dict):
            raise TypeError("state document must be a JSON object")

        votes = data.get("validatorVotes") or []
        switches = data.get("nodeSwitches") or []
        history = data.get("stageHistory") or []
        for key, value in (("validatorVotes", votes), ("nodeSwitches", switches),
                           ("stageHistory", history)):
            if not isinstance(value, list):
                raise TypeError(f"{key} must be a list")

        proposal_id = _require_int(data, "proposalID")
        if proposal_id < 0:
            raise ValueError("proposalID must not be negative")

        created_at = parse_timestamp(data.get("createdAt"))
        updated_at = parse_timestamp(data.get("updatedAt"))
        if created_at is None or updated_at is None:
            raise ValueError("createdAt and updatedAt are required")

        return cls(
            schema_version=_require_int(data, "version"),
            checksum=_require_str(data, "checksum"),
            upgrade_name=_require_str(data, "upgradeName"),
            stage=_parse_stage(data.get("stage")),
            mode=_require_str(data, "mode"),
            skip_governance=_require_bool(data, "skipGovernance"),
            proposal_id=proposal_id,
            upgrade_height=_require_int(data, "upgradeHeight"),
            target_binary=_require_str(data, "targetBinary"),
            target_image=_require_str(data, "targetImage"),
            target_version=_require_str(data, "targetVersion"),
            validator_votes=[ValidatorVote.from_dict(v) for v in votes],
            node_switches=[NodeSwitch.from_dict(ns) for ns in switches],
            error=_require_str(data, "error"),
            created_at=created_at,
            updated_at=updated_at,
            stage_history=[StageTransition.from_dict(entry) for entry in history],
        )
