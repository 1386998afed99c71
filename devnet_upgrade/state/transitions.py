"""
Stage transition graph for resumable upgrades.

This module is the single authority on which stage changes are legal and
how they are recorded in an UpgradeState's history.
"""

from typing import Optional

from structlog.types import FilteringBoundLogger

from ..errors import InvalidTransitionError
from ..logging.config import get_state_logger, log_state_transition
from ..utils.time import advance_timestamp
from .models import TERMINAL_STAGES, StageTransition, UpgradeStage, UpgradeState

S = UpgradeStage

GOVERNANCE_PATH = (
    S.INITIALIZED,
    S.PROPOSAL_SUBMITTED,
    S.VOTING,
    S.WAITING_FOR_HEIGHT,
    S.CHAIN_HALTED,
    S.SWITCHING_BINARY,
    S.VERIFYING_RESUME,
    S.COMPLETED,
)

SKIP_GOVERNANCE_PATH = (
    S.INITIALIZED,
    S.SWITCHING_BINARY,
    S.VERIFYING_RESUME,
    S.COMPLETED,
)


def _successors(path: tuple[UpgradeStage, ...]) -> dict[UpgradeStage, UpgradeStage]:
    return {path[i]: path[i + 1] for i in range(len(path) - 1)}


def build_transition_map() -> dict[UpgradeStage, tuple[UpgradeStage, ...]]:
    """
    Build the static transition graph.

    Both paths are merged, Voting may end in ProposalRejected, every
    non-terminal stage may fail, and terminal stages have no edges.
    """
    edges: dict[UpgradeStage, list[UpgradeStage]] = {stage: [] for stage in UpgradeStage}

    for path in (GOVERNANCE_PATH, SKIP_GOVERNANCE_PATH):
        for src, dst in _successors(path).items():
            if dst not in edges[src]:
                edges[src].append(dst)

    edges[S.VOTING].append(S.PROPOSAL_REJECTED)

    for stage in UpgradeStage:
        if stage not in TERMINAL_STAGES:
            edges[stage].append(S.FAILED)

    for stage in TERMINAL_STAGES:
        edges[stage] = []

    return {stage: tuple(targets) for stage, targets in edges.items()}


class StateTransitioner:
    """Validates stage changes and records them in the stage history."""

    def __init__(self, logger: Optional[FilteringBoundLogger] = None):
        self.logger = logger or get_state_logger(__name__)
        self._valid_transitions = build_transition_map()
        self._gov_next = _successors(GOVERNANCE_PATH)
        self._skip_gov_next = _successors(SKIP_GOVERNANCE_PATH)

    def can_transition(self, from_stage: Optional[UpgradeStage], to_stage: UpgradeStage) -> bool:
        """Check whether `from_stage -> to_stage` is an edge of the graph."""
        if from_stage is None:
            return False
        return to_stage in self._valid_transitions.get(from_stage, ())

    def transition_to(self, state: Optional[UpgradeState], to_stage: UpgradeStage, reason: str) -> None:
        """
        Move a state to a new stage and record the change.

        Args:
            state: State to mutate in place
            to_stage: Target stage
            reason: Human-readable cause, stored in the history entry

        Raises:
            InvalidTransitionError: If state is None or the edge is not legal;
                the state is left untouched
        """
        if state is None:
            raise InvalidTransitionError(None, to_stage)

        from_stage = state.stage
        if not self.can_transition(from_stage, to_stage):
            self.logger.warning(
                "Rejected stage transition",
                upgrade_name=state.upgrade_name,
                from_stage=str(from_stage or ""),
                to_stage=str(to_stage),
                reason=reason
            )
            raise InvalidTransitionError(from_stage, to_stage)

        now = advance_timestamp(state.updated_at)
        state.stage_history.append(StageTransition(
            from_stage=from_stage,
            to_stage=to_stage,
            timestamp=now,
            reason=reason,
        ))
        state.stage = to_stage
        state.updated_at = now

        if to_stage == S.FAILED:
            state.error = reason

        log_state_transition(
            self.logger,
            upgrade_name=state.upgrade_name,
            from_stage=from_stage,
            to_stage=to_stage,
            reason=reason,
            context={"history_length": len(state.stage_history)}
        )

    def get_valid_transitions(self, from_stage: UpgradeStage) -> list[UpgradeStage]:
        """All targets reachable in one hop, regardless of skip_governance."""
        return list(self._valid_transitions.get(from_stage, ()))

    def get_next_stage_for_gov_path(self, current: UpgradeStage) -> Optional[UpgradeStage]:
        return self._gov_next.get(current)

    def get_next_stage_for_skip_gov_path(self, current: UpgradeStage) -> Optional[UpgradeStage]:
        return self._skip_gov_next.get(current)

    def get_next_stage(self, state: UpgradeState) -> Optional[UpgradeStage]:
        """Next stage along the path selected by the state's skip_governance flag."""
        if state.stage is None:
            return None
        if self.is_governance_required(state):
            return self.get_next_stage_for_gov_path(state.stage)
        return self.get_next_stage_for_skip_gov_path(state.stage)

    @staticmethod
    def is_terminal(stage: Optional[UpgradeStage]) -> bool:
        return stage in TERMINAL_STAGES

    @staticmethod
    def is_governance_required(state: UpgradeState) -> bool:
        return not state.skip_governance
