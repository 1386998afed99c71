"""
Live chain observation for resume reconciliation.

The detector maps what the chain currently reports (proposal status, block
production) onto an upgrade stage. Detection is best-effort: when the chain
cannot be queried, detect_current_stage falls back to the saved stage rather
than blocking a resume.
"""

import threading
from typing import Optional

from structlog.types import FilteringBoundLogger

from ..config.defaults import DetectorParams
from ..errors import DetectionError
from ..logging.config import get_reconcile_logger
from ..network.base import NetworkStateClient, ProposalStatus
from .models import UpgradeStage, UpgradeState, ValidatorVote

CHAIN_RUNNING = "running"
CHAIN_HALTED = "halted"
CHAIN_UNREACHABLE = "unreachable"

PROPOSAL_UNKNOWN = "unknown"

_PROPOSAL_STATUS_NAMES = {
    ProposalStatus.VOTING: "voting",
    ProposalStatus.PASSED: "passed",
    ProposalStatus.REJECTED: "rejected",
    ProposalStatus.FAILED: "failed",
    ProposalStatus.PENDING: "pending",
}

_STAGE_FOR_PROPOSAL_STATUS = {
    "pending": UpgradeStage.PROPOSAL_SUBMITTED,
    "voting": UpgradeStage.VOTING,
    "rejected": UpgradeStage.PROPOSAL_REJECTED,
    "failed": UpgradeStage.FAILED,
}


class StateDetector:
    """Derives the actual upgrade stage from a NetworkStateClient."""

    def __init__(
        self,
        client: NetworkStateClient,
        params: Optional[DetectorParams] = None,
        logger: Optional[FilteringBoundLogger] = None
    ):
        self.client = client
        self.params = params or DetectorParams()
        self.logger = logger or get_reconcile_logger(__name__)

    def detect_proposal_status(self, proposal_id: int) -> str:
        """
        Query governance for a proposal's status.

        Returns:
            One of "voting", "passed", "rejected", "failed", "pending",
            or "unknown" for a status this module does not recognise

        Raises:
            DetectionError: If proposal_id is 0 or the query fails
        """
        if proposal_id == 0:
            raise DetectionError("invalid proposal ID: 0", status=PROPOSAL_UNKNOWN)

        try:
            proposal = self.client.get_proposal(proposal_id)
        except Exception as e:
            raise DetectionError(
                f"failed to get proposal {proposal_id}: {e}",
                status=PROPOSAL_UNKNOWN
            ) from e

        try:
            status = ProposalStatus(proposal.status)
        except ValueError:
            return PROPOSAL_UNKNOWN
        return _PROPOSAL_STATUS_NAMES.get(status, PROPOSAL_UNKNOWN)

    def detect_chain_status(self, cancel: Optional[threading.Event] = None) -> str:
        """
        Check whether the chain is producing blocks.

        Samples the block height twice across chain_sample_seconds. Setting
        `cancel` during the window stops waiting at once; the chain is then
        reported halted since no progress was observed.

        Returns:
            "running", "halted" or "unreachable"
        """
        if not self.client.is_chain_running():
            return CHAIN_UNREACHABLE

        try:
            first_height = self.client.get_block_height()
        except Exception as e:
            self.logger.warning("Block height query failed", error=str(e))
            return CHAIN_UNREACHABLE

        waiter = cancel or threading.Event()
        if waiter.wait(self.params.chain_sample_seconds):
            self.logger.info("Chain status sampling cancelled", height=first_height)
            return CHAIN_HALTED

        try:
            second_height = self.client.get_block_height()
        except Exception as e:
            self.logger.warning("Block height query failed", error=str(e))
            return CHAIN_UNREACHABLE

        if second_height <= first_height:
            return CHAIN_HALTED
        return CHAIN_RUNNING

    def detect_validator_votes(self, proposal_id: int) -> list[ValidatorVote]:
        """
        List per-validator votes recorded on chain for a proposal.

        A vote without a transaction hash is reported with voted=False so the
        result always satisfies the ValidatorVote invariant.

        Raises:
            DetectionError: If proposal_id is 0 or the query fails
        """
        if proposal_id == 0:
            raise DetectionError("invalid proposal ID: 0")

        try:
            votes = self.client.get_proposal_votes(proposal_id)
        except Exception as e:
            raise DetectionError(f"failed to get votes for proposal {proposal_id}: {e}") from e

        return [
            ValidatorVote(
                address=vote.voter,
                moniker=vote.moniker,
                voted=bool(vote.tx_hash),
                tx_hash=vote.tx_hash,
                timestamp=vote.timestamp,
            )
            for vote in votes
        ]

    def detect_current_stage(
        self,
        state: Optional[UpgradeState],
        cancel: Optional[threading.Event] = None
    ) -> UpgradeStage:
        """
        Determine the stage the upgrade has actually reached.

        Args:
            state: Saved upgrade state
            cancel: Optional event that aborts chain sampling

        Returns:
            Detected stage; the saved stage when the chain cannot be queried

        Raises:
            DetectionError: If state is None
        """
        if state is None:
            raise DetectionError("cannot detect stage: state is None")

        if state.proposal_id == 0:
            if state.node_switches:
                return UpgradeStage.SWITCHING_BINARY
            return UpgradeStage.INITIALIZED

        try:
            proposal_status = self.detect_proposal_status(state.proposal_id)
        except DetectionError as e:
            self.logger.warning(
                "Proposal status unavailable, trusting saved stage",
                upgrade_name=state.upgrade_name,
                proposal_id=state.proposal_id,
                saved_stage=str(state.stage or ""),
                error=str(e)
            )
            return state.stage

        if proposal_status == "passed":
            return self._detect_post_passed_stage(state, cancel)

        stage = _STAGE_FOR_PROPOSAL_STATUS.get(proposal_status)
        if stage is None:
            return state.stage
        return stage

    def _detect_post_passed_stage(
        self,
        state: UpgradeState,
        cancel: Optional[threading.Event]
    ) -> UpgradeStage:
        """Place a passed proposal relative to the upgrade height."""
        if state.upgrade_height == 0:
            return UpgradeStage.WAITING_FOR_HEIGHT

        chain_status = self.detect_chain_status(cancel)

        if chain_status == CHAIN_HALTED:
            return UpgradeStage.CHAIN_HALTED

        if chain_status == CHAIN_UNREACHABLE:
            # A node that stops answering while waiting has most likely halted
            if state.stage == UpgradeStage.WAITING_FOR_HEIGHT:
                return UpgradeStage.CHAIN_HALTED
            return state.stage

        try:
            current_height = self.client.get_block_height()
        except Exception as e:
            self.logger.warning("Block height query failed", error=str(e))
            return state.stage

        if current_height < state.upgrade_height:
            return UpgradeStage.WAITING_FOR_HEIGHT

        if state.all_nodes_switched():
            return UpgradeStage.VERIFYING_RESUME
        return UpgradeStage.SWITCHING_BINARY
