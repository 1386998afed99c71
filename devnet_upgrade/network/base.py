"""Base classes for the network-state collaborator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class ProposalStatus(str, Enum):
    """Governance proposal status as reported by the chain."""
    PENDING = "PROPOSAL_STATUS_DEPOSIT_PERIOD"
    VOTING = "PROPOSAL_STATUS_VOTING_PERIOD"
    PASSED = "PROPOSAL_STATUS_PASSED"
    REJECTED = "PROPOSAL_STATUS_REJECTED"
    FAILED = "PROPOSAL_STATUS_FAILED"


@dataclass
class Proposal:
    """Governance proposal snapshot."""
    id: int
    status: ProposalStatus
    title: str = ""
    description: str = ""
    submit_time: Optional[datetime] = None
    deposit_end_time: Optional[datetime] = None
    voting_end_time: Optional[datetime] = None
    total_deposit: str = ""
    final_tally_yes: str = ""
    final_tally_no: str = ""
    final_tally_abstain: str = ""


@dataclass
class ProposalVote:
    """A single vote cast on a proposal."""
    voter: str
    option: str = ""
    moniker: str = ""
    tx_hash: str = ""
    timestamp: Optional[datetime] = None


@dataclass
class UpgradePlan:
    """Software upgrade scheduled on chain."""
    name: str
    height: int
    info: str = ""
    time: Optional[datetime] = None


@dataclass
class GovParams:
    """Governance module parameters."""
    voting_period: timedelta
    expedited_voting_period: Optional[timedelta] = None
    min_deposit: str = ""
    expedited_min_deposit: str = ""


class NetworkStateClient(ABC):
    """
    Read-only view of a running chain.

    Implementations wrap the node RPC / REST endpoints. Query methods raise
    on transport or decoding failures; is_chain_running never raises.
    """

    @abstractmethod
    def get_block_height(self) -> int:
        """Return the latest block height."""
        pass

    @abstractmethod
    def get_block_time(self, sample_size: int) -> timedelta:
        """Estimate the average block time over the last `sample_size` blocks."""
        pass

    @abstractmethod
    def is_chain_running(self) -> bool:
        """Check whether the node answers at all."""
        pass

    @abstractmethod
    def wait_for_block(self, height: int) -> None:
        """Block until the chain reaches `height`."""
        pass

    @abstractmethod
    def get_proposal(self, proposal_id: int) -> Proposal:
        """Fetch a governance proposal by id."""
        pass

    @abstractmethod
    def get_proposal_votes(self, proposal_id: int) -> list[ProposalVote]:
        """List votes recorded on a proposal."""
        pass

    @abstractmethod
    def get_upgrade_plan(self) -> Optional[UpgradePlan]:
        """Return the currently scheduled upgrade plan, if any."""
        pass

    @abstractmethod
    def get_app_version(self) -> str:
        """Application version from ABCI info; empty when unset."""
        pass

    @abstractmethod
    def get_gov_params(self) -> GovParams:
        """Fetch governance parameters."""
        pass
