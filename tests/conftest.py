"""Pytest configuration and shared fixtures."""

from datetime import timedelta
from typing import Optional

import pytest

from devnet_upgrade.config.defaults import DetectorParams
from devnet_upgrade.network.base import (
    GovParams,
    NetworkStateClient,
    Proposal,
    ProposalStatus,
    ProposalVote,
    UpgradePlan,
)
from devnet_upgrade.persistence.state_store import StateStore
from devnet_upgrade.state.detector import StateDetector
from devnet_upgrade.state.models import MODE_DOCKER, UpgradeState
from devnet_upgrade.state.transitions import StateTransitioner


class FakeNetworkStateClient(NetworkStateClient):
    """
    Scriptable chain for detector and resume tests.

    `heights` is consumed one value per get_block_height call; the last value
    repeats once the list is exhausted, so [100] models a halted chain and
    [100, 101] a running one.
    """

    def __init__(
        self,
        heights: Optional[list[int]] = None,
        running: bool = True,
        proposals: Optional[dict[int, ProposalStatus]] = None,
        votes: Optional[dict[int, list[ProposalVote]]] = None,
        proposal_error: Optional[Exception] = None,
        height_error: Optional[Exception] = None,
    ):
        self.heights = list(heights or [100])
        self.running = running
        self.proposals = proposals or {}
        self.votes = votes or {}
        self.proposal_error = proposal_error
        self.height_error = height_error
        self.height_calls = 0
        self.proposal_calls = 0

    def get_block_height(self) -> int:
        self.height_calls += 1
        if self.height_error is not None:
            raise self.height_error
        if len(self.heights) > 1:
            return self.heights.pop(0)
        return self.heights[0]

    def get_block_time(self, sample_size: int) -> timedelta:
        return timedelta(seconds=1)

    def is_chain_running(self) -> bool:
        return self.running

    def wait_for_block(self, height: int) -> None:
        self.heights = [height]

    def get_proposal(self, proposal_id: int) -> Proposal:
        self.proposal_calls += 1
        if self.proposal_error is not None:
            raise self.proposal_error
        if proposal_id not in self.proposals:
            raise LookupError(f"proposal {proposal_id} not found")
        return Proposal(id=proposal_id, status=self.proposals[proposal_id])

    def get_proposal_votes(self, proposal_id: int) -> list[ProposalVote]:
        if self.proposal_error is not None:
            raise self.proposal_error
        return list(self.votes.get(proposal_id, []))

    def get_upgrade_plan(self) -> Optional[UpgradePlan]:
        return None

    def get_app_version(self) -> str:
        return ""

    def get_gov_params(self) -> GovParams:
        return GovParams(voting_period=timedelta(minutes=1))


@pytest.fixture
def home_dir(tmp_path):
    """Deployment home directory for one test."""
    home = tmp_path / "devnet"
    home.mkdir()
    return home


@pytest.fixture
def store(home_dir) -> StateStore:
    return StateStore(home_dir)


@pytest.fixture
def transitioner() -> StateTransitioner:
    return StateTransitioner()


@pytest.fixture
def fake_client() -> FakeNetworkStateClient:
    return FakeNetworkStateClient()


@pytest.fixture
def detector(fake_client) -> StateDetector:
    # Tiny sampling window keeps chain status checks fast
    return StateDetector(fake_client, DetectorParams(chain_sample_seconds=0.01))


@pytest.fixture
def fresh_state() -> UpgradeState:
    return UpgradeState.create("v2-upgrade", MODE_DOCKER)


@pytest.fixture
def client_factory():
    """Build a FakeNetworkStateClient with per-test chain behaviour."""
    return FakeNetworkStateClient
