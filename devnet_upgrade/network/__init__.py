"""
Interfaces to the live chain consumed by stage detection.
"""
from .base import (
    GovParams,
    NetworkStateClient,
    Proposal,
    ProposalStatus,
    ProposalVote,
    UpgradePlan,
)

__all__ = [
    "GovParams",
    "NetworkStateClient",
    "Proposal",
    "ProposalStatus",
    "ProposalVote",
    "UpgradePlan",
]
