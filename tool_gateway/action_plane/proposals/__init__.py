"""Proposals - the human-confirmation workflow for risky calls."""

from .manager import ProposalManager
from .store import ProposalStore

__all__ = ["ProposalManager", "ProposalStore"]
