"""Dispute registry and vote accumulation.

Dispute ids are one-shot: once opened, an id can never be reopened, even after
resolution. Votes are keyed per dispute (single arbitrator) or per
(dispute, voter) (committee); see ArbitrationMode.

Resolution rule:
    votes_for_buyer + votes_for_seller >= threshold  ->  resolved
    resolution = votes_for_buyer > votes_for_seller  (a tie favors the seller)
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from conditional_escrow.domain.enums import ArbitrationMode
from conditional_escrow.domain.exceptions import (
    DisputeActiveError,
    NoDisputeError,
    VoteAlreadyCastError,
)

DEFAULT_VOTE_THRESHOLD = 3


@dataclass(frozen=True)
class Dispute:
    id: int
    active: bool = True
    votes_for_buyer: int = 0
    votes_for_seller: int = 0
    resolved: bool = False
    resolution: bool = False

    @property
    def total_votes(self) -> int:
        return self.votes_for_buyer + self.votes_for_seller


@dataclass(frozen=True)
class VoteRecord:
    voter: str
    favors_buyer: bool


@dataclass(frozen=True)
class VoteOutcome:
    """Result of a successful vote.

    Attributes:
        resolved: False while the dispute is still pending.
        favors_buyer: The frozen resolution; only meaningful once resolved.
    """

    resolved: bool
    favors_buyer: bool = False

    @classmethod
    def pending(cls) -> VoteOutcome:
        return cls(resolved=False)


class DisputeRegistry:
    """Owns disputes and their vote records."""

    def __init__(
        self,
        threshold: int = DEFAULT_VOTE_THRESHOLD,
        mode: ArbitrationMode = ArbitrationMode.COMMITTEE,
    ) -> None:
        if threshold < 1:
            raise ValueError(f"Vote threshold must be at least 1, got {threshold}")
        self.threshold = threshold
        self.mode = mode
        self._disputes: dict[int, Dispute] = {}
        self._votes: dict[int, dict[str, VoteRecord]] = {}

    def __contains__(self, dispute_id: object) -> bool:
        return dispute_id in self._disputes

    def get(self, dispute_id: int) -> Dispute | None:
        return self._disputes.get(dispute_id)

    def all(self) -> list[Dispute]:
        return list(self._disputes.values())

    def votes(self, dispute_id: int) -> list[VoteRecord]:
        """Return the recorded votes for a dispute in casting order."""
        return list(self._votes.get(dispute_id, {}).values())

    def check_open(self, dispute_id: int) -> None:
        if dispute_id in self._disputes:
            raise DisputeActiveError(dispute_id)

    def open(self, dispute_id: int) -> Dispute:
        """Open a new dispute.

        Raises:
            DisputeActiveError: If the id was ever used, resolved or not.
        """
        self.check_open(dispute_id)
        dispute = Dispute(id=dispute_id)
        self._disputes[dispute_id] = dispute
        self._votes[dispute_id] = {}
        return dispute

    def check_vote(self, dispute_id: int, voter: str) -> Dispute:
        dispute = self._disputes.get(dispute_id)
        if dispute is None or not dispute.active:
            raise NoDisputeError(dispute_id)
        cast = self._votes[dispute_id]
        if self.mode is ArbitrationMode.SINGLE:
            already_cast = bool(cast)
        else:
            already_cast = voter in cast
        if already_cast:
            raise VoteAlreadyCastError(dispute_id, voter)
        return dispute

    def record_vote(self, dispute_id: int, voter: str, favors_buyer: bool) -> VoteOutcome:
        """Record a vote and resolve the dispute once the threshold is reached.

        Raises:
            NoDisputeError: If the dispute is absent or no longer active.
            VoteAlreadyCastError: If the vote slot is already taken.
        """
        dispute = self.check_vote(dispute_id, voter)
        self._votes[dispute_id][voter] = VoteRecord(voter=voter, favors_buyer=favors_buyer)

        if favors_buyer:
            dispute = replace(dispute, votes_for_buyer=dispute.votes_for_buyer + 1)
        else:
            dispute = replace(dispute, votes_for_seller=dispute.votes_for_seller + 1)

        if dispute.total_votes < self.threshold:
            self._disputes[dispute_id] = dispute
            return VoteOutcome.pending()

        resolution = dispute.votes_for_buyer > dispute.votes_for_seller
        self._disputes[dispute_id] = replace(
            dispute, resolved=True, active=False, resolution=resolution
        )
        return VoteOutcome(resolved=True, favors_buyer=resolution)
