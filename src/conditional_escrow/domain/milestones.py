"""Milestone registry.

Milestones are immutable records replaced by key; callers only ever receive
copies. There is no deletion: milestones accumulate for the life of the
contract.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from conditional_escrow.domain.exceptions import (
    AlreadyVerifiedError,
    MilestoneNotFoundError,
)


@dataclass(frozen=True)
class Milestone:
    """A named condition attested by a registered verifier.

    Attributes:
        id: Unique within the contract.
        description: Free text supplied by the seller.
        verified: Set once, never reverted.
        verifier: The author until verified, then the attesting verifier.
        verified_at: 0 until verified.
    """

    id: int
    description: str
    verified: bool = False
    verifier: str | None = None
    verified_at: int = 0


class MilestoneRegistry:
    """Owns the mapping from milestone id to Milestone."""

    def __init__(self) -> None:
        self._milestones: dict[int, Milestone] = {}

    def __contains__(self, milestone_id: object) -> bool:
        return milestone_id in self._milestones

    def __len__(self) -> int:
        return len(self._milestones)

    def get(self, milestone_id: int) -> Milestone | None:
        return self._milestones.get(milestone_id)

    def all(self) -> list[Milestone]:
        return list(self._milestones.values())

    def check_add(self, milestone_id: int) -> None:
        if milestone_id in self._milestones:
            raise AlreadyVerifiedError(
                milestone_id, f"Milestone id already exists: {milestone_id}"
            )

    def add(self, milestone_id: int, description: str, author: str) -> Milestone:
        """Insert a new unverified milestone.

        Raises:
            AlreadyVerifiedError: If the id is already present.
        """
        self.check_add(milestone_id)
        milestone = Milestone(id=milestone_id, description=description, verifier=author)
        self._milestones[milestone_id] = milestone
        return milestone

    def check_verify(self, milestone_id: int) -> Milestone:
        milestone = self._milestones.get(milestone_id)
        if milestone is None:
            raise MilestoneNotFoundError(milestone_id)
        if milestone.verified:
            raise AlreadyVerifiedError(milestone_id)
        return milestone

    def mark_verified(self, milestone_id: int, verifier: str, now: int) -> Milestone:
        """Record a verification write.

        Raises:
            MilestoneNotFoundError: If the milestone is absent.
            AlreadyVerifiedError: If it was already verified.
        """
        milestone = replace(
            self.check_verify(milestone_id),
            verified=True,
            verifier=verifier,
            verified_at=now,
        )
        self._milestones[milestone_id] = milestone
        return milestone

    def all_verified(self) -> bool:
        """True iff every stored milestone is verified (vacuously True when empty)."""
        return all(m.verified for m in self._milestones.values())
