"""Pydantic schemas for serializable escrow views."""

from conditional_escrow.schemas.escrow import (
    DisputeView,
    EscrowSnapshot,
    FundMovementView,
    MilestoneView,
    VoteView,
)

__all__ = [
    "DisputeView",
    "EscrowSnapshot",
    "FundMovementView",
    "MilestoneView",
    "VoteView",
]
