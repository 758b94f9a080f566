"""Pydantic schemas for read-only escrow views.

These schemas define the serializable shapes handed to collaborators
(settlement, dashboards, storage). They are separate from the frozen domain
records so the domain layer stays free of framework imports.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from conditional_escrow.domain.enums import ArbitrationMode, EscrowState


class MilestoneView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    verified: bool
    verifier: str | None = None
    verified_at: int = Field(default=0, description="0 until the milestone is verified")


class VoteView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    voter: str
    favors_buyer: bool


class DisputeView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    active: bool
    votes_for_buyer: int
    votes_for_seller: int
    resolved: bool
    resolution: bool = Field(description="True when the resolution favors the buyer")
    votes: list[VoteView] = Field(default_factory=list)


class FundMovementView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount: int = Field(..., gt=0)
    source: str
    destination: str


class EscrowSnapshot(BaseModel):
    """Full read-only view of one escrow."""

    model_config = ConfigDict(from_attributes=True)

    escrow_id: str
    state: EscrowState
    state_code: int
    buyer: str | None = None
    seller: str | None = None
    amount: int
    deposit_deadline: int
    verification_deadline: int
    property_reference: str | None = None
    oracle_authority: str | None = None
    arbitrator_authority: str | None = None
    refund_percentage: int = Field(..., ge=0, le=100)
    arbitration_mode: ArbitrationMode
    vote_threshold: int
    milestones: list[MilestoneView] = Field(default_factory=list)
    disputes: list[DisputeView] = Field(default_factory=list)
    ledger: list[FundMovementView] = Field(default_factory=list)
