"""Domain layer — pure escrow logic with zero framework dependencies."""

from conditional_escrow.domain.authorization import RoleSnapshot, authorize
from conditional_escrow.domain.disputes import (
    Dispute,
    DisputeRegistry,
    VoteOutcome,
    VoteRecord,
)
from conditional_escrow.domain.enums import (
    ArbitrationMode,
    ErrorKind,
    EscrowState,
    Role,
)
from conditional_escrow.domain.exceptions import (
    EscrowError,
    InvalidStateError,
    NotAuthorizedError,
)
from conditional_escrow.domain.ledger import FundMovement, FundMovementLedger
from conditional_escrow.domain.lifecycle import EscrowLifecycle, validate_transition
from conditional_escrow.domain.milestones import Milestone, MilestoneRegistry
from conditional_escrow.domain.settlement_protocol import SettlementCollaborator
from conditional_escrow.domain.state_machine import (
    CallContext,
    EscrowContract,
    EscrowStateMachine,
)

__all__ = [
    "ArbitrationMode",
    "ErrorKind",
    "EscrowState",
    "Role",
    "RoleSnapshot",
    "authorize",
    "EscrowError",
    "InvalidStateError",
    "NotAuthorizedError",
    "Dispute",
    "DisputeRegistry",
    "VoteOutcome",
    "VoteRecord",
    "FundMovement",
    "FundMovementLedger",
    "EscrowLifecycle",
    "validate_transition",
    "Milestone",
    "MilestoneRegistry",
    "SettlementCollaborator",
    "CallContext",
    "EscrowContract",
    "EscrowStateMachine",
]
