"""Domain exceptions for the conditional escrow engine.

Every guard violation raises one of these. They are framework-agnostic and
are translated into OperationResult values by the service layer.
"""

from __future__ import annotations

from conditional_escrow.domain.enums import ErrorKind


class EscrowError(Exception):
    """Base exception for all escrow guard violations."""

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    @property
    def code(self) -> int:
        return self.kind.code


# --- Authorization Errors ---


class NotAuthorizedError(EscrowError):
    """Raised when the caller does not hold the role an operation requires."""

    kind = ErrorKind.NOT_AUTHORIZED

    def __init__(self, caller: str | None, role: str) -> None:
        super().__init__(f"Caller {caller!r} is not authorized (requires {role})")
        self.caller = caller
        self.role = role


class OracleNotRegisteredError(EscrowError):
    """Raised when an unregistered identity tries to verify a milestone."""

    kind = ErrorKind.ORACLE_NOT_REGISTERED

    def __init__(self, caller: str | None) -> None:
        super().__init__(f"Oracle not registered: {caller!r}")
        self.caller = caller


# --- Lifecycle Errors ---


class InvalidStateError(EscrowError):
    """Raised when an operation is attempted from the wrong lifecycle state.

    Example: deposit_funds on a FUNDED escrow.
    """

    kind = ErrorKind.INVALID_STATE

    def __init__(self, current_state: str, operation: str) -> None:
        super().__init__(f"Operation {operation!r} not allowed in state {current_state}")
        self.current_state = current_state
        self.operation = operation


class TimeExpiredError(EscrowError):
    kind = ErrorKind.TIME_EXPIRED

    def __init__(self, deadline_name: str, deadline: int, now: int) -> None:
        super().__init__(f"{deadline_name} passed: deadline {deadline}, now {now}")
        self.deadline = deadline
        self.now = now


# --- Initialization Errors ---


class InvalidAmountError(EscrowError):
    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, amount: object) -> None:
        super().__init__(f"Escrow amount must be a positive integer, got {amount!r}")
        self.amount = amount


class InvalidPartyError(EscrowError):
    """Raised when buyer/seller overlap each other or the initializing caller."""

    kind = ErrorKind.INVALID_PARTY


class InvalidDeadlineError(EscrowError):
    kind = ErrorKind.INVALID_DEADLINE

    def __init__(self, deadline_name: str, deadline: int, now: int) -> None:
        super().__init__(f"{deadline_name} must be after {now}, got {deadline}")
        self.deadline = deadline


class InvalidResolutionError(EscrowError):
    """Raised when a refund percentage falls outside [0, 100]."""

    kind = ErrorKind.INVALID_RESOLUTION

    def __init__(self, value: int) -> None:
        super().__init__(f"Refund percentage must be within [0, 100], got {value}")
        self.value = value


# --- Milestone Errors ---


class MilestoneNotFoundError(EscrowError):
    kind = ErrorKind.MILESTONE_NOT_FOUND

    def __init__(self, milestone_id: int) -> None:
        super().__init__(f"Milestone not found: {milestone_id}")
        self.milestone_id = milestone_id


class AlreadyVerifiedError(EscrowError):
    """Raised on a repeat verification or a milestone id collision."""

    kind = ErrorKind.ALREADY_VERIFIED

    def __init__(self, milestone_id: int, message: str | None = None) -> None:
        super().__init__(message or f"Milestone already verified: {milestone_id}")
        self.milestone_id = milestone_id


# --- Dispute Errors ---


class DisputeActiveError(EscrowError):
    kind = ErrorKind.DISPUTE_ACTIVE

    def __init__(self, dispute_id: int) -> None:
        super().__init__(f"Dispute id already used: {dispute_id}")
        self.dispute_id = dispute_id


class NoDisputeError(EscrowError):
    kind = ErrorKind.NO_DISPUTE

    def __init__(self, dispute_id: int) -> None:
        super().__init__(f"No active dispute: {dispute_id}")
        self.dispute_id = dispute_id


class VoteAlreadyCastError(EscrowError):
    kind = ErrorKind.VOTE_ALREADY_CAST

    def __init__(self, dispute_id: int, voter: str | None) -> None:
        super().__init__(f"Vote already cast on dispute {dispute_id} by {voter!r}")
        self.dispute_id = dispute_id
        self.voter = voter
