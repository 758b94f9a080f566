"""Domain enumerations for the conditional escrow engine.

These enums define the canonical states, roles and error kinds used throughout
the system. They are framework-agnostic (no pydantic, no structlog imports).
"""

import enum


class EscrowState(enum.StrEnum):
    """Lifecycle states of an escrow contract.

    State transitions are enforced by the EscrowLifecycle guard.
    See domain/lifecycle.py for the transition table.
    """

    INITIATED = "INITIATED"
    FUNDED = "FUNDED"
    DISPUTED = "DISPUTED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"

    @property
    def code(self) -> int:
        """Numeric state code used by the on-chain contract (2 is unused)."""
        return _STATE_CODES[self]

    @property
    def is_terminal(self) -> bool:
        return self in (EscrowState.CLOSED, EscrowState.CANCELLED)


_STATE_CODES = {
    EscrowState.INITIATED: 0,
    EscrowState.FUNDED: 1,
    EscrowState.DISPUTED: 3,
    EscrowState.CLOSED: 4,
    EscrowState.CANCELLED: 5,
}


class ErrorKind(enum.StrEnum):
    """Named failure kinds returned by every guarded operation."""

    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    INVALID_STATE = "INVALID_STATE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_PARTY = "INVALID_PARTY"
    MILESTONE_NOT_FOUND = "MILESTONE_NOT_FOUND"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    DISPUTE_ACTIVE = "DISPUTE_ACTIVE"
    NO_DISPUTE = "NO_DISPUTE"
    TIME_EXPIRED = "TIME_EXPIRED"
    INVALID_DEADLINE = "INVALID_DEADLINE"
    ORACLE_NOT_REGISTERED = "ORACLE_NOT_REGISTERED"
    INVALID_RESOLUTION = "INVALID_RESOLUTION"
    VOTE_ALREADY_CAST = "VOTE_ALREADY_CAST"

    @property
    def code(self) -> int:
        """Numeric error code used by the on-chain contract."""
        return _ERROR_CODES[self]


_ERROR_CODES = {
    ErrorKind.NOT_AUTHORIZED: 100,
    ErrorKind.INVALID_STATE: 101,
    ErrorKind.INVALID_AMOUNT: 104,
    ErrorKind.INVALID_PARTY: 105,
    ErrorKind.MILESTONE_NOT_FOUND: 106,
    ErrorKind.ALREADY_VERIFIED: 107,
    ErrorKind.DISPUTE_ACTIVE: 108,
    ErrorKind.NO_DISPUTE: 109,
    ErrorKind.TIME_EXPIRED: 111,
    ErrorKind.INVALID_DEADLINE: 112,
    ErrorKind.ORACLE_NOT_REGISTERED: 115,
    ErrorKind.INVALID_RESOLUTION: 118,
    ErrorKind.VOTE_ALREADY_CAST: 119,
}


class Role(enum.StrEnum):
    """Role requirements checked by the AuthorizationPolicy."""

    BUYER = "buyer"
    SELLER = "seller"
    PARTY = "party"
    NON_PARTY = "non_party"
    ORACLE_AUTHORITY = "oracle_authority"
    ARBITRATOR_AUTHORITY = "arbitrator_authority"
    REGISTERED_VERIFIER = "registered_verifier"
    ARBITRATOR = "arbitrator"


class ArbitrationMode(enum.StrEnum):
    """How dispute votes are keyed and who may cast them.

    SINGLE keeps one vote slot per dispute, cast by the arbitrator authority.
    COMMITTEE keys votes by (dispute, voter) and admits registered arbitrators.
    """

    SINGLE = "single"
    COMMITTEE = "committee"
