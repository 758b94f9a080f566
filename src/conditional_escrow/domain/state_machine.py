"""Escrow state machine aggregate.

EscrowStateMachine is the single entry point for every mutating operation on
one escrow. Each operation follows the same order:

    1. authorize the caller (AuthorizationPolicy)
    2. check lifecycle state and operation preconditions
    3. mutate fields / delegate to MilestoneRegistry or DisputeRegistry
    4. append to the FundMovementLedger and advance the lifecycle state

All guards raise before any mutation, so a failed call leaves no trace.
Caller identity and current time arrive explicitly in a CallContext.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from conditional_escrow.domain.authorization import RoleSnapshot, authorize
from conditional_escrow.domain.disputes import (
    DEFAULT_VOTE_THRESHOLD,
    Dispute,
    DisputeRegistry,
    VoteOutcome,
    VoteRecord,
)
from conditional_escrow.domain.enums import ArbitrationMode, EscrowState, Role
from conditional_escrow.domain.exceptions import (
    InvalidAmountError,
    InvalidDeadlineError,
    InvalidPartyError,
    InvalidResolutionError,
    InvalidStateError,
    MilestoneNotFoundError,
    NotAuthorizedError,
    OracleNotRegisteredError,
    TimeExpiredError,
)
from conditional_escrow.domain.ledger import (
    DEFAULT_CUSTODY,
    FundMovement,
    FundMovementLedger,
)
from conditional_escrow.domain.lifecycle import validate_transition
from conditional_escrow.domain.milestones import Milestone, MilestoneRegistry


@dataclass(frozen=True)
class CallContext:
    """Who is calling and when (block height or timestamp)."""

    caller: str
    now: int


@dataclass(frozen=True)
class EscrowContract:
    """Scalar fields of one escrow. Replaced wholesale on every change."""

    state: EscrowState = EscrowState.INITIATED
    buyer: str | None = None
    seller: str | None = None
    amount: int = 0
    deposit_deadline: int = 0
    verification_deadline: int = 0
    property_reference: str | None = None
    oracle_authority: str | None = None
    arbitrator_authority: str | None = None
    refund_percentage: int = 100
    initialized: bool = False


class EscrowStateMachine:
    """Conditional-custody escrow between one buyer and one seller.

    Usage:
        escrow = EscrowStateMachine()
        escrow.initialize(CallContext("INIT", 100), buyer="B", seller="S", amount=1000,
                          deposit_deadline=200, verification_deadline=300,
                          property_reference="nft-1", oracle_authority="O",
                          arbitrator_authority="A")
        escrow.deposit_funds(CallContext("B", 120))
        escrow.state  # EscrowState.FUNDED
    """

    def __init__(
        self,
        *,
        vote_threshold: int = DEFAULT_VOTE_THRESHOLD,
        arbitration_mode: ArbitrationMode = ArbitrationMode.COMMITTEE,
        default_refund_percentage: int = 100,
        custody: str = DEFAULT_CUSTODY,
    ) -> None:
        if not 0 <= default_refund_percentage <= 100:
            raise InvalidResolutionError(default_refund_percentage)
        self.custody = custody
        self._contract = EscrowContract(refund_percentage=default_refund_percentage)
        self._milestones = MilestoneRegistry()
        self._disputes = DisputeRegistry(threshold=vote_threshold, mode=arbitration_mode)
        self._oracles: set[str] = set()
        self._arbitrators: set[str] = set()
        self._ledger = FundMovementLedger()

    # ------------------------------------------------------------------
    # Initialization & funding
    # ------------------------------------------------------------------

    def initialize(
        self,
        ctx: CallContext,
        *,
        buyer: str,
        seller: str,
        amount: int,
        deposit_deadline: int,
        verification_deadline: int,
        property_reference: str | None,
        oracle_authority: str,
        arbitrator_authority: str,
    ) -> EscrowContract:
        """Populate the escrow terms. The state stays INITIATED."""
        if self._contract.state is not EscrowState.INITIATED or self._contract.initialized:
            raise InvalidStateError(self._contract.state, "initialize")
        proposed = RoleSnapshot(buyer=buyer, seller=seller)
        if not authorize(ctx.caller, Role.NON_PARTY, proposed):
            raise InvalidPartyError(
                f"Initializing caller {ctx.caller!r} cannot be buyer or seller"
            )
        if buyer == seller:
            raise InvalidPartyError(f"Buyer and seller must differ, both are {buyer!r}")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(amount)
        if deposit_deadline <= ctx.now:
            raise InvalidDeadlineError("deposit_deadline", deposit_deadline, ctx.now)
        if verification_deadline <= ctx.now:
            raise InvalidDeadlineError("verification_deadline", verification_deadline, ctx.now)

        self._contract = replace(
            self._contract,
            buyer=buyer,
            seller=seller,
            amount=amount,
            deposit_deadline=deposit_deadline,
            verification_deadline=verification_deadline,
            property_reference=property_reference,
            oracle_authority=oracle_authority,
            arbitrator_authority=arbitrator_authority,
            initialized=True,
        )
        return self._contract

    def deposit_funds(self, ctx: CallContext) -> FundMovement:
        """Buyer moves the escrow amount into custody."""
        self._require_state("deposit_funds", EscrowState.INITIATED)
        if ctx.now > self._contract.deposit_deadline:
            raise TimeExpiredError("deposit_deadline", self._contract.deposit_deadline, ctx.now)
        self._require_role(ctx, Role.BUYER)
        new_state = validate_transition(self._contract.state, "deposit")

        movement = self._ledger.append(self._contract.amount, ctx.caller, self.custody)
        self._set_state(new_state)
        return movement

    def cancel_escrow(self, ctx: CallContext) -> None:
        """Cancel before funding. Nothing was deposited, so nothing moves."""
        self._require_state("cancel_escrow", EscrowState.INITIATED)
        self._require_role(ctx, Role.PARTY)
        self._set_state(validate_transition(self._contract.state, "cancel"))

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def add_milestone(self, ctx: CallContext, milestone_id: int, description: str) -> Milestone:
        self._require_state("add_milestone", EscrowState.FUNDED)
        self._require_role(ctx, Role.SELLER)
        return self._milestones.add(milestone_id, description, author=ctx.caller)

    def verify_milestone(self, ctx: CallContext, milestone_id: int) -> FundMovement | None:
        """Attest one milestone; release to the seller once all are verified.

        Returns:
            The seller-directed FundMovement if this verification completed the
            set, otherwise None.
        """
        self._require_state("verify_milestone", EscrowState.FUNDED)
        if ctx.now > self._contract.verification_deadline:
            raise TimeExpiredError(
                "verification_deadline", self._contract.verification_deadline, ctx.now
            )
        if milestone_id not in self._milestones:
            raise MilestoneNotFoundError(milestone_id)
        if not authorize(ctx.caller, Role.REGISTERED_VERIFIER, self._roles()):
            raise OracleNotRegisteredError(ctx.caller)
        self._milestones.check_verify(milestone_id)
        new_state = validate_transition(self._contract.state, "release_to_seller")

        self._milestones.mark_verified(milestone_id, ctx.caller, ctx.now)
        if not self._milestones.all_verified():
            return None
        movement = self._ledger.append(self._contract.amount, self.custody, self._contract.seller)
        self._set_state(new_state)
        return movement

    # ------------------------------------------------------------------
    # Disputes
    # ------------------------------------------------------------------

    def initiate_dispute(self, ctx: CallContext, dispute_id: int) -> Dispute:
        self._require_state("initiate_dispute", EscrowState.FUNDED)
        self._require_role(ctx, Role.PARTY)
        self._disputes.check_open(dispute_id)
        new_state = validate_transition(self._contract.state, "open_dispute")

        dispute = self._disputes.open(dispute_id)
        self._set_state(new_state)
        return dispute

    def vote_on_dispute(
        self, ctx: CallContext, dispute_id: int, favors_buyer: bool
    ) -> VoteOutcome:
        """Cast an arbitrator vote; the resolving vote releases the funds."""
        self._require_state("vote_on_dispute", EscrowState.DISPUTED)
        if self._disputes.mode is ArbitrationMode.COMMITTEE:
            self._require_role(ctx, Role.ARBITRATOR)
        else:
            self._require_role(ctx, Role.ARBITRATOR_AUTHORITY)
        self._disputes.check_vote(dispute_id, ctx.caller)
        new_state = validate_transition(self._contract.state, "resolve_dispute")

        outcome = self._disputes.record_vote(dispute_id, ctx.caller, favors_buyer)
        if outcome.resolved:
            recipient = self._contract.buyer if outcome.favors_buyer else self._contract.seller
            self._ledger.append(self._contract.amount, self.custody, recipient)
            self._set_state(new_state)
        return outcome

    # ------------------------------------------------------------------
    # Registrations & parameters (no lifecycle precondition)
    # ------------------------------------------------------------------

    def register_oracle(self, ctx: CallContext, identity: str) -> None:
        self._require_role(ctx, Role.ORACLE_AUTHORITY)
        self._oracles.add(identity)

    def register_arbitrator(self, ctx: CallContext, identity: str) -> None:
        """Admit a committee arbitrator. Only meaningful in COMMITTEE mode."""
        self._require_role(ctx, Role.ARBITRATOR_AUTHORITY)
        if self._disputes.mode is not ArbitrationMode.COMMITTEE:
            raise InvalidStateError(self._contract.state, "register_arbitrator")
        if identity in (self._contract.buyer, self._contract.seller):
            raise InvalidPartyError(f"Party {identity!r} cannot arbitrate its own escrow")
        self._arbitrators.add(identity)

    def set_refund_percentage(self, ctx: CallContext, value: int) -> None:
        if not 0 <= value <= 100:
            raise InvalidResolutionError(value)
        self._require_role(ctx, Role.SELLER)
        self._contract = replace(self._contract, refund_percentage=value)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def contract(self) -> EscrowContract:
        return self._contract

    @property
    def state(self) -> EscrowState:
        return self._contract.state

    @property
    def buyer(self) -> str | None:
        return self._contract.buyer

    @property
    def seller(self) -> str | None:
        return self._contract.seller

    @property
    def amount(self) -> int:
        return self._contract.amount

    @property
    def refund_percentage(self) -> int:
        return self._contract.refund_percentage

    @property
    def vote_threshold(self) -> int:
        return self._disputes.threshold

    @property
    def arbitration_mode(self) -> ArbitrationMode:
        return self._disputes.mode

    def milestone(self, milestone_id: int) -> Milestone | None:
        return self._milestones.get(milestone_id)

    def milestones(self) -> list[Milestone]:
        return self._milestones.all()

    def dispute(self, dispute_id: int) -> Dispute | None:
        return self._disputes.get(dispute_id)

    def disputes(self) -> list[Dispute]:
        return self._disputes.all()

    def votes(self, dispute_id: int) -> list[VoteRecord]:
        return self._disputes.votes(dispute_id)

    def is_oracle_registered(self, identity: str) -> bool:
        return identity in self._oracles

    def is_arbitrator_registered(self, identity: str) -> bool:
        return identity in self._arbitrators

    @property
    def ledger(self) -> list[FundMovement]:
        return self._ledger.to_list()

    def movements_since(self, offset: int) -> list[FundMovement]:
        return self._ledger.since(offset)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _roles(self) -> RoleSnapshot:
        return RoleSnapshot(
            buyer=self._contract.buyer,
            seller=self._contract.seller,
            oracle_authority=self._contract.oracle_authority,
            arbitrator_authority=self._contract.arbitrator_authority,
            verifiers=frozenset(self._oracles),
            arbitrators=frozenset(self._arbitrators),
        )

    def _require_role(self, ctx: CallContext, role: Role) -> None:
        if not authorize(ctx.caller, role, self._roles()):
            raise NotAuthorizedError(ctx.caller, role)

    def _require_state(self, operation: str, expected: EscrowState) -> None:
        if self._contract.state is not expected:
            raise InvalidStateError(self._contract.state, operation)

    def _set_state(self, new_state: EscrowState) -> None:
        self._contract = replace(self._contract, state=new_state)
