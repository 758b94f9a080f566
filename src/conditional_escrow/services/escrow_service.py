"""Escrow Service — application layer around one escrow instance.

This layer coordinates between:
    - Domain aggregate (EscrowStateMachine, raises typed EscrowError)
    - Settlement collaborator (executes emitted fund movements)
    - Structured logging

Every operation returns an OperationResult instead of raising, so callers get
a named error kind for each guard violation. Unexpected exceptions propagate.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from conditional_escrow.config import get_settings
from conditional_escrow.domain.exceptions import EscrowError
from conditional_escrow.domain.state_machine import CallContext, EscrowStateMachine
from conditional_escrow.logging_config import get_logger
from conditional_escrow.schemas.escrow import (
    DisputeView,
    EscrowSnapshot,
    FundMovementView,
    MilestoneView,
    VoteView,
)
from conditional_escrow.services.settlement_service import SimulatedSettlement

if TYPE_CHECKING:
    from conditional_escrow.config import Settings
    from conditional_escrow.domain.enums import ErrorKind
    from conditional_escrow.domain.settlement_protocol import SettlementCollaborator

logger = get_logger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one escrow operation.

    Attributes:
        ok: Whether the operation committed.
        error: The named error kind when ok is False.
        message: Human-readable explanation of a rejection.
        value: Operation-specific return value (movement, milestone, vote outcome).
    """

    ok: bool
    error: ErrorKind | None = None
    message: str = ""
    value: Any = None

    @property
    def code(self) -> int | None:
        return self.error.code if self.error is not None else None

    @classmethod
    def success(cls, value: Any = None) -> OperationResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: EscrowError) -> OperationResult:
        return cls(ok=False, error=exc.kind, message=exc.message)


class EscrowService:
    """Runs escrow operations and forwards fund movements to settlement."""

    def __init__(
        self,
        escrow_id: str | None = None,
        settings: Settings | None = None,
        settlement: SettlementCollaborator | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.escrow_id = escrow_id or f"esc_{uuid.uuid4().hex[:12]}"
        self.settlement = settlement or SimulatedSettlement()
        self._machine = EscrowStateMachine(
            vote_threshold=settings.dispute_vote_threshold,
            arbitration_mode=settings.arbitration_mode,
            default_refund_percentage=settings.default_refund_percentage,
            custody=settings.custody_account,
        )

    @property
    def machine(self) -> EscrowStateMachine:
        return self._machine

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def initialize(
        self,
        caller: str,
        now: int,
        *,
        buyer: str,
        seller: str,
        amount: int,
        deposit_deadline: int,
        verification_deadline: int,
        property_reference: str | None = None,
        oracle_authority: str,
        arbitrator_authority: str,
    ) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.initialized",
            ctx,
            lambda: self._machine.initialize(
                ctx,
                buyer=buyer,
                seller=seller,
                amount=amount,
                deposit_deadline=deposit_deadline,
                verification_deadline=verification_deadline,
                property_reference=property_reference,
                oracle_authority=oracle_authority,
                arbitrator_authority=arbitrator_authority,
            ),
            buyer=buyer,
            seller=seller,
            amount=amount,
        )

    def deposit_funds(self, caller: str, now: int) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run("escrow.funded", ctx, lambda: self._machine.deposit_funds(ctx))

    def add_milestone(
        self, caller: str, now: int, milestone_id: int, description: str
    ) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.milestone_added",
            ctx,
            lambda: self._machine.add_milestone(ctx, milestone_id, description),
            milestone_id=milestone_id,
        )

    def verify_milestone(self, caller: str, now: int, milestone_id: int) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.milestone_verified",
            ctx,
            lambda: self._machine.verify_milestone(ctx, milestone_id),
            milestone_id=milestone_id,
        )

    def initiate_dispute(self, caller: str, now: int, dispute_id: int) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.dispute_raised",
            ctx,
            lambda: self._machine.initiate_dispute(ctx, dispute_id),
            dispute_id=dispute_id,
        )

    def vote_on_dispute(
        self, caller: str, now: int, dispute_id: int, favors_buyer: bool
    ) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.dispute_vote_cast",
            ctx,
            lambda: self._machine.vote_on_dispute(ctx, dispute_id, favors_buyer),
            dispute_id=dispute_id,
            favors_buyer=favors_buyer,
        )

    def cancel_escrow(self, caller: str, now: int) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run("escrow.cancelled", ctx, lambda: self._machine.cancel_escrow(ctx))

    def register_oracle(self, caller: str, now: int, identity: str) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.oracle_registered",
            ctx,
            lambda: self._machine.register_oracle(ctx, identity),
            oracle=identity,
        )

    def register_arbitrator(self, caller: str, now: int, identity: str) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.arbitrator_registered",
            ctx,
            lambda: self._machine.register_arbitrator(ctx, identity),
            arbitrator=identity,
        )

    def set_refund_percentage(self, caller: str, now: int, value: int) -> OperationResult:
        ctx = CallContext(caller, now)
        return self._run(
            "escrow.refund_percentage_set",
            ctx,
            lambda: self._machine.set_refund_percentage(ctx, value),
            refund_percentage=value,
        )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def snapshot(self) -> EscrowSnapshot:
        """Serializable view of the whole escrow."""
        m = self._machine
        contract = m.contract
        return EscrowSnapshot(
            escrow_id=self.escrow_id,
            state=contract.state,
            state_code=contract.state.code,
            buyer=contract.buyer,
            seller=contract.seller,
            amount=contract.amount,
            deposit_deadline=contract.deposit_deadline,
            verification_deadline=contract.verification_deadline,
            property_reference=contract.property_reference,
            oracle_authority=contract.oracle_authority,
            arbitrator_authority=contract.arbitrator_authority,
            refund_percentage=contract.refund_percentage,
            arbitration_mode=m.arbitration_mode,
            vote_threshold=m.vote_threshold,
            milestones=[MilestoneView.model_validate(ms) for ms in m.milestones()],
            disputes=[
                DisputeView.model_validate(d).model_copy(
                    update={"votes": [VoteView.model_validate(v) for v in m.votes(d.id)]}
                )
                for d in m.disputes()
            ],
            ledger=[FundMovementView.model_validate(mv) for mv in m.ledger],
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        event: str,
        ctx: CallContext,
        operation: Callable[[], Any],
        **log_context: Any,
    ) -> OperationResult:
        """Apply one operation, then hand any new fund movements to settlement."""
        offset = len(self._machine.ledger)
        try:
            value = operation()
        except EscrowError as exc:
            logger.warning(
                "escrow.operation_rejected",
                escrow_id=self.escrow_id,
                attempted=event,
                caller=ctx.caller,
                now=ctx.now,
                error=exc.kind.value,
                code=exc.code,
                reason=exc.message,
            )
            return OperationResult.failure(exc)

        logger.info(
            event,
            escrow_id=self.escrow_id,
            caller=ctx.caller,
            now=ctx.now,
            state=self._machine.state.value,
            **log_context,
        )
        for movement in self._machine.movements_since(offset):
            self.settlement.execute(movement)
        return OperationResult.success(value)
