"""Tests for the EscrowStateMachine aggregate.

These tests verify that:
    1. Every operation enforces role, lifecycle state, deadline, existence
       and idempotence guards with the right error kind.
    2. Failed calls leave no trace (state, registries, ledger unchanged).
    3. Funds are released exactly once, through milestones or a dispute.
"""

from __future__ import annotations

import pytest

from conditional_escrow.domain.enums import ArbitrationMode, ErrorKind, EscrowState
from conditional_escrow.domain.exceptions import (
    AlreadyVerifiedError,
    DisputeActiveError,
    EscrowError,
    InvalidAmountError,
    InvalidDeadlineError,
    InvalidPartyError,
    InvalidResolutionError,
    InvalidStateError,
    MilestoneNotFoundError,
    NoDisputeError,
    NotAuthorizedError,
    OracleNotRegisteredError,
    TimeExpiredError,
    VoteAlreadyCastError,
)
from conditional_escrow.domain.ledger import FundMovement
from conditional_escrow.domain.state_machine import CallContext, EscrowStateMachine

NOW = 100


def at(caller: str, now: int = NOW) -> CallContext:
    return CallContext(caller, now)


def register_and_verify(escrow: EscrowStateMachine, parties, *milestone_ids: int):
    escrow.register_oracle(at(parties.oracle_authority), parties.verifier)
    return [escrow.verify_milestone(at(parties.verifier), m) for m in milestone_ids]


class TestInitialize:
    def test_initialize_populates_terms(self, escrow, parties, escrow_terms) -> None:
        contract = escrow.initialize(at(parties.initializer), **escrow_terms)
        assert contract.buyer == parties.buyer
        assert contract.seller == parties.seller
        assert contract.amount == 1000
        assert contract.property_reference == "nft-1"
        assert escrow.state is EscrowState.INITIATED
        assert escrow.ledger == []

    def test_fresh_escrow_is_empty(self, escrow) -> None:
        assert escrow.state is EscrowState.INITIATED
        assert escrow.amount == 0
        assert escrow.buyer is None
        assert escrow.refund_percentage == 100

    @pytest.mark.parametrize("role", ["buyer", "seller"])
    def test_initializer_cannot_be_a_party(self, escrow, parties, escrow_terms, role) -> None:
        with pytest.raises(InvalidPartyError):
            escrow.initialize(at(escrow_terms[role]), **escrow_terms)
        assert escrow.buyer is None

    def test_buyer_and_seller_must_differ(self, escrow, parties, escrow_terms) -> None:
        escrow_terms["seller"] = escrow_terms["buyer"]
        with pytest.raises(InvalidPartyError):
            escrow.initialize(at(parties.initializer), **escrow_terms)

    @pytest.mark.parametrize("amount", [0, -5])
    def test_amount_must_be_positive(self, escrow, parties, escrow_terms, amount) -> None:
        escrow_terms["amount"] = amount
        with pytest.raises(InvalidAmountError) as exc_info:
            escrow.initialize(at(parties.initializer), **escrow_terms)
        assert exc_info.value.kind is ErrorKind.INVALID_AMOUNT
        assert escrow.state is EscrowState.INITIATED
        assert escrow.amount == 0

    @pytest.mark.parametrize("amount", [True, 1.5, 1000.0, "1000"])
    def test_amount_must_be_whole_units(self, escrow, parties, escrow_terms, amount) -> None:
        escrow_terms["amount"] = amount
        with pytest.raises(InvalidAmountError):
            escrow.initialize(at(parties.initializer), **escrow_terms)
        assert escrow.contract.initialized is False
        assert escrow.amount == 0

    @pytest.mark.parametrize("field", ["deposit_deadline", "verification_deadline"])
    @pytest.mark.parametrize("deadline", [NOW, NOW - 1])
    def test_deadlines_must_be_in_future(
        self, escrow, parties, escrow_terms, field, deadline
    ) -> None:
        escrow_terms[field] = deadline
        with pytest.raises(InvalidDeadlineError):
            escrow.initialize(at(parties.initializer), **escrow_terms)
        assert escrow.buyer is None

    def test_initialize_only_once(self, initialized_escrow, parties, escrow_terms) -> None:
        escrow_terms["amount"] = 5
        with pytest.raises(InvalidStateError):
            initialized_escrow.initialize(at(parties.initializer), **escrow_terms)
        assert initialized_escrow.amount == 1000

    def test_state_checked_first(self, funded_escrow, parties, escrow_terms) -> None:
        escrow_terms["amount"] = 0
        with pytest.raises(InvalidStateError):
            funded_escrow.initialize(at(parties.initializer), **escrow_terms)


class TestDeposit:
    def test_deposit_funds(self, initialized_escrow, parties) -> None:
        movement = initialized_escrow.deposit_funds(at(parties.buyer))
        assert movement == FundMovement(1000, parties.buyer, "custody")
        assert initialized_escrow.state is EscrowState.FUNDED
        assert initialized_escrow.ledger == [FundMovement(1000, parties.buyer, "custody")]

    def test_deposit_on_deadline_allowed(self, initialized_escrow, parties) -> None:
        initialized_escrow.deposit_funds(at(parties.buyer, 200))
        assert initialized_escrow.state is EscrowState.FUNDED

    def test_deposit_after_deadline(self, initialized_escrow, parties) -> None:
        with pytest.raises(TimeExpiredError):
            initialized_escrow.deposit_funds(at(parties.buyer, 201))
        assert initialized_escrow.state is EscrowState.INITIATED
        assert initialized_escrow.ledger == []

    def test_deposit_by_non_buyer(self, initialized_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            initialized_escrow.deposit_funds(at(parties.seller))
        assert initialized_escrow.ledger == []

    def test_cannot_deposit_twice(self, funded_escrow, parties) -> None:
        with pytest.raises(InvalidStateError):
            funded_escrow.deposit_funds(at(parties.buyer))
        assert len(funded_escrow.ledger) == 1

    def test_deposit_before_initialize(self, escrow, parties) -> None:
        with pytest.raises(EscrowError):
            escrow.deposit_funds(at(parties.buyer))
        assert escrow.state is EscrowState.INITIATED


class TestMilestones:
    def test_add_milestone(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Title Verification")
        milestone = funded_escrow.milestone(1)
        assert milestone.description == "Title Verification"
        assert milestone.verified is False

    def test_add_milestone_by_buyer(self, funded_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            funded_escrow.add_milestone(at(parties.buyer), 1, "Title Verification")
        assert funded_escrow.milestone(1) is None

    def test_add_milestone_before_funding(self, initialized_escrow, parties) -> None:
        with pytest.raises(InvalidStateError):
            initialized_escrow.add_milestone(at(parties.seller), 1, "Inspection")

    def test_milestone_id_collision(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        with pytest.raises(AlreadyVerifiedError) as exc_info:
            funded_escrow.add_milestone(at(parties.seller), 1, "Appraisal")
        assert exc_info.value.kind is ErrorKind.ALREADY_VERIFIED

    def test_single_milestone_releases_to_seller(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        [movement] = register_and_verify(funded_escrow, parties, 1)
        assert movement == FundMovement(1000, "custody", parties.seller)
        assert funded_escrow.state is EscrowState.CLOSED
        assert funded_escrow.milestone(1).verifier == parties.verifier
        assert funded_escrow.milestone(1).verified_at == NOW
        assert funded_escrow.ledger == [
            FundMovement(1000, parties.buyer, "custody"),
            FundMovement(1000, "custody", parties.seller),
        ]

    @pytest.mark.parametrize("order", [(1, 2), (2, 1)])
    def test_release_triggers_exactly_once(self, funded_escrow, parties, order) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        funded_escrow.add_milestone(at(parties.seller), 2, "Appraisal")
        first, second = register_and_verify(funded_escrow, parties, *order)
        assert first is None
        assert second == FundMovement(1000, "custody", parties.seller)
        assert funded_escrow.state is EscrowState.CLOSED
        seller_movements = [m for m in funded_escrow.ledger if m.destination == parties.seller]
        assert len(seller_movements) == 1

    def test_second_verification_rejected(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        funded_escrow.add_milestone(at(parties.seller), 2, "Appraisal")
        register_and_verify(funded_escrow, parties, 1)
        with pytest.raises(AlreadyVerifiedError):
            funded_escrow.verify_milestone(at(parties.verifier), 1)
        assert funded_escrow.state is EscrowState.FUNDED
        assert len(funded_escrow.ledger) == 1

    def test_verification_after_release_rejected(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        register_and_verify(funded_escrow, parties, 1)
        with pytest.raises(InvalidStateError):
            funded_escrow.verify_milestone(at(parties.verifier), 1)
        assert len(funded_escrow.ledger) == 2

    def test_unregistered_verifier(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        with pytest.raises(OracleNotRegisteredError):
            funded_escrow.verify_milestone(at(parties.verifier), 1)
        assert funded_escrow.milestone(1).verified is False

    def test_missing_milestone_checked_before_registration(self, funded_escrow, parties) -> None:
        with pytest.raises(MilestoneNotFoundError):
            funded_escrow.verify_milestone(at(parties.outsider), 42)

    def test_verification_after_deadline(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        funded_escrow.register_oracle(at(parties.oracle_authority), parties.verifier)
        with pytest.raises(TimeExpiredError):
            funded_escrow.verify_milestone(at(parties.verifier, 301), 1)
        assert funded_escrow.milestone(1).verified is False

    def test_verification_during_dispute(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        funded_escrow.initiate_dispute(at(parties.seller), 1)
        with pytest.raises(InvalidStateError):
            register_and_verify(funded_escrow, parties, 1)


class TestDisputes:
    def test_initiate_dispute(self, funded_escrow, parties) -> None:
        dispute = funded_escrow.initiate_dispute(at(parties.buyer), 1)
        assert dispute.active is True
        assert funded_escrow.state is EscrowState.DISPUTED
        assert funded_escrow.dispute(1).active is True

    def test_outsider_cannot_dispute(self, funded_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            funded_escrow.initiate_dispute(at(parties.outsider), 1)
        assert funded_escrow.state is EscrowState.FUNDED
        assert funded_escrow.dispute(1) is None

    def test_dispute_requires_funding(self, initialized_escrow, parties) -> None:
        with pytest.raises(InvalidStateError):
            initialized_escrow.initiate_dispute(at(parties.buyer), 1)

    def test_only_one_dispute(self, disputed_escrow, parties) -> None:
        with pytest.raises(InvalidStateError):
            disputed_escrow.initiate_dispute(at(parties.seller), 2)

    def test_committee_resolves_for_buyer(self, disputed_escrow, parties) -> None:
        authority = at(parties.arbitrator_authority)
        disputed_escrow.register_arbitrator(authority, "ARB2")
        disputed_escrow.register_arbitrator(authority, "ARB3")

        assert disputed_escrow.vote_on_dispute(authority, 1, True).resolved is False
        assert disputed_escrow.vote_on_dispute(at("ARB2"), 1, False).resolved is False
        assert disputed_escrow.state is EscrowState.DISPUTED
        assert len(disputed_escrow.ledger) == 1

        outcome = disputed_escrow.vote_on_dispute(at("ARB3"), 1, True)
        assert outcome.resolved is True
        assert outcome.favors_buyer is True
        assert disputed_escrow.state is EscrowState.CLOSED
        assert disputed_escrow.ledger[-1] == FundMovement(1000, "custody", parties.buyer)
        assert disputed_escrow.dispute(1).resolved is True
        assert disputed_escrow.dispute(1).active is False

    def test_committee_resolves_for_seller(self, disputed_escrow, parties) -> None:
        authority = at(parties.arbitrator_authority)
        disputed_escrow.register_arbitrator(authority, "ARB2")
        disputed_escrow.register_arbitrator(authority, "ARB3")
        disputed_escrow.vote_on_dispute(authority, 1, False)
        disputed_escrow.vote_on_dispute(at("ARB2"), 1, True)
        disputed_escrow.vote_on_dispute(at("ARB3"), 1, False)
        assert disputed_escrow.ledger[-1] == FundMovement(1000, "custody", parties.seller)
        assert disputed_escrow.dispute(1).resolution is False

    def test_vote_by_non_arbitrator(self, disputed_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            disputed_escrow.vote_on_dispute(at(parties.buyer), 1, True)
        assert disputed_escrow.dispute(1).total_votes == 0

    def test_vote_on_unknown_dispute(self, disputed_escrow, parties) -> None:
        with pytest.raises(NoDisputeError):
            disputed_escrow.vote_on_dispute(at(parties.arbitrator_authority), 2, True)

    def test_repeat_vote_rejected(self, disputed_escrow, parties) -> None:
        disputed_escrow.vote_on_dispute(at(parties.arbitrator_authority), 1, True)
        with pytest.raises(VoteAlreadyCastError):
            disputed_escrow.vote_on_dispute(at(parties.arbitrator_authority), 1, False)
        assert disputed_escrow.dispute(1).votes_for_seller == 0

    def test_vote_requires_dispute(self, funded_escrow, parties) -> None:
        with pytest.raises(InvalidStateError):
            funded_escrow.vote_on_dispute(at(parties.arbitrator_authority), 1, True)

    def test_no_vote_after_resolution(self, disputed_escrow, parties) -> None:
        authority = at(parties.arbitrator_authority)
        for arbitrator in ("ARB2", "ARB3", "ARB4"):
            disputed_escrow.register_arbitrator(authority, arbitrator)
        for arbitrator in ("ARB2", "ARB3", "ARB4"):
            disputed_escrow.vote_on_dispute(at(arbitrator), 1, True)
        with pytest.raises(InvalidStateError):
            disputed_escrow.vote_on_dispute(authority, 1, False)
        assert len(disputed_escrow.ledger) == 2

    def test_register_arbitrator_requires_authority(self, funded_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            funded_escrow.register_arbitrator(at(parties.buyer), parties.buyer)
        assert not funded_escrow.is_arbitrator_registered(parties.buyer)

    @pytest.mark.parametrize("party", ["buyer", "seller"])
    def test_party_cannot_join_committee(self, disputed_escrow, parties, party) -> None:
        identity = getattr(parties, party)
        with pytest.raises(InvalidPartyError) as exc_info:
            disputed_escrow.register_arbitrator(at(parties.arbitrator_authority), identity)
        assert exc_info.value.kind is ErrorKind.INVALID_PARTY
        assert not disputed_escrow.is_arbitrator_registered(identity)
        with pytest.raises(NotAuthorizedError):
            disputed_escrow.vote_on_dispute(at(identity), 1, party == "buyer")
        assert disputed_escrow.dispute(1).total_votes == 0


class TestSingleArbitratorMode:
    @pytest.fixture
    def single(self, parties, escrow_terms) -> EscrowStateMachine:
        escrow = EscrowStateMachine(arbitration_mode=ArbitrationMode.SINGLE)
        escrow.initialize(at(parties.initializer), **escrow_terms)
        escrow.deposit_funds(at(parties.buyer))
        escrow.initiate_dispute(at(parties.buyer), 1)
        return escrow

    def test_one_vote_slot_per_dispute(self, single, parties) -> None:
        assert single.vote_on_dispute(at(parties.arbitrator_authority), 1, True).resolved is False
        with pytest.raises(VoteAlreadyCastError):
            single.vote_on_dispute(at(parties.arbitrator_authority), 1, True)
        assert single.state is EscrowState.DISPUTED

    def test_committee_registration_disabled(self, single, parties) -> None:
        with pytest.raises(InvalidStateError):
            single.register_arbitrator(at(parties.arbitrator_authority), "ARB2")

    def test_threshold_one_resolves_on_single_vote(self, parties, escrow_terms) -> None:
        escrow = EscrowStateMachine(arbitration_mode=ArbitrationMode.SINGLE, vote_threshold=1)
        escrow.initialize(at(parties.initializer), **escrow_terms)
        escrow.deposit_funds(at(parties.buyer))
        escrow.initiate_dispute(at(parties.seller), 5)
        outcome = escrow.vote_on_dispute(at(parties.arbitrator_authority), 5, False)
        assert outcome.resolved is True
        assert escrow.state is EscrowState.CLOSED
        assert escrow.ledger[-1] == FundMovement(1000, "custody", parties.seller)


class TestCancel:
    @pytest.mark.parametrize("party", ["buyer", "seller"])
    def test_cancel_before_funding(self, initialized_escrow, parties, party) -> None:
        initialized_escrow.cancel_escrow(at(getattr(parties, party)))
        assert initialized_escrow.state is EscrowState.CANCELLED
        assert initialized_escrow.ledger == []

    def test_outsider_cannot_cancel(self, initialized_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            initialized_escrow.cancel_escrow(at(parties.outsider))
        assert initialized_escrow.state is EscrowState.INITIATED

    def test_cannot_cancel_after_funding(self, funded_escrow, parties) -> None:
        with pytest.raises(InvalidStateError):
            funded_escrow.cancel_escrow(at(parties.buyer))

    def test_cancelled_is_terminal(self, initialized_escrow, parties) -> None:
        initialized_escrow.cancel_escrow(at(parties.buyer))
        with pytest.raises(InvalidStateError):
            initialized_escrow.deposit_funds(at(parties.buyer))


class TestRegistrationsAndParameters:
    def test_register_oracle(self, initialized_escrow, parties) -> None:
        initialized_escrow.register_oracle(at(parties.oracle_authority), "ST2NEWORACLE")
        initialized_escrow.register_oracle(at(parties.oracle_authority), "ST2NEWORACLE")
        assert initialized_escrow.is_oracle_registered("ST2NEWORACLE")
        assert not initialized_escrow.is_oracle_registered(parties.verifier)

    def test_register_oracle_requires_authority(self, initialized_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            initialized_escrow.register_oracle(at(parties.seller), parties.seller)

    def test_no_authority_before_initialize(self, escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            escrow.register_oracle(at(parties.oracle_authority), parties.verifier)

    def test_set_refund_percentage(self, initialized_escrow, parties) -> None:
        initialized_escrow.set_refund_percentage(at(parties.seller), 50)
        assert initialized_escrow.refund_percentage == 50

    @pytest.mark.parametrize("value", [-1, 101])
    def test_refund_percentage_bounds(self, initialized_escrow, parties, value) -> None:
        with pytest.raises(InvalidResolutionError):
            initialized_escrow.set_refund_percentage(at(parties.seller), value)
        assert initialized_escrow.refund_percentage == 100

    def test_range_checked_before_role(self, initialized_escrow, parties) -> None:
        with pytest.raises(InvalidResolutionError):
            initialized_escrow.set_refund_percentage(at(parties.buyer), 101)

    def test_refund_percentage_requires_seller(self, initialized_escrow, parties) -> None:
        with pytest.raises(NotAuthorizedError):
            initialized_escrow.set_refund_percentage(at(parties.buyer), 10)

    def test_refund_percentage_in_terminal_state(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        register_and_verify(funded_escrow, parties, 1)
        funded_escrow.set_refund_percentage(at(parties.seller), 0)
        assert funded_escrow.refund_percentage == 0

    def test_default_refund_percentage_validated(self) -> None:
        with pytest.raises(InvalidResolutionError):
            EscrowStateMachine(default_refund_percentage=150)


class TestReadAccessors:
    def test_ledger_is_a_copy(self, funded_escrow) -> None:
        funded_escrow.ledger.clear()
        assert len(funded_escrow.ledger) == 1

    def test_milestone_list_is_a_copy(self, funded_escrow, parties) -> None:
        funded_escrow.add_milestone(at(parties.seller), 1, "Inspection")
        funded_escrow.milestones().clear()
        assert funded_escrow.milestone(1) is not None

    def test_unknown_ids_return_none(self, funded_escrow) -> None:
        assert funded_escrow.milestone(7) is None
        assert funded_escrow.dispute(7) is None
        assert funded_escrow.votes(7) == []
