"""Shared test fixtures for the conditional escrow test suite.

Provides:
    - A fixed cast of identities and escrow terms
    - Domain aggregates at each lifecycle stage (fresh, initialized, funded, disputed)
    - An EscrowService wired to explicit settings and a simulated settlement
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from conditional_escrow.config import Settings
from conditional_escrow.domain.enums import ArbitrationMode
from conditional_escrow.domain.state_machine import CallContext, EscrowStateMachine
from conditional_escrow.services.escrow_service import EscrowService
from conditional_escrow.services.settlement_service import SimulatedSettlement


@dataclass(frozen=True)
class Parties:
    initializer: str = "ST1INIT"
    buyer: str = "ST1BUYER"
    seller: str = "ST1SELLER"
    oracle_authority: str = "ST1ORACLE"
    arbitrator_authority: str = "ST1ARBITRATOR"
    verifier: str = "ST1VERIFIER"
    outsider: str = "ST1OUTSIDER"


NOW = 100
DEPOSIT_DEADLINE = 200
VERIFICATION_DEADLINE = 300
AMOUNT = 1000


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def parties() -> Parties:
    return Parties()


@pytest.fixture
def escrow_terms(parties: Parties) -> dict:
    """Return valid initialization terms."""
    return {
        "buyer": parties.buyer,
        "seller": parties.seller,
        "amount": AMOUNT,
        "deposit_deadline": DEPOSIT_DEADLINE,
        "verification_deadline": VERIFICATION_DEADLINE,
        "property_reference": "nft-1",
        "oracle_authority": parties.oracle_authority,
        "arbitrator_authority": parties.arbitrator_authority,
    }


@pytest.fixture
def escrow() -> EscrowStateMachine:
    return EscrowStateMachine()


@pytest.fixture
def initialized_escrow(
    escrow: EscrowStateMachine, parties: Parties, escrow_terms: dict
) -> EscrowStateMachine:
    escrow.initialize(CallContext(parties.initializer, NOW), **escrow_terms)
    return escrow


@pytest.fixture
def funded_escrow(initialized_escrow: EscrowStateMachine, parties: Parties) -> EscrowStateMachine:
    initialized_escrow.deposit_funds(CallContext(parties.buyer, NOW))
    return initialized_escrow


@pytest.fixture
def disputed_escrow(funded_escrow: EscrowStateMachine, parties: Parties) -> EscrowStateMachine:
    funded_escrow.initiate_dispute(CallContext(parties.buyer, NOW), 1)
    return funded_escrow


# ---------------------------------------------------------------------------
# Service Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        dispute_vote_threshold=3,
        arbitration_mode=ArbitrationMode.COMMITTEE,
        default_refund_percentage=100,
        custody_account="custody",
    )


@pytest.fixture
def settlement() -> SimulatedSettlement:
    return SimulatedSettlement()


@pytest.fixture
def service(settings: Settings, settlement: SimulatedSettlement) -> EscrowService:
    return EscrowService(escrow_id="esc-test", settings=settings, settlement=settlement)
