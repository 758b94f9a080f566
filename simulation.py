#!/usr/bin/env python3
"""Conditional Escrow — End-to-End Simulation.

Simulates three scenarios with a buyer, a seller, an oracle authority and an
arbitration committee:

    Scenario 1: Milestone Release
        - Escrow initialized and funded by the buyer
        - Seller adds two milestones, a registered verifier attests both
        - Funds released to the seller -> CLOSED

    Scenario 2: Cancellation
        - Escrow initialized, buyer changes their mind before depositing
        - CANCELLED, nothing moves

    Scenario 3: Arbitrated Dispute
        - Escrow funded, buyer disputes before milestones complete
        - Three arbitrators vote 2-1 for the buyer -> funds returned, CLOSED

Usage:
    uv run python simulation.py
    uv run python simulation.py --scenario 3
    uv run python simulation.py --json-logs
    APP_LOG_LEVEL=INFO uv run python simulation.py
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass

from conditional_escrow.logging_config import configure_logging, get_logger

logger = get_logger("simulation")


@dataclass(frozen=True)
class Cast:
    """Identities taking part in every scenario."""

    initializer: str = "ST1INIT"
    buyer: str = "ST1BUYER"
    seller: str = "ST1SELLER"
    oracle_authority: str = "ST1ORACLE"
    verifier: str = "ST1VERIFIER"
    arbitrator_authority: str = "ST1ARBITRATOR"


CAST = Cast()


def new_escrow(escrow_id: str):
    """Create and initialize an escrow for 1000 units at block 100."""
    from conditional_escrow.services.escrow_service import EscrowService

    svc = EscrowService(escrow_id=escrow_id)
    result = svc.initialize(
        CAST.initializer,
        100,
        buyer=CAST.buyer,
        seller=CAST.seller,
        amount=1000,
        deposit_deadline=200,
        verification_deadline=300,
        property_reference="title-7731",
        oracle_authority=CAST.oracle_authority,
        arbitrator_authority=CAST.arbitrator_authority,
    )
    print_result("initialize", result)
    return svc


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


def print_result(operation: str, result) -> None:
    status_icon = "✅" if result.ok else "❌"
    print(f"  {status_icon} {operation}: {'OK' if result.ok else result.error}")
    if not result.ok:
        print(f"     {result.message} (code {result.code})")


def print_ledger(svc) -> None:
    """Print the fund movements emitted so far."""
    snapshot = svc.snapshot()
    print(f"\n  🛡️  Escrow {snapshot.escrow_id} final state: {snapshot.state}")
    print("  📜 Ledger:")
    if not snapshot.ledger:
        print("    (no fund movements)")
    for i, mv in enumerate(snapshot.ledger, 1):
        print(f"    {i}. {mv.amount} {mv.source} → {mv.destination}")
    print()


# ===========================================================================
# Scenarios
# ===========================================================================
def scenario_1_milestone_release() -> None:
    banner("SCENARIO 1: Milestone Release")
    svc = new_escrow("esc-milestones")

    section("Step 1: Buyer deposits")
    print_result("deposit_funds", svc.deposit_funds(CAST.buyer, 120))

    section("Step 2: Seller adds milestones")
    print_result("add_milestone 1", svc.add_milestone(CAST.seller, 130, 1, "Inspection"))
    print_result("add_milestone 2", svc.add_milestone(CAST.seller, 130, 2, "Title search"))

    section("Step 3: Oracle authority registers a verifier")
    print_result(
        "register_oracle",
        svc.register_oracle(CAST.oracle_authority, 131, CAST.verifier),
    )

    section("Step 4: Verifier attests milestones")
    print_result("verify_milestone 2", svc.verify_milestone(CAST.verifier, 150, 2))
    print_result("verify_milestone 2 (again)", svc.verify_milestone(CAST.verifier, 151, 2))
    print_result("verify_milestone 1", svc.verify_milestone(CAST.verifier, 160, 1))

    print_ledger(svc)


def scenario_2_cancellation() -> None:
    banner("SCENARIO 2: Cancellation Before Funding")
    svc = new_escrow("esc-cancel")

    section("Step 1: Outsider tries to cancel")
    print_result("cancel_escrow", svc.cancel_escrow("ST1OUTSIDER", 110))

    section("Step 2: Buyer cancels")
    print_result("cancel_escrow", svc.cancel_escrow(CAST.buyer, 110))

    section("Step 3: Late deposit is refused")
    print_result("deposit_funds", svc.deposit_funds(CAST.buyer, 120))

    print_ledger(svc)


def scenario_3_dispute() -> None:
    banner("SCENARIO 3: Arbitrated Dispute")
    svc = new_escrow("esc-dispute")
    print_result("deposit_funds", svc.deposit_funds(CAST.buyer, 120))
    print_result("add_milestone 1", svc.add_milestone(CAST.seller, 125, 1, "Inspection"))

    section("Step 1: Buyer disputes")
    print_result("initiate_dispute", svc.initiate_dispute(CAST.buyer, 140, 1))

    section("Step 2: Arbitrator authority seats a committee")
    for arbitrator in ("ST1ARB2", "ST1ARB3"):
        print_result(
            f"register_arbitrator {arbitrator}",
            svc.register_arbitrator(CAST.arbitrator_authority, 141, arbitrator),
        )

    section("Step 3: Committee votes")
    votes = [(CAST.arbitrator_authority, True), ("ST1ARB2", False), ("ST1ARB3", True)]
    for voter, favors_buyer in votes:
        result = svc.vote_on_dispute(voter, 150, 1, favors_buyer)
        print_result(f"vote_on_dispute {voter} ({'buyer' if favors_buyer else 'seller'})", result)

    print_ledger(svc)


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    1: scenario_1_milestone_release,
    2: scenario_2_cancellation,
    3: scenario_3_dispute,
}


def run_all() -> None:
    print("\n" + "🚀" * 35)
    print("  CONDITIONAL ESCROW — SIMULATION")
    print("🚀" * 35 + "\n")

    for num, scenario in SCENARIOS.items():
        logger.info("simulation.scenario_started", scenario=num)
        scenario()

    print("\n" + "=" * 70)
    print("  ✅ ALL SCENARIOS COMPLETED")
    print("=" * 70 + "\n")


def run_scenario(num: int) -> None:
    if num not in SCENARIOS:
        print(f"Unknown scenario {num}. Available: 1, 2, 3")
        return
    SCENARIOS[num]()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Conditional Escrow Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines instead of colored console output.",
    )
    args = parser.parse_args()

    configure_logging(json_logs=args.json_logs)
    if args.scenario == 0:
        run_all()
    else:
        run_scenario(args.scenario)
