"""Settlement Service — executes fund movements emitted by the engine.

Only a simulated backend exists: it logs each movement, hands back a fake
receipt id and keeps the executed movements in order so callers (and tests)
can inspect exactly what would have been transferred.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from conditional_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from conditional_escrow.domain.ledger import FundMovement

logger = get_logger(__name__)


class SimulatedSettlement:
    """Settlement collaborator that records transfers instead of executing them."""

    def __init__(self) -> None:
        self._executed: list[tuple[str, FundMovement]] = []

    @property
    def executed(self) -> list[FundMovement]:
        return [movement for _, movement in self._executed]

    @property
    def receipts(self) -> list[str]:
        return [receipt for receipt, _ in self._executed]

    def execute(self, movement: FundMovement) -> str:
        """Record one transfer instruction and return its receipt id."""
        receipt = "stl_" + uuid.uuid4().hex
        self._executed.append((receipt, movement))
        logger.info(
            "settlement.movement_executed",
            receipt=receipt,
            amount=movement.amount,
            source=movement.source,
            destination=movement.destination,
            simulated=True,
        )
        return receipt
