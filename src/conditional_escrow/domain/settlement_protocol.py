"""Settlement Collaborator Protocol.

Defines the boundary the engine hands fund movements to. This is a Protocol
(structural subtyping) so concrete settlement backends don't need to inherit
from a base class, they just need to match the shape.

The domain layer has ZERO imports from any wallet or chain SDK.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from conditional_escrow.domain.ledger import FundMovement


@runtime_checkable
class SettlementCollaborator(Protocol):
    """Protocol that all settlement backends must satisfy.

    Concrete implementations:
        - services/settlement_service.py  (SimulatedSettlement)
    """

    def execute(self, movement: FundMovement) -> str:
        """Carry out one transfer instruction.

        Args:
            movement: Amount, source and destination emitted by the engine.

        Returns:
            An opaque receipt identifier for the executed transfer.
        """
        ...
