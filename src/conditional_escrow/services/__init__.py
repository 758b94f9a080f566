"""Application services — escrow operations and settlement."""

from conditional_escrow.services.escrow_service import EscrowService, OperationResult
from conditional_escrow.services.settlement_service import SimulatedSettlement

__all__ = ["EscrowService", "OperationResult", "SimulatedSettlement"]
