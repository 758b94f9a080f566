"""Fund movement ledger.

The core never moves value itself. It appends transfer instructions here and
the external settlement collaborator executes them in order.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

DEFAULT_CUSTODY = "custody"


@dataclass(frozen=True)
class FundMovement:
    amount: int
    source: str
    destination: str


class FundMovementLedger:
    """Append-only, ordered list of FundMovement instructions."""

    def __init__(self) -> None:
        self._movements: list[FundMovement] = []

    def __len__(self) -> int:
        return len(self._movements)

    def __iter__(self) -> Iterator[FundMovement]:
        return iter(tuple(self._movements))

    def append(self, amount: int, source: str, destination: str) -> FundMovement:
        movement = FundMovement(amount=amount, source=source, destination=destination)
        self._movements.append(movement)
        return movement

    def since(self, offset: int) -> list[FundMovement]:
        """Return movements appended after the first `offset` entries."""
        return self._movements[offset:]

    def to_list(self) -> list[FundMovement]:
        return list(self._movements)
