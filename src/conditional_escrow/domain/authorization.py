"""Authorization policy: a closed set of role predicates.

The policy is stateless. The aggregate hands it an explicit RoleSnapshot of
the identities it has recorded, so every decision is a pure function of
(caller, role, snapshot).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from conditional_escrow.domain.enums import Role


@dataclass(frozen=True)
class RoleSnapshot:
    """Identities recorded on an escrow contract at one point in time."""

    buyer: str | None = None
    seller: str | None = None
    oracle_authority: str | None = None
    arbitrator_authority: str | None = None
    verifiers: frozenset[str] = field(default_factory=frozenset)
    arbitrators: frozenset[str] = field(default_factory=frozenset)


def _is(identity: str | None, caller: str) -> bool:
    # An unset role never matches.
    return identity is not None and identity == caller


def _is_arbitrator(caller: str, s: RoleSnapshot) -> bool:
    # Parties never judge their own dispute.
    if caller in (s.buyer, s.seller):
        return False
    return _is(s.arbitrator_authority, caller) or caller in s.arbitrators


_PREDICATES: dict[Role, Callable[[str, RoleSnapshot], bool]] = {
    Role.BUYER: lambda c, s: _is(s.buyer, c),
    Role.SELLER: lambda c, s: _is(s.seller, c),
    Role.PARTY: lambda c, s: _is(s.buyer, c) or _is(s.seller, c),
    Role.NON_PARTY: lambda c, s: c not in (s.buyer, s.seller),
    Role.ORACLE_AUTHORITY: lambda c, s: _is(s.oracle_authority, c),
    Role.ARBITRATOR_AUTHORITY: lambda c, s: _is(s.arbitrator_authority, c),
    Role.REGISTERED_VERIFIER: lambda c, s: c in s.verifiers,
    Role.ARBITRATOR: _is_arbitrator,
}


def authorize(caller: str, role: Role, snapshot: RoleSnapshot) -> bool:
    """Return True if caller satisfies the role requirement against snapshot."""
    return _PREDICATES[role](caller, snapshot)
