"""Escrow Lifecycle Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
Whatever the caller does, an illegal transition (e.g., INITIATED -> CLOSED)
raises TransitionNotAllowed before the aggregate's state field is touched.

Transition table:
    INITIATED -> FUNDED      (deposit)
    INITIATED -> CANCELLED   (cancel)
    FUNDED    -> CLOSED      (release_to_seller)
    FUNDED    -> DISPUTED    (open_dispute)
    DISPUTED  -> CLOSED      (resolve_dispute)
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from conditional_escrow.domain.enums import EscrowState
from conditional_escrow.domain.exceptions import InvalidStateError


class EscrowLifecycle(StateMachine):
    """State machine that guards escrow lifecycle transitions.

    Usage:
        sm = EscrowLifecycle(current_state="FUNDED")
        sm.open_dispute()   # transitions to DISPUTED
        sm.status           # "DISPUTED"
    """

    # --- States ---
    INITIATED = State("INITIATED", initial=True)
    FUNDED = State("FUNDED")
    DISPUTED = State("DISPUTED")
    CLOSED = State("CLOSED", final=True)
    CANCELLED = State("CANCELLED", final=True)

    # --- Events / Transitions ---
    deposit = INITIATED.to(FUNDED)
    cancel = INITIATED.to(CANCELLED)
    release_to_seller = FUNDED.to(CLOSED)
    open_dispute = FUNDED.to(DISPUTED)
    resolve_dispute = DISPUTED.to(CLOSED)

    def __init__(self, current_state: str = "INITIATED") -> None:
        valid_values = {s.value for s in self.states}
        if current_state not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(f"Unknown state '{current_state}'. Valid states: {valid}")
        super().__init__(start_value=str(current_state))

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches EscrowState)."""
        return str(self.current_state.value)


def validate_transition(current_state: str, event_name: str) -> EscrowState:
    """Fire the named event from current_state and return the resulting state.

    Raises:
        InvalidStateError: If the event is unknown or not allowed from
            current_state.
        ValueError: If current_state is not a known state.
    """
    sm = EscrowLifecycle(current_state=current_state)
    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise InvalidStateError(current_state, event_name)
    try:
        event_method()
    except TransitionNotAllowed as err:
        raise InvalidStateError(current_state, event_name) from err
    return EscrowState(sm.status)
