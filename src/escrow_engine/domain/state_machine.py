"""Escrow State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what the API or a caller does, an illegal transition (e.g.,
WITHDRAWN -> REFUNDED) will raise TransitionNotAllowed.

The state machine is instantiated per-request and validates the transition
before any asset movement happens.

Transition table:
    INITIALIZED -> WITHDRAWN   (withdraw)         recipient, now <= deadline
    INITIALIZED -> REFUNDED    (refund)           initializer, now > deadline
    INITIALIZED -> CANCELLED   (cancel)           initializer, now <= deadline
    INITIALIZED -> WITHDRAWN   (arbiter_release)  arbiter, any time
    INITIALIZED -> REFUNDED    (arbiter_refund)   arbiter, any time

Role and deadline conditions live in the engine; this table only knows states.
"""

from __future__ import annotations

from statemachine import State, StateMachine


class EscrowStateMachine(StateMachine):
    """State machine that guards escrow lifecycle transitions.

    Usage:
        sm = EscrowStateMachine(current_status="INITIALIZED")
        sm.withdraw()    # transitions to WITHDRAWN
        sm.status        # 'WITHDRAWN'
    """

    # --- States ---
    INITIALIZED = State("INITIALIZED", initial=True)
    WITHDRAWN = State("WITHDRAWN", final=True)
    REFUNDED = State("REFUNDED", final=True)
    CANCELLED = State("CANCELLED", final=True)

    # --- Events / Transitions ---

    # Self-service
    withdraw = INITIALIZED.to(WITHDRAWN)
    refund = INITIALIZED.to(REFUNDED)
    cancel = INITIALIZED.to(CANCELLED)

    # Arbitration
    arbiter_release = INITIALIZED.to(WITHDRAWN)
    arbiter_refund = INITIALIZED.to(REFUNDED)

    def __init__(self, current_status: str = "INITIALIZED") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current EscrowStatus value (e.g., "WITHDRAWN").
                           Must match one of the State value strings exactly.
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches EscrowStatus enum)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.name for event in self.allowed_events]


def event_for_resolution(release: bool) -> str:
    """Map an arbiter decision to its state machine event."""
    return "arbiter_release" if release else "arbiter_refund"


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns
    the resulting status string.

    Args:
        current_status: Current EscrowStatus value.
        event_name: The event to fire (e.g., "withdraw").

    Returns:
        The new status string after the transition.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = EscrowStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status
