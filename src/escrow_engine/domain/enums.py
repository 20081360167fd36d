"""Domain enumerations for the escrow engine.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class EscrowStatus(enum.StrEnum):
    """Lifecycle states of an escrow.

    INITIALIZED is the only non-terminal state. Transitions are enforced by
    the EscrowStateMachine guard, see domain/state_machine.py.
    """

    INITIALIZED = "INITIALIZED"
    WITHDRAWN = "WITHDRAWN"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not EscrowStatus.INITIALIZED


class EventType(enum.StrEnum):
    """Domain events, one per accepted transition.

    Stored in the append-only escrow_events table and pushed to observers.
    """

    ESCROW_INITIALIZED = "ESCROW_INITIALIZED"
    ESCROW_WITHDRAWN = "ESCROW_WITHDRAWN"
    ESCROW_REFUNDED = "ESCROW_REFUNDED"
    ESCROW_CANCELLED = "ESCROW_CANCELLED"
    ESCROW_RESOLVED = "ESCROW_RESOLVED"


class Role(enum.StrEnum):
    """The three parties recorded on every escrow."""

    INITIALIZER = "initializer"
    RECIPIENT = "recipient"
    ARBITER = "arbiter"


class RolePolicy(enum.StrEnum):
    """Which identities may coincide across roles at initialize time.

    DISTINCT_PARTIES: initializer and recipient must differ, arbiter is free.
    ALL_DISTINCT: all three identities must be pairwise different.
    UNRESTRICTED: any identity may hold any number of roles.
    """

    DISTINCT_PARTIES = "distinct_parties"
    ALL_DISTINCT = "all_distinct"
    UNRESTRICTED = "unrestricted"
