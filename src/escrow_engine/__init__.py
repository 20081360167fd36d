"""Arbitrated escrow engine: custody state machine with role and deadline rules."""

from escrow_engine.domain.enums import EscrowStatus, EventType, Role, RolePolicy
from escrow_engine.domain.models import Escrow, EscrowEvent
from escrow_engine.services.escrow_engine import EscrowEngine

__version__ = "0.1.0"

__all__ = [
    "Escrow",
    "EscrowEngine",
    "EscrowEvent",
    "EscrowStatus",
    "EventType",
    "Role",
    "RolePolicy",
    "__version__",
]
