"""Domain layer — pure business logic with zero framework dependencies."""

from escrow_engine.domain.enums import (
    EscrowStatus,
    EventType,
    Role,
    RolePolicy,
)
from escrow_engine.domain.exceptions import (
    DeadlineNotReachedError,
    DeadlinePassedError,
    EscrowAlreadyExistsError,
    EscrowError,
    EscrowNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidDeadlineError,
    InvalidPartiesError,
    InvalidStateError,
    LedgerTransferError,
    TransferFailureError,
    UnauthorizedError,
    UnknownCustodyError,
)
from escrow_engine.domain.models import (
    Escrow,
    EscrowEvent,
    derive_escrow_id,
    vault_reference_for,
)
from escrow_engine.domain.ports import AssetLedger, ClockSource, EscrowStore
from escrow_engine.domain.state_machine import (
    EscrowStateMachine,
    validate_transition,
)

__all__ = [
    "EscrowStatus",
    "EventType",
    "Role",
    "RolePolicy",
    "EscrowError",
    "EscrowNotFoundError",
    "EscrowAlreadyExistsError",
    "UnauthorizedError",
    "InvalidStateError",
    "DeadlinePassedError",
    "DeadlineNotReachedError",
    "InvalidAmountError",
    "InvalidDeadlineError",
    "InvalidPartiesError",
    "LedgerTransferError",
    "InsufficientBalanceError",
    "UnknownCustodyError",
    "TransferFailureError",
    "Escrow",
    "EscrowEvent",
    "derive_escrow_id",
    "vault_reference_for",
    "AssetLedger",
    "ClockSource",
    "EscrowStore",
    "EscrowStateMachine",
    "validate_transition",
]
