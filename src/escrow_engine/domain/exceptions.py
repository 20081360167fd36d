"""Domain exceptions for the escrow engine.

These exceptions are framework-agnostic and represent business rule violations.
Every rejected request surfaces as exactly one of them; none are retried
automatically. The API layer's middleware translates them to HTTP responses.
"""

from __future__ import annotations


class EscrowError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ESCROW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Lookup Errors ---


class EscrowNotFoundError(EscrowError):
    """Raised when an escrow ID does not exist."""

    def __init__(self, escrow_id: str) -> None:
        super().__init__(
            message=f"Escrow not found: {escrow_id}",
            code="ESCROW_NOT_FOUND",
        )
        self.escrow_id = escrow_id


# --- Authorization Errors ---


class UnauthorizedError(EscrowError):
    """Raised when the caller does not hold the role an operation requires."""

    def __init__(self, caller: str, required_role: str, action: str) -> None:
        super().__init__(
            message=f"Caller {caller} is not the {required_role}; cannot {action}",
            code="UNAUTHORIZED",
        )
        self.caller = caller
        self.required_role = required_role
        self.action = action


# --- State Machine Errors ---


class InvalidStateError(EscrowError):
    """Raised when the escrow is not in a state that allows the action.

    Example: WITHDRAWN -> refund (terminal escrows accept nothing).
    """

    def __init__(self, current_state: str, attempted_action: str) -> None:
        super().__init__(
            message=f"Invalid state for {attempted_action}: escrow is {current_state}",
            code="INVALID_STATE",
        )
        self.current_state = current_state
        self.attempted_action = attempted_action


class EscrowAlreadyExistsError(InvalidStateError):
    """Raised when initialize targets an identity that is already taken."""

    def __init__(self, escrow_id: str, current_state: str) -> None:
        super().__init__(current_state=current_state, attempted_action="initialize")
        self.message = f"Escrow already exists: {escrow_id} ({current_state})"
        self.args = (self.message,)
        self.escrow_id = escrow_id


# --- Deadline Errors ---


class DeadlinePassedError(EscrowError):
    """Raised when withdraw or cancel is attempted after the deadline."""

    def __init__(self, action: str, deadline: str, now: str) -> None:
        super().__init__(
            message=f"Deadline {deadline} has passed (now {now}); cannot {action}",
            code="DEADLINE_PASSED",
        )
        self.action = action


class DeadlineNotReachedError(EscrowError):
    """Raised when refund is attempted at or before the deadline."""

    def __init__(self, deadline: str, now: str) -> None:
        super().__init__(
            message=f"Deadline {deadline} not reached (now {now}); cannot refund",
            code="DEADLINE_NOT_REACHED",
        )


# --- Creation Errors ---


class InvalidAmountError(EscrowError):
    """Raised when initialize is called with a non-positive amount."""

    def __init__(self, amount: object) -> None:
        super().__init__(
            message=f"Amount must be a positive integer, got {amount!r}",
            code="INVALID_AMOUNT",
        )
        self.amount = amount


class InvalidDeadlineError(EscrowError):
    """Raised when the deadline is not strictly in the future."""

    def __init__(self, deadline: str, now: str) -> None:
        super().__init__(
            message=f"Deadline {deadline} must be after the current time {now}",
            code="INVALID_DEADLINE",
        )


class InvalidPartiesError(EscrowError):
    """Raised when party identities overlap in a way the role policy forbids."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_PARTIES")


# --- Ledger Errors ---


class LedgerTransferError(Exception):
    """Raised by an asset ledger when a transfer cannot happen.

    Ledgers fail closed: when this is raised no units have moved.
    """


class InsufficientBalanceError(LedgerTransferError):
    """Raised when the source custody holds fewer units than requested."""

    def __init__(self, handle: str, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient balance in {handle}: required {required}, available {available}"
        )
        self.handle = handle
        self.required = required
        self.available = available


class UnknownCustodyError(LedgerTransferError):
    """Raised when a custody handle is empty or was never opened."""

    def __init__(self, handle: str) -> None:
        super().__init__(f"Unknown custody handle: {handle!r}")
        self.handle = handle


class TransferFailureError(EscrowError):
    """Raised when the ledger rejected the asset movement.

    The escrow record is left exactly as it was before the request.
    """

    def __init__(self, action: str, reason: str) -> None:
        super().__init__(
            message=f"Transfer failed during {action}: {reason}",
            code="TRANSFER_FAILURE",
        )
        self.action = action
        self.reason = reason
