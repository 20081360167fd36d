"""Escrow Engine — the custody state machine and its authorization rules.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Role checks against the stored identities
    - The asset ledger (the only thing that moves units)
    - The escrow store (record + append-only event stream)
    - Observers that want to hear about committed transitions

Every operation on one escrow runs under that escrow's lock, in a fixed
order: load, check status, check role, check deadline, transfer, commit.
A failure at any step leaves the record and the vault untouched. Observers
are notified once the lock is released, so they may call back into the
engine for the same escrow.
"""

from __future__ import annotations

import inspect
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from statemachine.exceptions import TransitionNotAllowed

from escrow_engine.domain.authorization import require_role, validate_parties
from escrow_engine.domain.enums import EscrowStatus, EventType, Role, RolePolicy
from escrow_engine.domain.exceptions import (
    DeadlineNotReachedError,
    DeadlinePassedError,
    EscrowAlreadyExistsError,
    EscrowError,
    EscrowNotFoundError,
    InvalidAmountError,
    InvalidDeadlineError,
    InvalidStateError,
    LedgerTransferError,
    TransferFailureError,
)
from escrow_engine.domain.models import (
    Escrow,
    EscrowEvent,
    derive_escrow_id,
    vault_reference_for,
)
from escrow_engine.domain.state_machine import EscrowStateMachine, event_for_resolution
from escrow_engine.infrastructure.clock import SystemClock
from escrow_engine.logging_config import escrow_context, get_logger
from escrow_engine.services.locks import EscrowLockRegistry

if TYPE_CHECKING:
    import uuid
    from collections.abc import Awaitable, Callable

    from escrow_engine.domain.ports import AssetLedger, ClockSource, EscrowStore

    EventHandler = Callable[[EscrowEvent], Awaitable[None] | None]

logger = get_logger(__name__)

# Deadline windows
_BEFORE_DEADLINE = "before"
_AFTER_DEADLINE = "after"


class EscrowEngine:
    """Owns the escrow lifecycle: five operations, queries and event fan-out."""

    def __init__(
        self,
        ledger: AssetLedger,
        store: EscrowStore,
        clock: ClockSource | None = None,
        role_policy: RolePolicy = RolePolicy.DISTINCT_PARTIES,
        locks: EscrowLockRegistry | None = None,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._clock = clock or SystemClock()
        self._role_policy = RolePolicy(role_policy)
        self._locks = locks or EscrowLockRegistry()
        self._handlers: list[EventHandler] = []

    @property
    def clock(self) -> ClockSource:
        return self._clock

    @property
    def role_policy(self) -> RolePolicy:
        return self._role_policy

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, handler: EventHandler) -> None:
        """Register a callable (sync or async) invoked with every committed event."""
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        self._handlers.remove(handler)

    # ------------------------------------------------------------------
    # Initialize
    # ------------------------------------------------------------------

    async def initialize(
        self,
        caller: str,
        recipient: str,
        arbiter: str,
        amount: int,
        deadline: datetime,
        nonce: int = 0,
    ) -> Escrow:
        """Fund a new vault from the caller's balance and open an escrow.

        The caller acts as initializer. The escrow identity is derived from
        (caller, nonce), so the same pair can only ever open one escrow.
        """
        try:
            if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                raise InvalidAmountError(amount)
            validate_parties(self._role_policy, caller, recipient, arbiter)

            if deadline.tzinfo is None:
                deadline = deadline.replace(tzinfo=UTC)
            deadline = deadline.astimezone(UTC)
            now = self._clock.now()
            if deadline <= now:
                raise InvalidDeadlineError(deadline.isoformat(), now.isoformat())

            escrow_id = derive_escrow_id(caller, nonce)
            with escrow_context(escrow_id, "initialize"):
                async with self._locks.hold(escrow_id):
                    existing = await self._store.get(escrow_id)
                    if existing is not None:
                        raise EscrowAlreadyExistsError(str(escrow_id), existing.status.value)

                    vault = vault_reference_for(escrow_id)
                    await self._move(caller, vault, amount, action="initialize")

                    escrow = Escrow(
                        id=escrow_id,
                        initializer=caller,
                        recipient=recipient,
                        arbiter=arbiter,
                        amount=amount,
                        deadline=deadline,
                        status=EscrowStatus.INITIALIZED,
                        vault_reference=vault,
                        created_at=now,
                        updated_at=now,
                    )
                    event = EscrowEvent(
                        escrow_id=escrow_id,
                        event_type=EventType.ESCROW_INITIALIZED,
                        old_status=None,
                        new_status=EscrowStatus.INITIALIZED,
                        actor=caller,
                        occurred_at=now,
                        payload={
                            "initializer": caller,
                            "recipient": recipient,
                            "arbiter": arbiter,
                            "amount": amount,
                            "deadline": deadline.isoformat(),
                        },
                    )
                    try:
                        stored = await self._store.create(escrow, event)
                    except Exception:
                        await self._compensate(vault, caller, amount, escrow_id, "initialize")
                        raise

                    logger.info(
                        "escrow.initialized",
                        escrow_id=str(escrow_id),
                        initializer=caller,
                        recipient=recipient,
                        arbiter=arbiter,
                        amount=amount,
                        deadline=deadline.isoformat(),
                    )
                await self._notify(stored)
                return escrow
        except EscrowError as exc:
            logger.warning(
                "escrow.rejected",
                action="initialize",
                code=exc.code,
                caller=caller,
                reason=exc.message,
            )
            raise

    async def initialize_with_timeout(
        self,
        caller: str,
        recipient: str,
        arbiter: str,
        amount: int,
        timeout: timedelta | float,
        nonce: int = 0,
    ) -> Escrow:
        """Open an escrow whose deadline is ``timeout`` from now."""
        if not isinstance(timeout, timedelta):
            timeout = timedelta(seconds=timeout)
        now = self._clock.now()
        if timeout <= timedelta(0):
            raise InvalidDeadlineError((now + timeout).isoformat(), now.isoformat())
        return await self.initialize(
            caller=caller,
            recipient=recipient,
            arbiter=arbiter,
            amount=amount,
            deadline=now + timeout,
            nonce=nonce,
        )

    # ------------------------------------------------------------------
    # Transitions out of INITIALIZED
    # ------------------------------------------------------------------

    async def withdraw(self, escrow_id: uuid.UUID, caller: str) -> Escrow:
        """Recipient claims the vault, up to and including the deadline."""
        return await self._transition(
            escrow_id,
            caller,
            action="withdraw",
            required_role=Role.RECIPIENT,
            sm_event="withdraw",
            window=_BEFORE_DEADLINE,
            payee=Role.RECIPIENT,
            event_type=EventType.ESCROW_WITHDRAWN,
        )

    async def refund(self, escrow_id: uuid.UUID, caller: str) -> Escrow:
        """Initializer reclaims the vault once the deadline has passed."""
        return await self._transition(
            escrow_id,
            caller,
            action="refund",
            required_role=Role.INITIALIZER,
            sm_event="refund",
            window=_AFTER_DEADLINE,
            payee=Role.INITIALIZER,
            event_type=EventType.ESCROW_REFUNDED,
        )

    async def cancel(self, escrow_id: uuid.UUID, caller: str) -> Escrow:
        """Initializer calls the escrow off before the deadline."""
        return await self._transition(
            escrow_id,
            caller,
            action="cancel",
            required_role=Role.INITIALIZER,
            sm_event="cancel",
            window=_BEFORE_DEADLINE,
            payee=Role.INITIALIZER,
            event_type=EventType.ESCROW_CANCELLED,
        )

    async def resolve_by_arbiter(
        self, escrow_id: uuid.UUID, caller: str, release: bool
    ) -> Escrow:
        """Arbiter sends the vault to the recipient (release) or back to the initializer.

        Not bound by the deadline in either direction.
        """
        payee = Role.RECIPIENT if release else Role.INITIALIZER
        return await self._transition(
            escrow_id,
            caller,
            action="resolve_by_arbiter",
            required_role=Role.ARBITER,
            sm_event=event_for_resolution(release),
            window=None,
            payee=payee,
            event_type=EventType.ESCROW_RESOLVED,
            extra_payload={"release": release, "released_to": payee.value},
        )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_escrow(self, escrow_id: uuid.UUID) -> Escrow:
        """Get an escrow or raise EscrowNotFoundError."""
        return await self._get_escrow_or_raise(escrow_id)

    async def get_events(self, escrow_id: uuid.UUID) -> list[EscrowEvent]:
        """Ordered event history of one escrow."""
        await self._get_escrow_or_raise(escrow_id)
        return await self._store.events_for(escrow_id)

    async def list_events(
        self, after_sequence: int = 0, limit: int | None = None
    ) -> list[EscrowEvent]:
        """The global ordered event stream for observers that poll."""
        return await self._store.list_events(after_sequence=after_sequence, limit=limit)

    async def allowed_actions(
        self, escrow_id: uuid.UUID, caller: str | None = None
    ) -> list[str]:
        """Actions that would pass status, time and (if given) role checks right now."""
        escrow = await self._get_escrow_or_raise(escrow_id)
        if escrow.status.is_terminal:
            return []

        expired = self._clock.now() > escrow.deadline
        candidates = [
            ("withdraw", Role.RECIPIENT, not expired),
            ("refund", Role.INITIALIZER, expired),
            ("cancel", Role.INITIALIZER, not expired),
            ("resolve_by_arbiter", Role.ARBITER, True),
        ]
        return [
            action
            for action, role, open_now in candidates
            if open_now and (caller is None or caller == escrow.holder_of(role))
        ]

    async def get_status(self, escrow_id: uuid.UUID) -> dict:
        """Status snapshot with the actions currently open."""
        escrow = await self._get_escrow_or_raise(escrow_id)
        now = self._clock.now()
        return {
            "escrow_id": str(escrow.id),
            "status": escrow.status.value,
            "deadline": escrow.deadline,
            "deadline_passed": now > escrow.deadline,
            "allowed_actions": await self.allowed_actions(escrow_id),
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _transition(
        self,
        escrow_id: uuid.UUID,
        caller: str,
        *,
        action: str,
        required_role: Role,
        sm_event: str,
        window: str | None,
        payee: Role,
        event_type: EventType,
        extra_payload: dict[str, Any] | None = None,
    ) -> Escrow:
        try:
            with escrow_context(escrow_id, action):
                async with self._locks.hold(escrow_id):
                    escrow = await self._get_escrow_or_raise(escrow_id)
                    new_status = self._fire_transition(escrow, sm_event, action)
                    require_role(escrow, caller, required_role, action)

                    now = self._clock.now()
                    if window == _BEFORE_DEADLINE and now > escrow.deadline:
                        raise DeadlinePassedError(
                            action, escrow.deadline.isoformat(), now.isoformat()
                        )
                    if window == _AFTER_DEADLINE and now <= escrow.deadline:
                        raise DeadlineNotReachedError(
                            escrow.deadline.isoformat(), now.isoformat()
                        )

                    destination = escrow.holder_of(payee)
                    await self._move(escrow.vault_reference, destination, escrow.amount, action)

                    updated = escrow.with_status(new_status, now)
                    event = EscrowEvent(
                        escrow_id=escrow.id,
                        event_type=event_type,
                        old_status=escrow.status,
                        new_status=new_status,
                        actor=caller,
                        occurred_at=now,
                        payload={
                            payee.value: destination,
                            "amount": escrow.amount,
                            **(extra_payload or {}),
                        },
                    )
                    try:
                        stored = await self._store.commit_transition(
                            updated, EscrowStatus.INITIALIZED, event
                        )
                    except Exception:
                        await self._compensate(
                            destination, escrow.vault_reference, escrow.amount, escrow.id, action
                        )
                        raise

                    logger.info(
                        f"escrow.{new_status.value.lower()}",
                        escrow_id=str(escrow.id),
                        action=action,
                        actor=caller,
                        paid_to=destination,
                        amount=escrow.amount,
                    )
                await self._notify(stored)
                return updated
        except EscrowError as exc:
            logger.warning(
                "escrow.rejected",
                escrow_id=str(escrow_id),
                action=action,
                code=exc.code,
                caller=caller,
                reason=exc.message,
            )
            raise

    async def _get_escrow_or_raise(self, escrow_id: uuid.UUID) -> Escrow:
        escrow = await self._store.get(escrow_id)
        if escrow is None:
            raise EscrowNotFoundError(str(escrow_id))
        return escrow

    def _fire_transition(self, escrow: Escrow, event_name: str, action: str) -> EscrowStatus:
        """Validate a state machine transition and return the resulting status.

        Raises InvalidStateError if the transition is illegal.
        """
        sm = EscrowStateMachine(current_status=escrow.status.value)
        try:
            getattr(sm, event_name)()
        except TransitionNotAllowed as err:
            raise InvalidStateError(escrow.status.value, action) from err
        return EscrowStatus(sm.status)

    async def _move(self, source: str, destination: str, amount: int, action: str) -> None:
        try:
            await self._ledger.transfer(source, destination, amount)
        except LedgerTransferError as err:
            raise TransferFailureError(action, str(err)) from err

    async def _compensate(
        self,
        source: str,
        destination: str,
        amount: int,
        escrow_id: uuid.UUID,
        action: str,
    ) -> None:
        """Undo a transfer whose state change could not be committed."""
        logger.error(
            "escrow.commit_failed",
            escrow_id=str(escrow_id),
            action=action,
            reverting_from=source,
            reverting_to=destination,
            amount=amount,
        )
        try:
            await self._ledger.transfer(source, destination, amount)
        except LedgerTransferError as err:
            logger.critical(
                "escrow.compensation_failed",
                escrow_id=str(escrow_id),
                action=action,
                error=str(err),
            )

    async def _notify(self, event: EscrowEvent) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "escrow.observer_failed",
                    escrow_id=str(event.escrow_id),
                    event_type=event.event_type.value,
                )
