"""Per-escrow mutual exclusion.

One asyncio.Lock per escrow identity, created on demand and dropped once
no coroutine holds or waits on it. Operations on different escrows never
contend; operations on the same escrow run one at a time for the whole
validate-transfer-commit-notify sequence.
"""

from __future__ import annotations

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator


class EscrowLockRegistry:
    """Hands out the exclusive lock for an escrow identity."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, escrow_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(escrow_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[escrow_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, escrow_id: uuid.UUID) -> AsyncIterator[None]:
        """Hold the escrow's lock for the duration of the ``async with`` block."""
        lock = self.lock_for(escrow_id)
        async with lock:
            yield

    def is_locked(self, escrow_id: uuid.UUID) -> bool:
        lock = self._locks.get(escrow_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
