"""Application services — use case orchestration."""

from escrow_engine.services.escrow_engine import EscrowEngine
from escrow_engine.services.locks import EscrowLockRegistry

__all__ = ["EscrowEngine", "EscrowLockRegistry"]
