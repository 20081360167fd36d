"""Health check endpoint.

Probes the escrow store with a one-row read and returns structured status.
Used by container healthchecks and load balancers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from escrow_engine import __version__
from escrow_engine.api.deps import get_engine
from escrow_engine.logging_config import get_logger
from escrow_engine.schemas.escrow import HealthResponse
from escrow_engine.services.escrow_engine import EscrowEngine

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(engine: EscrowEngine = Depends(get_engine)) -> HealthResponse:
    """Check that the escrow store answers."""
    try:
        await engine.list_events(limit=1)
        store_status = "healthy"
    except Exception as exc:
        store_status = f"unhealthy: {exc}"
        logger.error("health.store_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if store_status == "healthy" else "degraded",
        version=__version__,
        store=store_status,
    )
