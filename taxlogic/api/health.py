"""Health check endpoint for rule pack readiness."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from taxlogic.api.deps import get_registry
from taxlogic.core.logging import get_logger
from taxlogic.tax.registry import RulePackRegistry

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    rule_packs: dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    registry: Annotated[RulePackRegistry, Depends(get_registry)],
) -> HealthResponse:
    """Check that every supported year has a usable rule pack.

    Returns:
        HealthResponse with the state of each year's pack.
    """
    statuses = registry.statuses()
    degraded = [s.year for s in statuses if not s.is_ok]
    if degraded:
        logger.warning("health_degraded", years=degraded)

    return HealthResponse(
        status="degraded" if degraded else "ok",
        rule_packs={str(s.year): s.state.value for s in statuses},
    )
