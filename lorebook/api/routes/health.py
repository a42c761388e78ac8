"""
Health Check Endpoints
======================

Liveness probe for the API.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lorebook.api.config import settings
from lorebook.api.deps import get_rule_store
from lorebook.core.rules.application.store import RuleStore

router = APIRouter(prefix="/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Liveness probe response."""

    status: str
    timestamp: str
    version: str
    rules_loaded: int
    store_version: int


@router.get("", response_model=LivenessResponse)
async def liveness(store: RuleStore = Depends(get_rule_store)) -> LivenessResponse:
    """
    Liveness probe.

    Returns 200 whenever the process is up, with the size and version of the
    in-memory rule store.
    """
    return LivenessResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
        version=settings.app_version,
        rules_loaded=len(store),
        store_version=store.version,
    )
