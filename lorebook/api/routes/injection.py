"""
Injection Endpoints
===================

Evaluate one turn of the knowledge injection engine against the current rules.
"""

import logging

from fastapi import APIRouter, Depends

from lorebook.api.deps import get_injection_service
from lorebook.api.schemas.base import ResponseSchema
from lorebook.api.schemas.injection import EvaluateRequest, EvaluateResponse
from lorebook.core.activation.scan import ScanSources
from lorebook.core.activation.service import KnowledgeInjectionService

router = APIRouter(prefix="/injection", tags=["injection"])
logger = logging.getLogger(__name__)


@router.post("/evaluate", response_model=ResponseSchema[EvaluateResponse])
async def evaluate(
    data: EvaluateRequest,
    service: KnowledgeInjectionService = Depends(get_injection_service),
):
    """
    Decide which rules are injected for a turn.

    With ``commit`` false the call is a dry run and rule bookkeeping
    (activation count, last activated turn) is left untouched.
    """
    sources = ScanSources(
        player_input=data.player_input,
        narration_history=tuple(data.narration_history),
        memory_notes=tuple(data.memory_notes),
        player_history=tuple(data.player_history),
    )
    result = service.inject(sources, turn=data.turn, budget=data.budget, commit=data.commit)

    return ResponseSchema(
        data=EvaluateResponse.from_result(result),
        message=f"Injected {len(result.entries)} rules ({result.tokens_used}/{result.budget} tokens)",
    )
