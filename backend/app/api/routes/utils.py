from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from app.ai_cache import purge_expired
from app.api.deps import SessionDep, get_current_active_superuser
from app.models import Message
from app.sla import get_entity_gates

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
async def health_check() -> bool:
    return True


@router.get("/approval-gates/{entity_type}")
def read_approval_gates(entity_type: str) -> list[dict[str, Any]]:
    """The approval gates an entity type passes through, with their SLA in days."""
    gates = get_entity_gates(entity_type)
    if not gates:
        raise HTTPException(status_code=404, detail=f"No approval gates for {entity_type}")
    return [asdict(gate) for gate in gates]


@router.post(
    "/purge-ai-cache/",
    dependencies=[Depends(get_current_active_superuser)],
)
def purge_ai_cache(session: SessionDep) -> Message:
    """Drop expired AI responses and old rate limit counters; meant for a periodic job."""
    cache_rows, rate_limit_rows = purge_expired(session)
    return Message(
        message=f"Purged {cache_rows} cache entries and {rate_limit_rows} rate limit counters"
    )
