import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from app.agent.llm_client import AIGatewayError
from app.ai_cache import RateLimitExceeded
from app.api.deps import CurrentUser, SessionDep
from app.core.config import settings
from app.file_extraction import extract_file_data
from app.models import FileExtractionRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["extraction"])


@router.post("/extract")
async def extract(
    session: SessionDep, current_user: CurrentUser, body: FileExtractionRequest
) -> dict[str, Any]:
    """Extract tabular data from an uploaded file (base64) or a file URL."""
    logger.info(
        "Extracting data from %s (%s) for %s", body.file_name, body.file_type, current_user.email
    )
    try:
        return await extract_file_data(
            body,
            session=session,
            rate_limit_key=f"user:{current_user.id}",
            limit=settings.AUTHENTICATED_AI_RATE_LIMIT,
        )
    except RateLimitExceeded as e:
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded. Please try again later.",
            headers={"Retry-After": str(e.retry_after)},
        )
    except AIGatewayError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
