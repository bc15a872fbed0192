import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from sqlmodel import Session

from app.agent.artifacts import IdeaInput, PlanAnalysisRequest, StrategyRequest
from app.agent.base import BaseAgent
from app.agent.idea_agent import IdeaAnalysisAgent
from app.agent.llm_client import AIGatewayError
from app.agent.plan_analysis_agent import PlanAnalysisAgent
from app.agent.scenario_agent import ScenarioAgent
from app.agent.swot_agent import SWOTAgent
from app.ai_cache import RateLimitExceeded, cached_structured
from app.api.deps import CurrentVisibility, OptionalUser, SessionDep
from app.api.helpers import get_editable_or_403
from app.core.config import settings
from app.models import StrategicPlan, get_datetime_utc
from app.visibility import VisibilityContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


async def run_cached(
    session: Session,
    response: Response,
    agent_cls: type[BaseAgent],
    input_data: Any,
    *,
    rate_limit_key: str,
    limit: int,
) -> dict[str, Any]:
    """
    Run an agent through the response cache. Cache hits are free; misses count
    against ``rate_limit_key``. Gateway and quota errors become HTTP errors.
    """
    try:
        agent = agent_cls()
        system_prompt, user_prompt = agent.build_prompts(input_data)

        async def produce() -> dict[str, Any]:
            return (await agent.run(input_data)).model_dump()

        result, cached = await cached_structured(
            session,
            endpoint=agent.endpoint,
            model=agent.model_name,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            produce=produce,
            rate_limit_key=rate_limit_key,
            limit=limit,
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
        logger.error("%s returned an unusable response: %s", agent_cls.__name__, e)
        raise HTTPException(status_code=502, detail="The AI service returned an invalid response.")

    response.headers["X-AI-Cache"] = "hit" if cached else "miss"
    return result


def _plan_to_update(
    session: Session, ctx: VisibilityContext, strategic_plan_id: str | None
) -> StrategicPlan | None:
    if not strategic_plan_id:
        return None
    try:
        plan_id = uuid.UUID(strategic_plan_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid strategic_plan_id")
    return get_editable_or_403(session, StrategicPlan, plan_id, ctx, "Strategic plan")


def _save_to_plan(session: Session, plan: StrategicPlan | None, field: str, value: dict[str, Any]) -> None:
    if plan is None:
        return
    setattr(plan, field, value)
    plan.updated_at = get_datetime_utc()
    session.add(plan)
    session.commit()


def _user_key(ctx: VisibilityContext) -> str:
    return f"user:{ctx.user_id}"


@router.post("/swot")
async def generate_swot(
    session: SessionDep, ctx: CurrentVisibility, body: StrategyRequest, response: Response
) -> dict[str, Any]:
    plan = _plan_to_update(session, ctx, body.strategic_plan_id)
    swot = await run_cached(
        session,
        response,
        SWOTAgent,
        body,
        rate_limit_key=_user_key(ctx),
        limit=settings.AUTHENTICATED_AI_RATE_LIMIT,
    )
    _save_to_plan(session, plan, "swot", swot)
    return swot


@router.post("/scenarios")
async def generate_scenarios(
    session: SessionDep, ctx: CurrentVisibility, body: StrategyRequest, response: Response
) -> dict[str, Any]:
    plan = _plan_to_update(session, ctx, body.strategic_plan_id)
    scenarios = await run_cached(
        session,
        response,
        ScenarioAgent,
        body,
        rate_limit_key=_user_key(ctx),
        limit=settings.AUTHENTICATED_AI_RATE_LIMIT,
    )
    _save_to_plan(session, plan, "scenarios", scenarios)
    return scenarios


@router.post("/analyze-plan")
async def analyze_plan(
    session: SessionDep, ctx: CurrentVisibility, body: PlanAnalysisRequest, response: Response
) -> dict[str, Any]:
    plan = _plan_to_update(session, ctx, body.strategic_plan_id)
    logger.info(
        "Analyzing strategic plan: %s",
        body.plan_data.get("name_en") or body.plan_data.get("name_ar") or "Unnamed",
    )
    analysis = await run_cached(
        session,
        response,
        PlanAnalysisAgent,
        body,
        rate_limit_key=_user_key(ctx),
        limit=settings.AUTHENTICATED_AI_RATE_LIMIT,
    )
    _save_to_plan(session, plan, "analysis", analysis)
    return {"analysis": analysis}


@router.post("/public-idea")
async def analyze_public_idea(
    session: SessionDep,
    current_user: OptionalUser,
    body: IdeaInput,
    request: Request,
    response: Response,
) -> dict[str, Any]:
    """Open to anonymous citizens; quota is per user when signed in, per client IP otherwise."""
    if current_user is not None:
        key, limit = f"user:{current_user.id}", settings.AUTHENTICATED_AI_RATE_LIMIT
    else:
        host = request.client.host if request.client else "unknown"
        key, limit = f"ip:{host}", settings.PUBLIC_AI_RATE_LIMIT
    return await run_cached(session, response, IdeaAnalysisAgent, body, rate_limit_key=key, limit=limit)
