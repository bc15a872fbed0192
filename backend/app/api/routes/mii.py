from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlmodel import col, select

from app.api.deps import CurrentVisibility, SessionDep
from app.mii import NoMunicipalitiesFound, calculate_mii
from app.models import MIICalculateRequest, MIIResult
from app.visibility import VisibilityScope

router = APIRouter(prefix="/mii", tags=["mii"])


@router.post("/calculate")
def calculate(session: SessionDep, ctx: CurrentVisibility, body: MIICalculateRequest) -> dict[str, Any]:
    """Recalculate the Municipal Innovation Index for one municipality or all of them."""
    if ctx.scope != VisibilityScope.NATIONAL:
        raise HTTPException(status_code=403, detail="Not enough permissions")
    try:
        return calculate_mii(
            session, municipality_id=body.municipality_id, calculate_all=body.calculate_all
        )
    except NoMunicipalitiesFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/results", response_model=list[MIIResult])
def read_results(session: SessionDep, year: int | None = None) -> Any:
    """Published ranking for a year, best first."""
    statement = (
        select(MIIResult)
        .where(
            MIIResult.assessment_year == (year or date.today().year),
            MIIResult.is_published == True,  # noqa: E712
        )
        .order_by(col(MIIResult.overall_score).desc())
    )
    return session.exec(statement).all()
