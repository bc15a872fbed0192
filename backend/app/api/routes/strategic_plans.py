import uuid
from typing import Any

from fastapi import APIRouter, HTTPException

from app import audit, crud
from app.api.deps import CurrentVisibility, SessionDep, VisibilityDep
from app.api.helpers import (
    get_editable_or_403,
    get_visible_or_404,
    list_visible,
    municipality_defaults,
)
from app.models import (
    Message,
    StrategicPlan,
    StrategicPlanCreate,
    StrategicPlanPublic,
    StrategicPlansPublic,
    StrategicPlanUpdate,
)

router = APIRouter(prefix="/strategic-plans", tags=["strategic-plans"])


def check_years(start_year: int | None, end_year: int | None) -> None:
    if start_year and end_year and end_year < start_year:
        raise HTTPException(status_code=400, detail="end_year must not be before start_year")


@router.get("/", response_model=StrategicPlansPublic)
def read_plans(session: SessionDep, ctx: VisibilityDep, skip: int = 0, limit: int = 100) -> Any:
    rows, count = list_visible(session, StrategicPlan, ctx, skip=skip, limit=limit)
    return StrategicPlansPublic(data=rows, count=count)


@router.get("/{id}", response_model=StrategicPlanPublic)
def read_plan(session: SessionDep, ctx: VisibilityDep, id: uuid.UUID) -> Any:
    return get_visible_or_404(session, StrategicPlan, id, ctx, "Strategic plan")


@router.post("/", response_model=StrategicPlanPublic)
def create_plan(*, session: SessionDep, ctx: CurrentVisibility, plan_in: StrategicPlanCreate) -> Any:
    check_years(plan_in.start_year, plan_in.end_year)
    plan = crud.create_entity(
        session=session,
        model=StrategicPlan,
        obj_in=plan_in,
        created_by=ctx.user_email,
        extra=municipality_defaults(ctx, plan_in),
    )
    audit.log_crud_operation(session, audit.CREATE, "strategic_plan", plan.id, ctx.user_email, new_values=plan)
    return plan


@router.patch("/{id}", response_model=StrategicPlanPublic)
def update_plan(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, plan_in: StrategicPlanUpdate
) -> Any:
    plan = get_editable_or_403(session, StrategicPlan, id, ctx, "Strategic plan")
    check_years(
        plan_in.start_year if plan_in.start_year is not None else plan.start_year,
        plan_in.end_year if plan_in.end_year is not None else plan.end_year,
    )
    old_values = audit.snapshot(plan)
    plan = crud.update_entity(session=session, db_obj=plan, obj_in=plan_in)
    audit.log_crud_operation(
        session, audit.UPDATE, "strategic_plan", id, ctx.user_email, old_values=old_values, new_values=plan
    )
    return plan


@router.delete("/{id}")
def delete_plan(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Message:
    plan = get_editable_or_403(session, StrategicPlan, id, ctx, "Strategic plan")
    crud.soft_delete_entity(session=session, db_obj=plan)
    audit.log_crud_operation(session, audit.DELETE, "strategic_plan", id, ctx.user_email)
    return Message(message="Strategic plan deleted successfully")
