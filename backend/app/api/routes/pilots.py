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
    Challenge,
    Message,
    Pilot,
    PilotCreate,
    PilotPublic,
    PilotsPublic,
    PilotStageUpdate,
    PilotUpdate,
    get_datetime_utc,
)
from app.notifications import notify_safely

router = APIRouter(prefix="/pilots", tags=["pilots"])

PILOT_STAGES = (
    "design",
    "approval_pending",
    "approved",
    "preparation",
    "active",
    "monitoring",
    "evaluation",
    "completed",
    "scaled",
    "on_hold",
    "terminated",
)
FINAL_STAGES = {"scaled", "terminated"}


@router.get("/", response_model=PilotsPublic)
def read_pilots(session: SessionDep, ctx: VisibilityDep, skip: int = 0, limit: int = 100) -> Any:
    rows, count = list_visible(session, Pilot, ctx, skip=skip, limit=limit)
    return PilotsPublic(data=rows, count=count)


@router.get("/{id}", response_model=PilotPublic)
def read_pilot(session: SessionDep, ctx: VisibilityDep, id: uuid.UUID) -> Any:
    return get_visible_or_404(session, Pilot, id, ctx, "Pilot")


@router.post("/", response_model=PilotPublic)
def create_pilot(*, session: SessionDep, ctx: CurrentVisibility, pilot_in: PilotCreate) -> Any:
    if pilot_in.challenge_id is not None:
        challenge = crud.get_live_entity(session=session, model=Challenge, id=pilot_in.challenge_id)
        if challenge is None:
            raise HTTPException(status_code=400, detail="Linked challenge does not exist")
    pilot = crud.create_entity(
        session=session,
        model=Pilot,
        obj_in=pilot_in,
        created_by=ctx.user_email,
        extra=municipality_defaults(ctx, pilot_in),
    )
    audit.log_crud_operation(session, audit.CREATE, "pilot", pilot.id, ctx.user_email, new_values=pilot)
    return pilot


@router.patch("/{id}", response_model=PilotPublic)
def update_pilot(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, pilot_in: PilotUpdate
) -> Any:
    pilot = get_editable_or_403(session, Pilot, id, ctx, "Pilot")
    old_values = audit.snapshot(pilot)
    pilot = crud.update_entity(session=session, db_obj=pilot, obj_in=pilot_in)
    audit.log_crud_operation(
        session, audit.UPDATE, "pilot", id, ctx.user_email, old_values=old_values, new_values=pilot
    )
    return pilot


@router.post("/{id}/stage", response_model=PilotPublic)
def transition_pilot_stage(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, stage_in: PilotStageUpdate
) -> Any:
    """Move a pilot to another lifecycle stage. Scaled and terminated pilots are final."""
    pilot = get_editable_or_403(session, Pilot, id, ctx, "Pilot")
    if stage_in.stage not in PILOT_STAGES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid stage '{stage_in.stage}'. Allowed: {', '.join(PILOT_STAGES)}",
        )
    if pilot.stage == stage_in.stage:
        raise HTTPException(status_code=400, detail=f"Pilot is already in stage '{pilot.stage}'")
    if pilot.stage in FINAL_STAGES:
        raise HTTPException(status_code=400, detail=f"Pilot stage '{pilot.stage}' is final")

    old_stage = pilot.stage
    pilot.stage = stage_in.stage
    pilot.updated_at = get_datetime_utc()
    session.add(pilot)
    session.commit()
    session.refresh(pilot)

    audit.log_crud_operation(
        session,
        audit.STATUS_CHANGE,
        "pilot",
        id,
        ctx.user_email,
        old_values={"stage": old_stage},
        new_values={"stage": pilot.stage, "notes": stage_in.notes},
    )
    notify_safely(
        session,
        type="pilot_stage_changed",
        title=f"Pilot {pilot.title_en} moved to {pilot.stage}",
        message=stage_in.notes,
        entity_type="pilot",
        entity_id=pilot.id,
        recipient_emails=[pilot.created_by],
        details={"from": old_stage, "to": pilot.stage},
    )
    return pilot


@router.delete("/{id}")
def delete_pilot(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Message:
    pilot = get_editable_or_403(session, Pilot, id, ctx, "Pilot")
    crud.soft_delete_entity(session=session, db_obj=pilot)
    audit.log_crud_operation(session, audit.DELETE, "pilot", id, ctx.user_email)
    return Message(message="Pilot deleted successfully")
