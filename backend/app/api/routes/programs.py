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
from app.approvals import check_manual_status, notify_created, open_creation_approval
from app.models import (
    Message,
    Program,
    ProgramCreate,
    ProgramPublic,
    ProgramsPublic,
    ProgramUpdate,
)

router = APIRouter(prefix="/programs", tags=["programs"])


@router.get("/", response_model=ProgramsPublic)
def read_programs(
    session: SessionDep, ctx: VisibilityDep, skip: int = 0, limit: int = 100
) -> Any:
    rows, count = list_visible(session, Program, ctx, skip=skip, limit=limit)
    return ProgramsPublic(data=rows, count=count)


@router.get("/{id}", response_model=ProgramPublic)
def read_program(session: SessionDep, ctx: VisibilityDep, id: uuid.UUID) -> Any:
    return get_visible_or_404(session, Program, id, ctx, "Program")


@router.post("/", response_model=ProgramPublic)
def create_program(*, session: SessionDep, ctx: CurrentVisibility, program_in: ProgramCreate) -> Any:
    if program_in.start_date and program_in.end_date and program_in.end_date < program_in.start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    program = crud.create_entity(
        session=session,
        model=Program,
        obj_in=program_in,
        created_by=ctx.user_email,
        exclude={"submit_for_approval"},
        extra=municipality_defaults(ctx, program_in),
    )
    audit.log_crud_operation(
        session, audit.CREATE, "program", program.id, ctx.user_email, new_values=program
    )
    if program_in.submit_for_approval:
        open_creation_approval(
            session, entity_type="program", entity=program, requester_email=ctx.user_email
        )
    else:
        notify_created(session, entity_type="program", entity=program, requester_email=ctx.user_email)
    return program


@router.patch("/{id}", response_model=ProgramPublic)
def update_program(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, program_in: ProgramUpdate
) -> Any:
    program = get_editable_or_403(session, Program, id, ctx, "Program")
    try:
        check_manual_status(program_in.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    start = program_in.start_date or program.start_date
    end = program_in.end_date or program.end_date
    if start and end and end < start:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    old_values = audit.snapshot(program)
    program = crud.update_entity(session=session, db_obj=program, obj_in=program_in)
    action = audit.STATUS_CHANGE if old_values and old_values["status"] != program.status else audit.UPDATE
    audit.log_crud_operation(
        session, action, "program", id, ctx.user_email, old_values=old_values, new_values=program
    )
    return program


@router.delete("/{id}")
def delete_program(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Message:
    program = get_editable_or_403(session, Program, id, ctx, "Program")
    crud.soft_delete_entity(session=session, db_obj=program)
    audit.log_crud_operation(session, audit.DELETE, "program", id, ctx.user_email)
    return Message(message="Program deleted successfully")
