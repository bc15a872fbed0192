import uuid
from typing import Any

from fastapi import APIRouter, HTTPException

from app import audit, crud
from app.api.deps import CurrentVisibility, SessionDep, VisibilityDep
from app.api.helpers import get_editable_or_403, get_visible_or_404, list_visible
from app.models import (
    Message,
    MunicipalitiesPublic,
    Municipality,
    MunicipalityCreate,
    MunicipalityPublic,
    MunicipalityUpdate,
)
from app.visibility import VisibilityScope

router = APIRouter(prefix="/municipalities", tags=["municipalities"])


@router.get("/", response_model=MunicipalitiesPublic)
def read_municipalities(
    session: SessionDep, ctx: VisibilityDep, skip: int = 0, limit: int = 100
) -> Any:
    rows, count = list_visible(session, Municipality, ctx, skip=skip, limit=limit)
    return MunicipalitiesPublic(data=rows, count=count)


@router.get("/{id}", response_model=MunicipalityPublic)
def read_municipality(session: SessionDep, ctx: VisibilityDep, id: uuid.UUID) -> Any:
    return get_visible_or_404(session, Municipality, id, ctx, "Municipality")


@router.post("/", response_model=MunicipalityPublic)
def create_municipality(
    *, session: SessionDep, ctx: CurrentVisibility, municipality_in: MunicipalityCreate
) -> Any:
    if ctx.scope != VisibilityScope.NATIONAL:
        raise HTTPException(status_code=403, detail="Not enough permissions")
    municipality = crud.create_entity(session=session, model=Municipality, obj_in=municipality_in)
    audit.log_crud_operation(
        session,
        audit.CREATE,
        "municipality",
        municipality.id,
        ctx.user_email,
        new_values=audit.snapshot(municipality),
    )
    return municipality


@router.patch("/{id}", response_model=MunicipalityPublic)
def update_municipality(
    *,
    session: SessionDep,
    ctx: CurrentVisibility,
    id: uuid.UUID,
    municipality_in: MunicipalityUpdate,
) -> Any:
    municipality = get_editable_or_403(session, Municipality, id, ctx, "Municipality")
    old_values = audit.snapshot(municipality)
    municipality = crud.update_entity(session=session, db_obj=municipality, obj_in=municipality_in)
    audit.log_crud_operation(
        session,
        audit.UPDATE,
        "municipality",
        id,
        ctx.user_email,
        old_values=old_values,
        new_values=audit.snapshot(municipality),
    )
    return municipality


@router.delete("/{id}")
def delete_municipality(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Message:
    municipality = get_editable_or_403(session, Municipality, id, ctx, "Municipality")
    crud.soft_delete_entity(session=session, db_obj=municipality)
    audit.log_crud_operation(session, audit.DELETE, "municipality", id, ctx.user_email)
    return Message(message="Municipality deleted successfully")
