import uuid
from typing import Any

from fastapi import APIRouter

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
    Partnership,
    PartnershipCreate,
    PartnershipPublic,
    PartnershipsPublic,
    PartnershipUpdate,
)

router = APIRouter(prefix="/partnerships", tags=["partnerships"])


@router.get("/", response_model=PartnershipsPublic)
def read_partnerships(session: SessionDep, ctx: VisibilityDep, skip: int = 0, limit: int = 100) -> Any:
    rows, count = list_visible(session, Partnership, ctx, skip=skip, limit=limit)
    return PartnershipsPublic(data=rows, count=count)


@router.get("/{id}", response_model=PartnershipPublic)
def read_partnership(session: SessionDep, ctx: VisibilityDep, id: uuid.UUID) -> Any:
    return get_visible_or_404(session, Partnership, id, ctx, "Partnership")


@router.post("/", response_model=PartnershipPublic)
def create_partnership(*, session: SessionDep, ctx: CurrentVisibility, partnership_in: PartnershipCreate) -> Any:
    partnership = crud.create_entity(
        session=session,
        model=Partnership,
        obj_in=partnership_in,
        created_by=ctx.user_email,
        extra=municipality_defaults(ctx, partnership_in),
    )
    audit.log_crud_operation(session, audit.CREATE, "partnership", partnership.id, ctx.user_email, new_values=partnership)
    return partnership


@router.patch("/{id}", response_model=PartnershipPublic)
def update_partnership(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, partnership_in: PartnershipUpdate
) -> Any:
    partnership = get_editable_or_403(session, Partnership, id, ctx, "Partnership")
    old_values = audit.snapshot(partnership)
    partnership = crud.update_entity(session=session, db_obj=partnership, obj_in=partnership_in)
    audit.log_crud_operation(
        session, audit.UPDATE, "partnership", id, ctx.user_email, old_values=old_values, new_values=partnership
    )
    return partnership


@router.delete("/{id}")
def delete_partnership(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Message:
    partnership = get_editable_or_403(session, Partnership, id, ctx, "Partnership")
    crud.soft_delete_entity(session=session, db_obj=partnership)
    audit.log_crud_operation(session, audit.DELETE, "partnership", id, ctx.user_email)
    return Message(message="Partnership deleted successfully")
