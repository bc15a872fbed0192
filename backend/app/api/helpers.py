import uuid
from typing import Any, TypeVar

from fastapi import HTTPException
from sqlmodel import Session, SQLModel, func, select

from app.visibility import VisibilityContext, apply_visibility, can_edit, is_visible

TableT = TypeVar("TableT", bound=SQLModel)


def list_visible(
    session: Session,
    model: type[TableT],
    ctx: VisibilityContext,
    *,
    skip: int = 0,
    limit: int = 100,
) -> tuple[list[TableT], int]:
    """One page of the rows ``ctx`` may see, newest first, plus the total count."""
    count_statement = apply_visibility(select(func.count()).select_from(model), model, ctx)
    count = session.exec(count_statement).one()

    statement = apply_visibility(select(model), model, ctx)
    if "created_at" in model.model_fields:
        statement = statement.order_by(model.created_at.desc())  # type: ignore[attr-defined]
    rows = session.exec(statement.offset(skip).limit(limit)).all()
    return list(rows), count


def get_visible_or_404(
    session: Session, model: type[TableT], id: uuid.UUID, ctx: VisibilityContext, label: str
) -> TableT:
    row = session.get(model, id)
    if row is None or not is_visible(ctx, row):
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def get_editable_or_403(
    session: Session, model: type[TableT], id: uuid.UUID, ctx: VisibilityContext, label: str
) -> TableT:
    row = get_visible_or_404(session, model, id, ctx, label)
    if not can_edit(ctx, row):
        raise HTTPException(status_code=403, detail="Not enough permissions")
    return row


def municipality_defaults(ctx: VisibilityContext, obj_in: Any) -> dict[str, Any]:
    """
    Municipal staff may only create rows for their own municipality; rows they
    create without one are assigned to it.
    """
    if ctx.municipality_id is None or "municipality_id" not in type(obj_in).model_fields:
        return {}
    municipality_id = getattr(obj_in, "municipality_id", None)
    if municipality_id is None:
        return {"municipality_id": ctx.municipality_id}
    if municipality_id != ctx.municipality_id:
        raise HTTPException(status_code=403, detail="Not enough permissions for this municipality")
    return {}
