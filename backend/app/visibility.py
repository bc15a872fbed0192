"""
Multi-tenant visibility rules.

Every list and detail endpoint runs its query through ``apply_visibility`` so
that a caller only sees the rows their scope allows:

* ``national``  - platform admins and deputyship staff see everything.
* ``municipal`` - municipality staff see their own municipality's rows, any
  published row, and rows they created.
* ``global``    - everyone else (including anonymous callers) sees published
  rows, plus rows they created when signed in.

Soft-deleted rows are never visible.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy import or_
from sqlmodel import Session, select

from app.models import User, UserRole

logger = logging.getLogger(__name__)

NATIONAL_ROLES = {"admin"}
NATIONAL_ROLE_PREFIX = "deputyship_"
MUNICIPAL_ROLE_PREFIX = "municipality_"


class VisibilityScope(str, Enum):
    NATIONAL = "national"
    MUNICIPAL = "municipal"
    GLOBAL = "global"


@dataclass
class VisibilityContext:
    scope: VisibilityScope
    user_id: uuid.UUID | None = None
    user_email: str | None = None
    municipality_id: uuid.UUID | None = None
    roles: list[str] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


def anonymous_context() -> VisibilityContext:
    return VisibilityContext(scope=VisibilityScope.GLOBAL)


def get_active_roles(session: Session, user: User) -> list[UserRole]:
    statement = select(UserRole).where(
        or_(UserRole.user_id == user.id, UserRole.user_email == user.email),
        UserRole.is_active == True,  # noqa: E712
    )
    return list(session.exec(statement).all())


def resolve_visibility(session: Session, user: User | None) -> VisibilityContext:
    if user is None:
        return anonymous_context()

    role_rows = get_active_roles(session, user)
    roles = sorted({r.role for r in role_rows})
    base = {"user_id": user.id, "user_email": user.email, "roles": roles}

    if user.is_superuser or any(
        r in NATIONAL_ROLES or r.startswith(NATIONAL_ROLE_PREFIX) for r in roles
    ):
        return VisibilityContext(scope=VisibilityScope.NATIONAL, **base)

    for row in role_rows:
        if row.role.startswith(MUNICIPAL_ROLE_PREFIX):
            municipality_id = row.municipality_id or user.municipality_id
            if municipality_id is not None:
                return VisibilityContext(
                    scope=VisibilityScope.MUNICIPAL,
                    municipality_id=municipality_id,
                    **base,
                )
            logger.warning(
                "User %s holds %s without a municipality; falling back to global scope",
                user.email,
                row.role,
            )

    return VisibilityContext(scope=VisibilityScope.GLOBAL, **base)


def apply_visibility(statement: Any, model: Any, ctx: VisibilityContext) -> Any:
    fields = model.model_fields
    if "is_deleted" in fields:
        statement = statement.where(model.is_deleted == False)  # noqa: E712

    if ctx.scope == VisibilityScope.NATIONAL:
        return statement

    conditions = []
    if "is_published" in fields:
        conditions.append(model.is_published == True)  # noqa: E712
    if "created_by" in fields and ctx.user_email:
        conditions.append(model.created_by == ctx.user_email)
    if ctx.scope == VisibilityScope.MUNICIPAL and ctx.municipality_id is not None:
        if "municipality_id" in fields:
            conditions.append(model.municipality_id == ctx.municipality_id)

    # Tables without publication or ownership columns (the municipality
    # directory) are public.
    if not conditions:
        return statement
    return statement.where(or_(*conditions))


def is_visible(ctx: VisibilityContext, row: Any) -> bool:
    """Row-level counterpart of ``apply_visibility`` for detail endpoints."""
    if getattr(row, "is_deleted", False):
        return False
    if ctx.scope == VisibilityScope.NATIONAL:
        return True

    fields = type(row).model_fields
    if "is_published" not in fields and "created_by" not in fields and (
        ctx.scope != VisibilityScope.MUNICIPAL or "municipality_id" not in fields
    ):
        return True
    if getattr(row, "is_published", False):
        return True
    if ctx.user_email and getattr(row, "created_by", None) == ctx.user_email:
        return True
    if ctx.scope == VisibilityScope.MUNICIPAL and ctx.municipality_id is not None:
        return getattr(row, "municipality_id", None) == ctx.municipality_id
    return False


def can_edit(ctx: VisibilityContext, row: Any) -> bool:
    if not ctx.is_authenticated:
        return False
    if ctx.scope == VisibilityScope.NATIONAL:
        return True
    if ctx.scope == VisibilityScope.MUNICIPAL:
        return (
            ctx.municipality_id is not None
            and getattr(row, "municipality_id", None) == ctx.municipality_id
        )
    return ctx.user_email is not None and getattr(row, "created_by", None) == ctx.user_email
