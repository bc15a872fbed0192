import uuid
from typing import Any, TypeVar

from sqlmodel import Session, SQLModel, select

from app.core.security import get_password_hash, verify_password
from app.models import (
    CitizenIdea,
    CitizenIdeaCreate,
    User,
    UserCreate,
    UserUpdate,
    get_datetime_utc,
)

TableT = TypeVar("TableT", bound=SQLModel)


def create_user(*, session: Session, user_create: UserCreate) -> User:
    db_obj = User.model_validate(
        user_create, update={"hashed_password": get_password_hash(user_create.password)}
    )
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def update_user(*, session: Session, db_user: User, user_in: UserUpdate) -> Any:
    user_data = user_in.model_dump(exclude_unset=True)
    extra_data = {}
    if "password" in user_data:
        password = user_data["password"]
        hashed_password = get_password_hash(password)
        extra_data["hashed_password"] = hashed_password
    db_user.sqlmodel_update(user_data, update=extra_data)
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def get_user_by_email(*, session: Session, email: str) -> User | None:
    statement = select(User).where(User.email == email)
    session_user = session.exec(statement).first()
    return session_user


# Dummy hash to use for timing attack prevention when user is not found
# This is an Argon2 hash of a random password, used to ensure constant-time comparison
DUMMY_HASH = "$argon2id$v=19$m=65536,t=3,p=4$MjQyZWE1MzBjYjJlZTI0Yw$YTU4NGM5ZTZmYjE2NzZlZjY0ZWY3ZGRkY2U2OWFjNjk"


def authenticate(*, session: Session, email: str, password: str) -> User | None:
    db_user = get_user_by_email(session=session, email=email)
    if not db_user:
        # Prevent timing attacks by running password verification even when user doesn't exist
        verify_password(password, DUMMY_HASH)
        return None
    verified, updated_password_hash = verify_password(password, db_user.hashed_password)
    if not verified:
        return None
    if updated_password_hash:
        db_user.hashed_password = updated_password_hash
        session.add(db_user)
        session.commit()
        session.refresh(db_user)
    return db_user


# Entity tables (challenges, pilots, programs, ...) share one set of helpers.

def create_entity(
    *,
    session: Session,
    model: type[TableT],
    obj_in: SQLModel,
    created_by: str | None = None,
    exclude: set[str] | None = None,
    extra: dict[str, Any] | None = None,
) -> TableT:
    data = obj_in.model_dump(exclude=exclude or set())
    update = dict(extra or {})
    if created_by is not None and "created_by" in model.model_fields:
        update["created_by"] = created_by
    db_obj = model.model_validate(data, update=update)
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def update_entity(*, session: Session, db_obj: TableT, obj_in: SQLModel) -> TableT:
    data = obj_in.model_dump(exclude_unset=True)
    extra = {}
    if "updated_at" in type(db_obj).model_fields:
        extra["updated_at"] = get_datetime_utc()
    db_obj.sqlmodel_update(data, update=extra)
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def soft_delete_entity(*, session: Session, db_obj: TableT) -> TableT:
    db_obj.is_deleted = True  # type: ignore[attr-defined]
    if "updated_at" in type(db_obj).model_fields:
        db_obj.updated_at = get_datetime_utc()  # type: ignore[attr-defined]
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def get_live_entity(*, session: Session, model: type[TableT], id: uuid.UUID) -> TableT | None:
    db_obj = session.get(model, id)
    if db_obj is None or getattr(db_obj, "is_deleted", False):
        return None
    return db_obj


def create_citizen_idea(
    *, session: Session, idea_in: CitizenIdeaCreate, user: User | None
) -> CitizenIdea:
    update: dict[str, Any] = {}
    if user is not None:
        update["user_id"] = user.id
        update["submitter_email"] = idea_in.submitter_email or user.email
    db_idea = CitizenIdea.model_validate(idea_in, update=update)
    session.add(db_idea)
    session.commit()
    session.refresh(db_idea)
    return db_idea
