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
    Challenge,
    ChallengeCreate,
    ChallengePublic,
    ChallengesPublic,
    ChallengeUpdate,
    Message,
)

router = APIRouter(prefix="/challenges", tags=["challenges"])


@router.get("/", response_model=ChallengesPublic)
def read_challenges(
    session: SessionDep, ctx: VisibilityDep, skip: int = 0, limit: int = 100
) -> Any:
    rows, count = list_visible(session, Challenge, ctx, skip=skip, limit=limit)
    return ChallengesPublic(data=rows, count=count)


@router.get("/{id}", response_model=ChallengePublic)
def read_challenge(session: SessionDep, ctx: VisibilityDep, id: uuid.UUID) -> Any:
    return get_visible_or_404(session, Challenge, id, ctx, "Challenge")


@router.post("/", response_model=ChallengePublic)
def create_challenge(
    *, session: SessionDep, ctx: CurrentVisibility, challenge_in: ChallengeCreate
) -> Any:
    """
    Create a challenge. With ``submit_for_approval`` the challenge goes straight to
    the submission gate and the requester is told when the review is due.
    """
    challenge = crud.create_entity(
        session=session,
        model=Challenge,
        obj_in=challenge_in,
        created_by=ctx.user_email,
        exclude={"submit_for_approval"},
        extra=municipality_defaults(ctx, challenge_in),
    )
    audit.log_crud_operation(
        session, audit.CREATE, "challenge", challenge.id, ctx.user_email, new_values=challenge
    )
    if challenge_in.submit_for_approval:
        open_creation_approval(
            session, entity_type="challenge", entity=challenge, requester_email=ctx.user_email
        )
    else:
        notify_created(session, entity_type="challenge", entity=challenge, requester_email=ctx.user_email)
    return challenge


@router.patch("/{id}", response_model=ChallengePublic)
def update_challenge(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, challenge_in: ChallengeUpdate
) -> Any:
    challenge = get_editable_or_403(session, Challenge, id, ctx, "Challenge")
    try:
        check_manual_status(challenge_in.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    old_values = audit.snapshot(challenge)
    challenge = crud.update_entity(session=session, db_obj=challenge, obj_in=challenge_in)
    action = audit.STATUS_CHANGE if old_values and old_values["status"] != challenge.status else audit.UPDATE
    audit.log_crud_operation(
        session, action, "challenge", id, ctx.user_email, old_values=old_values, new_values=challenge
    )
    return challenge


@router.delete("/{id}")
def delete_challenge(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Message:
    challenge = get_editable_or_403(session, Challenge, id, ctx, "Challenge")
    crud.soft_delete_entity(session=session, db_obj=challenge)
    audit.log_crud_operation(session, audit.DELETE, "challenge", id, ctx.user_email)
    return Message(message="Challenge deleted successfully")
