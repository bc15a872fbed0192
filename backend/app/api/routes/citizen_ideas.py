import uuid
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from app import audit, crud
from app.api.deps import CurrentUser, CurrentVisibility, OptionalUser, SessionDep
from app.models import (
    Challenge,
    CitizenIdea,
    CitizenIdeaCreate,
    CitizenIdeaPublic,
    CitizenVote,
    get_datetime_utc,
)
from app.notifications import notify_safely
from app.visibility import VisibilityScope

router = APIRouter(prefix="/citizen-ideas", tags=["citizen-ideas"])


@router.post("/", response_model=CitizenIdeaPublic)
def submit_idea(*, session: SessionDep, current_user: OptionalUser, idea_in: CitizenIdeaCreate) -> Any:
    """Anyone may submit an idea; signed-in submitters are linked to it."""
    idea = crud.create_citizen_idea(session=session, idea_in=idea_in, user=current_user)
    audit.log_crud_operation(
        session, audit.CREATE, "citizen_idea", idea.id, idea.submitter_email, new_values=idea
    )
    return idea


@router.get("/mine", response_model=list[CitizenIdeaPublic])
def read_my_ideas(session: SessionDep, current_user: CurrentUser) -> Any:
    statement = (
        select(CitizenIdea)
        .where(
            (CitizenIdea.user_id == current_user.id)
            | (CitizenIdea.submitter_email == current_user.email)
        )
        .order_by(col(CitizenIdea.created_at).desc())
    )
    return session.exec(statement).all()


@router.post("/{id}/vote", response_model=CitizenIdeaPublic)
def vote_for_idea(session: SessionDep, current_user: CurrentUser, id: uuid.UUID) -> Any:
    idea = session.get(CitizenIdea, id)
    if not idea:
        raise HTTPException(status_code=404, detail="Idea not found")

    existing = session.exec(
        select(CitizenVote).where(CitizenVote.idea_id == id, CitizenVote.user_id == current_user.id)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="You have already voted for this idea")

    session.add(CitizenVote(idea_id=id, user_id=current_user.id))
    idea.votes_count += 1
    session.add(idea)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=400, detail="You have already voted for this idea")
    session.refresh(idea)
    return idea


@router.post("/{id}/convert", response_model=CitizenIdeaPublic)
def convert_idea_to_challenge(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Any:
    """Staff turn a citizen idea into a draft challenge for their municipality."""
    if ctx.scope == VisibilityScope.GLOBAL:
        raise HTTPException(status_code=403, detail="Not enough permissions")
    idea = session.get(CitizenIdea, id)
    if not idea:
        raise HTTPException(status_code=404, detail="Idea not found")
    if ctx.scope == VisibilityScope.MUNICIPAL and idea.municipality_id not in (None, ctx.municipality_id):
        raise HTTPException(status_code=403, detail="Not enough permissions for this municipality")
    if idea.converted_challenge_id is not None:
        raise HTTPException(status_code=400, detail="Idea was already converted")

    challenge = Challenge(
        title_en=idea.title,
        description_en=idea.description,
        category=idea.category,
        municipality_id=idea.municipality_id or ctx.municipality_id,
        challenge_type="citizen_idea",
        created_by=ctx.user_email,
    )
    session.add(challenge)
    old_status = idea.status
    idea.status = "converted"
    idea.converted_challenge_id = challenge.id
    session.add(idea)
    session.commit()
    session.refresh(idea)

    audit.log_crud_operation(
        session, audit.CREATE, "challenge", challenge.id, ctx.user_email, new_values=challenge
    )
    audit.log_crud_operation(
        session,
        audit.STATUS_CHANGE,
        "citizen_idea",
        idea.id,
        ctx.user_email,
        old_values={"status": old_status},
        new_values={"status": idea.status, "converted_challenge_id": str(challenge.id)},
    )
    notify_safely(
        session,
        type="idea_converted",
        title=f"Your idea '{idea.title}' became a challenge",
        entity_type="challenge",
        entity_id=challenge.id,
        recipient_emails=[idea.submitter_email],
        details={"idea_id": str(idea.id), "converted_at": get_datetime_utc().isoformat()},
    )
    return idea
