import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import col, select

from app.api.deps import CurrentVisibility, SessionDep, get_current_active_superuser
from app.approvals import can_decide, decide_approval, to_public
from app.models import ApprovalDecision, ApprovalRequest, ApprovalRequestPublic, get_datetime_utc
from app.sla import escalate_overdue
from app.visibility import VisibilityScope

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("/pending", response_model=list[ApprovalRequestPublic])
def read_pending_approvals(
    session: SessionDep,
    ctx: CurrentVisibility,
    entity_type: str | None = None,
    overdue_only: bool = False,
    skip: int = 0,
    limit: int = 100,
) -> Any:
    """Pending approvals the caller may decide, earliest due first."""
    statement = select(ApprovalRequest).where(ApprovalRequest.approval_status == "pending")
    if entity_type:
        statement = statement.where(ApprovalRequest.entity_type == entity_type)
    statement = statement.order_by(col(ApprovalRequest.sla_due_date).asc())

    now = get_datetime_utc()
    approvals = [
        to_public(approval, now)
        for approval in session.exec(statement).all()
        if ctx.scope == VisibilityScope.NATIONAL
        or can_decide(ctx, approval)
        or approval.requester_email == ctx.user_email
    ]
    if overdue_only:
        approvals = [approval for approval in approvals if approval.is_overdue]
    return approvals[skip : skip + limit]


@router.post("/{id}/decision", response_model=ApprovalRequestPublic)
def decide(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, decision: ApprovalDecision
) -> Any:
    approval = session.get(ApprovalRequest, id)
    if not approval:
        raise HTTPException(status_code=404, detail="Approval request not found")
    if not can_decide(ctx, approval):
        raise HTTPException(status_code=403, detail="Not enough permissions")
    try:
        approval = decide_approval(
            session, approval=approval, decision=decision, approver_email=ctx.user_email
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return to_public(approval)


@router.post(
    "/escalate",
    dependencies=[Depends(get_current_active_superuser)],
    response_model=list[ApprovalRequestPublic],
)
def escalate(session: SessionDep) -> Any:
    """Bump the escalation level of overdue approvals; meant for a periodic job."""
    now = get_datetime_utc()
    return [to_public(approval, now) for approval in escalate_overdue(session, now)]
