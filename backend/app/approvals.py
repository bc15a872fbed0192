"""Approval workflow shared by the entity routes: open on creation, decide, expose."""

import logging
from datetime import datetime
from typing import Any

from sqlmodel import Session

from app import audit
from app.models import (
    ApprovalDecision,
    ApprovalRequest,
    ApprovalRequestPublic,
    Challenge,
    Program,
    get_datetime_utc,
)
from app.notifications import notify_safely
from app.sla import CREATION_APPROVALS, CLOSED_STATUSES, get_gate, is_overdue, submit_for_approval
from app.visibility import VisibilityContext, VisibilityScope

logger = logging.getLogger(__name__)

# Entity status while an approval is pending, keyed by entity type
PENDING_STATUS = {"challenge": "submitted", "program": "pending_approval"}

# Statuses only the approval workflow may set
WORKFLOW_STATUSES = frozenset({*PENDING_STATUS.values(), *CLOSED_STATUSES})

APPROVABLE_MODELS: dict[str, Any] = {"challenge": Challenge, "program": Program}


def entity_title(entity: Any) -> str:
    return getattr(entity, "title_en", None) or getattr(entity, "name_en", None) or str(entity.id)


def open_creation_approval(
    session: Session,
    *,
    entity_type: str,
    entity: Any,
    requester_email: str | None,
) -> ApprovalRequest:
    """Open the creation approval for a new challenge or program and tell the requester."""
    gate_name, request_type, sla_days = CREATION_APPROVALS[entity_type]
    approval = submit_for_approval(
        session,
        entity_type=entity_type,
        entity_id=entity.id,
        gate_name=gate_name,
        request_type=request_type,
        requester_email=requester_email,
        priority=getattr(entity, "priority", None),
        sla_days=sla_days,
    )

    pending_status = PENDING_STATUS.get(entity_type)
    if pending_status and getattr(entity, "status", None) != pending_status:
        entity.status = pending_status
        session.add(entity)
        session.commit()

    notify_safely(
        session,
        type="approval_requested",
        title=f"Approval requested: {entity_title(entity)}",
        message=f"Your {entity_type} was submitted for approval. Due {approval.sla_due_date:%Y-%m-%d %H:%M} UTC.",
        entity_type=entity_type,
        entity_id=entity.id,
        recipient_emails=[requester_email],
        details={"approval_id": str(approval.id), "gate_name": gate_name},
    )
    return approval


def check_manual_status(status: str | None) -> None:
    if status in WORKFLOW_STATUSES:
        raise ValueError(f"Status '{status}' is set through the approval decision")


def notify_created(session: Session, *, entity_type: str, entity: Any, requester_email: str | None) -> None:
    notify_safely(
        session,
        type=f"{entity_type}_created",
        title=f"{entity_type.replace('_', ' ').capitalize()} created: {entity_title(entity)}",
        entity_type=entity_type,
        entity_id=entity.id,
        recipient_emails=[requester_email],
    )


def can_decide(ctx: VisibilityContext, approval: ApprovalRequest) -> bool:
    if ctx.scope == VisibilityScope.NATIONAL:
        return True
    required_role = (approval.details or {}).get("required_role")
    if required_role is None:
        gate = get_gate(approval.entity_type, approval.gate_name)
        required_role = gate.required_role if gate else None
    return required_role is not None and required_role in ctx.roles


def decide_approval(
    session: Session,
    *,
    approval: ApprovalRequest,
    decision: ApprovalDecision,
    approver_email: str | None,
) -> ApprovalRequest:
    if approval.approval_status in CLOSED_STATUSES:
        raise ValueError(f"Approval request is already {approval.approval_status}")
    if not decision.approved and not decision.reason:
        raise ValueError("A rejection reason is required")

    now = get_datetime_utc()
    status = "approved" if decision.approved else "rejected"
    approval.approval_status = status
    approval.approver_email = approver_email
    approval.updated_at = now
    if decision.approved:
        approval.approved_at = now
    else:
        approval.rejection_reason = decision.reason
    session.add(approval)

    model = APPROVABLE_MODELS.get(approval.entity_type)
    entity = session.get(model, approval.entity_id) if model else None
    old_status = getattr(entity, "status", None)
    if entity is not None:
        entity.status = status
        entity.updated_at = now
        session.add(entity)
    session.commit()
    session.refresh(approval)

    logger.info("Approval %s %s by %s", approval.id, status, approver_email)
    audit.log_crud_operation(
        session,
        audit.APPROVE if decision.approved else audit.REJECT,
        approval.entity_type,
        approval.entity_id,
        approver_email,
        old_values={"status": old_status},
        new_values={"status": status, "reason": decision.reason},
    )
    notify_safely(
        session,
        type=f"approval_{status}",
        title=f"Your {approval.entity_type} was {status}",
        message=decision.reason,
        entity_type=approval.entity_type,
        entity_id=approval.entity_id,
        recipient_emails=[approval.requester_email],
        send_email_copy=True,
    )
    return approval


def to_public(approval: ApprovalRequest, now: datetime | None = None) -> ApprovalRequestPublic:
    return ApprovalRequestPublic.model_validate(
        approval, update={"is_overdue": is_overdue(approval, now)}
    )
