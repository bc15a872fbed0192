"""
Approval gates, SLA due dates and escalation levels.

An approval request's due date is the gate's SLA (in days) scaled by the
priority multiplier of the entity being approved. Once past due, a request
escalates one level immediately, a second level when it is late by half of
its SLA window, and a third level when it is late by a full window.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlmodel import Session, select

from app.ai_cache import as_utc
from app.models import ApprovalRequest, Challenge, get_datetime_utc

logger = logging.getLogger(__name__)

DEFAULT_SLA_DAYS = 7
MAX_ESCALATION_LEVEL = 3

CLOSED_STATUSES = {"approved", "rejected"}

PRIORITY_MULTIPLIERS: dict[str, float] = {
    "tier_1": 0.5,
    "critical": 0.5,
    "high": 0.75,
    "tier_2": 1.0,
    "medium": 1.0,
    "tier_3": 1.5,
    "low": 1.5,
}


@dataclass(frozen=True)
class Gate:
    name: str
    label_en: str
    label_ar: str
    required_role: str
    sla_days: int
    type: str = "approval"


GATES: dict[str, list[Gate]] = {
    "policy_recommendation": [
        Gate("legal_review", "Legal Review", "المراجعة القانونية", "legal_officer", 5, "review"),
        Gate("public_consultation", "Public Consultation", "الاستشارة العامة", "policy_officer", 30, "review"),
        Gate("council_approval", "Council Approval", "موافقة المجلس", "council_member", 14),
        Gate("ministry_approval", "Ministry Approval", "موافقة الوزارة", "ministry_representative", 21),
    ],
    "challenge": [
        Gate("submission", "Challenge Submission", "تقديم التحدي", "challenge_reviewer", 3, "submission"),
        Gate("review", "Challenge Review", "مراجعة التحدي", "challenge_reviewer", 7, "review"),
        Gate("treatment_approval", "Treatment Plan Approval", "موافقة خطة المعالجة", "municipal_strategist", 7),
        Gate("resolution", "Resolution Approval", "موافقة الحل", "challenge_approver", 5),
    ],
    "pilot": [
        Gate("design_review", "Pilot Design Review", "مراجعة تصميم التجربة", "pilot_reviewer", 5, "review"),
        Gate("launch_approval", "Launch Approval", "موافقة الإطلاق", "pilot_approver", 7),
    ],
    "rd_proposal": [
        Gate("submission", "Proposal Submission", "تقديم المقترح", "rd_reviewer", 3, "submission"),
        Gate("academic_review", "Academic Review", "المراجعة الأكاديمية", "expert_reviewer", 14, "review"),
    ],
    "program_application": [
        Gate("submission", "Application Submission", "تقديم الطلب", "program_screener", 3, "submission"),
        Gate("selection", "Cohort Selection", "اختيار المجموعة", "program_manager", 7),
    ],
    "matchmaker_application": [
        Gate("screening", "Initial Screening", "الفحص الأولي", "matchmaker_screener", 2, "review"),
        Gate("evaluation", "Match Evaluation", "تقييم المطابقة", "matchmaker_evaluator", 7, "review"),
    ],
    "citizen_idea": [
        Gate("screening", "Idea Screening", "فحص الفكرة", "idea_moderator", 2, "review"),
        Gate("evaluation", "Expert Evaluation", "تقييم الخبراء", "idea_evaluator", 7, "review"),
    ],
    "innovation_proposal": [
        Gate("submission", "Proposal Submission", "تقديم المقترح", "innovation_screener", 3, "submission"),
        Gate("screening", "Detailed Screening", "الفحص التفصيلي", "innovation_screener", 5, "review"),
        Gate("stakeholder_alignment", "Stakeholder Alignment", "توافق أصحاب المصلحة", "municipal_strategist", 7),
    ],
    "program": [
        Gate("launch_approval", "Program Launch Approval", "موافقة إطلاق البرنامج", "program_approver", 5),
        Gate("selection_approval", "Cohort Selection Approval", "موافقة اختيار الدفعة", "program_manager", 7),
        Gate("mid_review", "Mid-Program Review", "المراجعة النصفية", "program_manager", 3, "review"),
        Gate("completion_review", "Program Completion Review", "مراجعة اكتمال البرنامج", "program_approver", 10, "review"),
    ],
    "solution": [
        Gate("submission", "Solution Submission", "تقديم الحل", "solution_reviewer", 3, "submission"),
        Gate("technical_verification", "Technical Verification", "التحقق التقني", "expert_reviewer", 7, "review"),
        Gate("deployment_readiness", "Deployment Readiness", "جاهزية النشر", "solution_approver", 5),
        Gate("publishing", "Marketplace Publishing", "النشر في السوق", "solution_approver", 2),
    ],
}

# Approvals opened when an entity is created outside the gate pipeline
CREATION_APPROVALS: dict[str, tuple[str, str, int]] = {
    "program": ("launch_approval", "program_approval", 5),
    "challenge": ("submission", "challenge_approval", 3),
}


def get_entity_gates(entity_type: str) -> list[Gate]:
    return GATES.get(entity_type, [])


def get_gate(entity_type: str, gate_name: str) -> Gate | None:
    for gate in get_entity_gates(entity_type):
        if gate.name == gate_name:
            return gate
    return None


def priority_multiplier(priority: str | None) -> float:
    if not priority:
        return 1.0
    return PRIORITY_MULTIPLIERS.get(priority.lower(), 1.0)


def calculate_sla_hours(sla_days: int | None, priority: str | None = None) -> float:
    days = sla_days or DEFAULT_SLA_DAYS
    return days * 24 * priority_multiplier(priority)


def calculate_due_date(
    sla_days: int | None,
    priority: str | None = None,
    submitted_at: datetime | None = None,
) -> datetime:
    start = submitted_at or get_datetime_utc()
    return start + timedelta(hours=calculate_sla_hours(sla_days, priority))


def is_overdue(approval: ApprovalRequest, now: datetime | None = None) -> bool:
    if not approval.sla_due_date or approval.approval_status in CLOSED_STATUSES:
        return False
    now = now or get_datetime_utc()
    return now > as_utc(approval.sla_due_date)


def escalation_level(approval: ApprovalRequest, now: datetime | None = None) -> int:
    now = now or get_datetime_utc()
    if not is_overdue(approval, now):
        return 0

    due = as_utc(approval.sla_due_date)  # type: ignore[arg-type]
    start = as_utc(approval.created_at) if approval.created_at else None
    window = (due - start) if start else None
    if not window or window.total_seconds() <= 0:
        return 1

    late = now - due
    if late >= window:
        return MAX_ESCALATION_LEVEL
    if late >= window / 2:
        return 2
    return 1


def submit_for_approval(
    session: Session,
    *,
    entity_type: str,
    entity_id: uuid.UUID,
    gate_name: str,
    request_type: str,
    requester_email: str | None,
    priority: str | None = None,
    sla_days: int | None = None,
    details: dict[str, Any] | None = None,
) -> ApprovalRequest:
    gate = get_gate(entity_type, gate_name)
    if sla_days is None:
        sla_days = gate.sla_days if gate else DEFAULT_SLA_DAYS

    now = get_datetime_utc()
    approval = ApprovalRequest(
        entity_type=entity_type,
        entity_id=entity_id,
        request_type=request_type,
        gate_name=gate_name,
        requester_email=requester_email,
        priority=priority,
        sla_due_date=calculate_due_date(sla_days, priority, now),
        details={"required_role": gate.required_role if gate else None, **(details or {})},
        created_at=now,
        updated_at=now,
    )
    session.add(approval)
    session.commit()
    session.refresh(approval)
    logger.info(
        "Approval %s opened for %s %s (gate=%s, due=%s)",
        approval.id,
        entity_type,
        entity_id,
        gate_name,
        approval.sla_due_date,
    )
    return approval


def escalate_overdue(session: Session, now: datetime | None = None) -> list[ApprovalRequest]:
    """Raise the escalation level of every pending request that has slipped further past due."""
    now = now or get_datetime_utc()
    pending = session.exec(
        select(ApprovalRequest).where(
            ApprovalRequest.approval_status == "pending",
            ApprovalRequest.sla_due_date != None,  # noqa: E711
        )
    ).all()

    escalated = []
    for approval in pending:
        level = escalation_level(approval, now)
        if level <= approval.escalation_level:
            continue
        approval.escalation_level = level
        approval.updated_at = now
        session.add(approval)
        if approval.entity_type == "challenge":
            challenge = session.get(Challenge, approval.entity_id)
            if challenge is not None:
                challenge.escalation_level = level
                session.add(challenge)
        escalated.append(approval)
        logger.warning(
            "Approval %s for %s %s escalated to level %s",
            approval.id,
            approval.entity_type,
            approval.entity_id,
            level,
        )

    if escalated:
        session.commit()
        for approval in escalated:
            session.refresh(approval)
    return escalated
