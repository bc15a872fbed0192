"""
Role-based access control: role assignment, auto-approval, role requests,
permission checks with delegation, and a security audit.

All operations are exposed through a single action dispatcher so that the
admin console can drive them with ``{"action": ..., "payload": {...}}``.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from sqlalchemy import func
from sqlmodel import Session, col, select

from app.ai_cache import as_utc
from app.models import (
    AutoApprovalRule,
    DelegationRule,
    Municipality,
    Role,
    RoleRequest,
    RoleRequestCreate,
    User,
    UserRole,
    get_datetime_utc,
)
from app.notifications import send_role_request_notification

logger = logging.getLogger(__name__)

PERMISSION_MAP: dict[str, list[str]] = {
    "admin": ["read", "create", "update", "delete", "approve", "admin"],
    "deputyship_admin": ["read", "create", "update", "delete", "approve"],
    "deputyship_staff": ["read", "create", "update"],
    "municipality_admin": ["read", "create", "update", "delete", "approve"],
    "municipality_staff": ["read", "create", "update"],
    "municipality_coordinator": ["read", "create", "update"],
    "provider": ["read", "create"],
    "researcher": ["read", "create"],
    "expert": ["read", "create"],
    "citizen": ["read", "create"],
    "viewer": ["read"],
}

MAX_ADMINS = 5
STALE_AFTER_DAYS = 30
SEVERITY_PENALTIES = {"critical": 25, "high": 15, "warning": 5}


class UnknownAction(ValueError):
    def __init__(self, action: str, available: list[str]):
        self.action = action
        self.available_actions = available
        super().__init__(f"Unknown action: {action}")


def _uuid(value: Any) -> uuid.UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValueError(f"Invalid id: {value}")


def _require(payload: dict[str, Any], *names: str) -> None:
    for name in names:
        if not payload.get(name):
            raise ValueError(f"{name} is required")


def _email_domain(email: str | None) -> str | None:
    if not email or "@" not in email:
        return None
    return email.split("@", 1)[1].lower()


def _domain_matches(domain: str | None, value: str | None) -> bool:
    if not domain or not value:
        return False
    value = value.lower()
    return domain == value or domain.endswith("." + value)


def lookup_role_id(session: Session, role: str) -> uuid.UUID | None:
    match = session.exec(
        select(Role).where(
            (Role.code == role)
            | (func.lower(Role.name) == role.replace("_", " ").lower())
        )
    ).first()
    if match is None:
        logger.warning("No role_id found for role '%s', continuing with the role code only", role)
        return None
    return match.id


def upsert_user_role(
    session: Session,
    *,
    user_id: uuid.UUID,
    role: str,
    user_email: str | None = None,
    municipality_id: uuid.UUID | None = None,
    organization_id: uuid.UUID | None = None,
) -> UserRole:
    row = session.exec(
        select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
    ).first()
    if row is None:
        row = UserRole(user_id=user_id, role=role)
    row.user_email = user_email or row.user_email
    row.role_id = lookup_role_id(session, role)
    row.municipality_id = municipality_id
    row.organization_id = organization_id
    row.assigned_at = get_datetime_utc()
    row.revoked_at = None
    row.is_active = True
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info("Role '%s' assigned to %s (role_id=%s)", role, user_email or user_id, row.role_id)
    return row


def touch_last_activity(session: Session, user: User) -> None:
    rows = session.exec(
        select(UserRole).where(UserRole.user_id == user.id, UserRole.is_active == True)  # noqa: E712
    ).all()
    now = get_datetime_utc()
    for row in rows:
        row.last_activity = now
        session.add(row)
    if rows:
        session.commit()


# Role handlers


def assign_role(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    _require(payload, "user_id", "role")
    row = upsert_user_role(
        session,
        user_id=_uuid(payload["user_id"]),  # type: ignore[arg-type]
        role=payload["role"],
        user_email=payload.get("user_email"),
        municipality_id=_uuid(payload.get("municipality_id")),
        organization_id=_uuid(payload.get("organization_id")),
    )
    return {"assigned": True, "role": row}


def revoke_role(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    _require(payload, "user_email", "role")
    rows = session.exec(
        select(UserRole).where(
            UserRole.user_email == payload["user_email"], UserRole.role == payload["role"]
        )
    ).all()
    now = get_datetime_utc()
    for row in rows:
        row.is_active = False
        row.revoked_at = now
        session.add(row)
    session.commit()
    logger.info("Revoked role '%s' from %s (%s rows)", payload["role"], payload["user_email"], len(rows))
    return {"revoked": True}


def check_auto_approve(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    user_email = payload.get("user_email")
    persona_type = payload.get("persona_type")
    municipality_id = _uuid(payload.get("municipality_id"))
    organization_id = _uuid(payload.get("organization_id"))
    institution_domain = (payload.get("institution_domain") or "").lower() or None
    email_domain = _email_domain(user_email)
    logger.info("Checking auto-approval for %s, persona: %s", user_email, persona_type)

    rules = session.exec(
        select(AutoApprovalRule)
        .where(
            AutoApprovalRule.persona_type == persona_type,
            AutoApprovalRule.is_active == True,  # noqa: E712
        )
        .order_by(col(AutoApprovalRule.priority).desc())
    ).all()

    assigned_role = None
    for rule in rules:
        if rule.rule_type == "always":
            matches = True
        elif rule.rule_type == "email_domain":
            if rule.municipality_id and municipality_id != rule.municipality_id:
                continue
            matches = _domain_matches(email_domain, rule.rule_value)
        elif rule.rule_type == "organization":
            matches = organization_id is not None and organization_id == rule.organization_id
        elif rule.rule_type == "institution":
            value = (rule.rule_value or "").lower()
            matches = bool(value) and value in (email_domain, institution_domain)
        else:
            # "never" and unknown rule types
            matches = False
        if matches:
            assigned_role = rule.role_to_assign
            break

    if assigned_role is None and municipality_id and persona_type == "municipality_staff":
        municipality = session.get(Municipality, municipality_id)
        domains = municipality.approved_email_domains if municipality else []
        if any(_domain_matches(email_domain, d) for d in domains or []):
            assigned_role = "municipality_staff"

    if assigned_role is None:
        logger.info("Not auto-approved, requires manual review")
        return {"auto_approved": False, "requires_approval": True, "suggested_role": persona_type}

    role_data = None
    user_id = _uuid(payload.get("user_id"))
    if user_id is not None:
        role_data = upsert_user_role(
            session,
            user_id=user_id,
            role=assigned_role,
            user_email=user_email,
            municipality_id=municipality_id,
            organization_id=organization_id,
        )
    else:
        logger.error("Auto-approved %s without a user_id; role not assigned", user_email)
    logger.info("Auto-approved with role: %s", assigned_role)
    return {
        "auto_approved": True,
        "role": assigned_role,
        "role_id": role_data.role_id if role_data else lookup_role_id(session, assigned_role),
        "role_data": role_data,
    }


def get_user_roles(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    statement = select(UserRole).where(UserRole.is_active == True)  # noqa: E712
    if payload.get("user_id"):
        statement = statement.where(UserRole.user_id == _uuid(payload["user_id"]))
    elif payload.get("user_email"):
        statement = statement.where(UserRole.user_email == payload["user_email"])
    else:
        raise ValueError("user_id or user_email is required")
    return {"roles": list(session.exec(statement).all())}


def _get_role_request(session: Session, request_id: Any) -> RoleRequest:
    request = session.get(RoleRequest, _uuid(request_id))
    if request is None:
        raise LookupError("Role request not found")
    return request


def approve_role_request(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    _require(payload, "request_id", "user_id", "user_email", "role")
    request = _get_role_request(session, payload["request_id"])
    request.status = "approved"
    request.reviewed_by = payload.get("approver_email")
    request.reviewed_date = get_datetime_utc()
    session.add(request)
    session.commit()

    row = upsert_user_role(
        session,
        user_id=_uuid(payload["user_id"]),  # type: ignore[arg-type]
        role=payload["role"],
        user_email=payload["user_email"],
        municipality_id=_uuid(payload.get("municipality_id")),
        organization_id=_uuid(payload.get("organization_id")),
    )
    return {"approved": True, "request_id": str(request.id), "role": row, "role_id": row.role_id}


def reject_role_request(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    _require(payload, "request_id")
    request = _get_role_request(session, payload["request_id"])
    request.status = "rejected"
    request.reviewed_by = payload.get("approver_email")
    request.reviewed_date = get_datetime_utc()
    request.rejection_reason = payload.get("reason")
    session.add(request)
    session.commit()
    logger.info("Rejected role request %s", request.id)
    return {"rejected": True, "request_id": str(request.id)}


# Permissions and delegation


def validate_permission(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    user_id = _uuid(payload.get("user_id"))
    user_email = payload.get("user_email")
    permission = payload.get("permission")
    action = payload.get("action")
    if user_id is None and not user_email:
        raise ValueError("user_id or user_email is required")

    statement = select(UserRole).where(UserRole.is_active == True)  # noqa: E712
    if user_id is not None:
        statement = statement.where(UserRole.user_id == user_id)
    else:
        statement = statement.where(UserRole.user_email == user_email)
    roles = sorted({r.role for r in session.exec(statement).all()})

    if "admin" in roles:
        return {"allowed": True, "roles": roles, "reason": "admin_role"}

    if user_email:
        now = get_datetime_utc()
        delegations = session.exec(
            select(DelegationRule).where(
                DelegationRule.delegate_email == user_email,
                DelegationRule.is_active == True,  # noqa: E712
                DelegationRule.approval_status == "approved",
            )
        ).all()
        for delegation in delegations:
            if not as_utc(delegation.start_date) <= now <= as_utc(delegation.end_date):
                continue
            types = delegation.permission_types or []
            if not types or permission in types or action in types or "*" in types:
                return {
                    "allowed": True,
                    "roles": roles,
                    "reason": "delegation",
                    "delegated_from": delegation.delegator_email,
                }

    allowed_actions = {a for role in roles for a in PERMISSION_MAP.get(role, [])}
    requested = action or (permission.split(".")[-1] if permission else None) or "read"
    allowed = requested in allowed_actions or "admin" in allowed_actions
    return {
        "allowed": allowed,
        "roles": roles,
        "reason": "role_permission" if allowed else "insufficient_permission",
    }


def _get_delegation(session: Session, delegation_id: Any) -> DelegationRule:
    delegation = session.get(DelegationRule, _uuid(delegation_id))
    if delegation is None:
        raise LookupError("Delegation not found")
    return delegation


def approve_delegation(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    _require(payload, "delegation_id")
    delegation = _get_delegation(session, payload["delegation_id"])
    now = get_datetime_utc()
    delegation.is_active = True
    delegation.approval_status = "approved"
    delegation.approved_by = payload.get("approver_email") or "admin"
    delegation.approval_date = now
    delegation.updated_at = now
    session.add(delegation)
    session.commit()
    session.refresh(delegation)
    logger.info("Approved delegation %s", delegation.id)
    return {"approved": True, "delegation": delegation}


def reject_delegation(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    _require(payload, "delegation_id")
    delegation = _get_delegation(session, payload["delegation_id"])
    now = get_datetime_utc()
    delegation.is_active = False
    delegation.approval_status = "rejected"
    delegation.approved_by = payload.get("approver_email") or "admin"
    delegation.approval_date = now
    delegation.reason = payload.get("reason") or "Rejected by administrator"
    delegation.updated_at = now
    session.add(delegation)
    session.commit()
    session.refresh(delegation)
    logger.info("Rejected delegation %s", delegation.id)
    return {"rejected": True, "delegation": delegation}


# Security audit


def run_security_audit(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
    organization_id = _uuid(payload.get("organization_id"))
    logger.info("Running RBAC security audit for organization: %s", organization_id)

    def scoped(statement: Any) -> Any:
        if organization_id is not None:
            return statement.where(UserRole.organization_id == organization_id)
        return statement

    findings: list[dict[str, str]] = []

    admins = session.exec(
        scoped(select(UserRole).where(UserRole.role == "admin", UserRole.is_active == True))  # noqa: E712
    ).all()
    if len(admins) > MAX_ADMINS:
        findings.append(
            {
                "severity": "warning",
                "category": "excessive_admins",
                "message": f"Organization has {len(admins)} admin users",
                "recommendation": "Consider reducing the number of admin users to minimize security risk",
            }
        )

    active = session.exec(scoped(select(UserRole).where(UserRole.is_active == True))).all()  # noqa: E712
    cutoff = get_datetime_utc() - timedelta(days=STALE_AFTER_DAYS)
    stale = [r for r in active if r.last_activity is None or as_utc(r.last_activity) < cutoff]
    if stale:
        findings.append(
            {
                "severity": "warning",
                "category": "inactive_users",
                "message": f"{len(stale)} users have not been active in {STALE_AFTER_DAYS}+ days",
                "recommendation": "Review and potentially revoke access for inactive users",
            }
        )

    orphaned = session.exec(scoped(select(UserRole).where(UserRole.user_id == None))).all()  # noqa: E711
    if orphaned:
        findings.append(
            {
                "severity": "high",
                "category": "orphaned_permissions",
                "message": f"{len(orphaned)} role assignments without valid user IDs",
                "recommendation": "Clean up orphaned role assignments immediately",
            }
        )

    summary = {
        severity: len([f for f in findings if f["severity"] == severity])
        for severity in ("critical", "high", "warning", "info")
    }
    penalty = sum(summary[s] * p for s, p in SEVERITY_PENALTIES.items())
    return {"security_score": max(0, 100 - penalty), "findings": findings, "summary": summary}


ACTION_HANDLERS: dict[str, Callable[[Session, dict[str, Any]], dict[str, Any]]] = {
    "role.assign": assign_role,
    "role.revoke": revoke_role,
    "role.check_auto_approve": check_auto_approve,
    "role.get_user_roles": get_user_roles,
    "role.request.approve": approve_role_request,
    "role.request.reject": reject_role_request,
    "permission.validate": validate_permission,
    "delegation.approve": approve_delegation,
    "delegation.reject": reject_delegation,
    "audit.run_security_audit": run_security_audit,
}


def notify_role_request(session: Session, kind: str, payload: dict[str, Any]) -> dict[str, Any]:
    _require(payload, "user_email", "requested_role")
    return send_role_request_notification(
        session,
        kind=kind,
        user_id=_uuid(payload.get("user_id")),
        user_email=payload["user_email"],
        user_name=payload.get("user_name"),
        requested_role=payload["requested_role"],
        justification=payload.get("justification"),
        rejection_reason=payload.get("rejection_reason"),
        language=payload.get("language") or "en",
        notify_admins=payload.get("notify_admins", True),
    )


def dispatch(session: Session, action: str, payload: dict[str, Any]) -> dict[str, Any]:
    logger.info("RBAC action: %s", action)
    if action.startswith("notification."):
        kind = action.removeprefix("notification.").removeprefix("role_")
        return {"success": True, **notify_role_request(session, kind, payload)}

    handler = ACTION_HANDLERS.get(action)
    if handler is None:
        logger.error("Unknown RBAC action: %s", action)
        raise UnknownAction(action, list(ACTION_HANDLERS))
    return {"success": True, **handler(session, payload)}


def submit_role_request(session: Session, user: User, request_in: RoleRequestCreate) -> RoleRequest:
    """Record a role request, granting it at once when an auto-approval rule matches."""
    request = RoleRequest(
        user_id=user.id,
        user_email=user.email,
        requested_role=request_in.requested_role,
        justification=request_in.justification,
        municipality_id=request_in.municipality_id or user.municipality_id,
        organization_id=request_in.organization_id or user.organization_id,
    )
    session.add(request)
    session.commit()
    session.refresh(request)

    decision = check_auto_approve(
        session,
        {
            "user_id": user.id,
            "user_email": user.email,
            "persona_type": request.requested_role,
            "municipality_id": request.municipality_id,
            "organization_id": request.organization_id,
        },
    )
    if decision["auto_approved"]:
        request.status = "approved"
        request.reviewed_by = "auto_approval"
        request.reviewed_date = get_datetime_utc()
        session.add(request)
        session.commit()
        session.refresh(request)

    kind = "approved" if decision["auto_approved"] else "submitted"
    try:
        send_role_request_notification(
            session,
            kind=kind,
            user_id=user.id,
            user_email=user.email,
            user_name=user.full_name,
            requested_role=request.requested_role,
            justification=request.justification,
            language=request_in.language,
        )
    except Exception as exc:
        session.rollback()
        logger.warning("Role request notification failed for %s: %s", user.email, exc)
    return request
