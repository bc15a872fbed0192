from datetime import timedelta

import pytest
from sqlmodel import Session, select

from app import rbac
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
from app.tests.conftest import make_user


def test_unknown_action_lists_available_actions(session: Session):
    with pytest.raises(rbac.UnknownAction) as exc_info:
        rbac.dispatch(session, "role.explode", {})
    assert "role.assign" in exc_info.value.available_actions
    assert str(exc_info.value) == "Unknown action: role.explode"


def test_assign_links_role_catalogue(session: Session, citizen: User):
    role = Role(code="expert", name="Expert Evaluator")
    session.add(role)
    session.commit()

    result = rbac.dispatch(
        session, "role.assign", {"user_id": str(citizen.id), "user_email": citizen.email, "role": "expert"}
    )

    assert result["success"] is True
    assert result["role"].role_id == role.id
    assert result["role"].is_active is True


def test_assign_twice_keeps_one_row(session: Session, citizen: User):
    payload = {"user_id": str(citizen.id), "role": "viewer"}
    rbac.dispatch(session, "role.assign", payload)
    rbac.dispatch(session, "role.assign", payload)

    rows = session.exec(select(UserRole).where(UserRole.user_id == citizen.id)).all()
    assert len(rows) == 1


def test_revoke_role(session: Session, citizen: User):
    rbac.dispatch(
        session, "role.assign", {"user_id": str(citizen.id), "user_email": citizen.email, "role": "viewer"}
    )
    rbac.dispatch(session, "role.revoke", {"user_email": citizen.email, "role": "viewer"})

    roles = rbac.dispatch(session, "role.get_user_roles", {"user_email": citizen.email})
    assert roles["roles"] == []


def test_required_fields(session: Session):
    with pytest.raises(ValueError, match="user_id is required"):
        rbac.dispatch(session, "role.assign", {"role": "viewer"})
    with pytest.raises(ValueError, match="Invalid id"):
        rbac.dispatch(session, "role.assign", {"user_id": "not-a-uuid", "role": "viewer"})


def test_auto_approve_by_email_domain(session: Session, citizen: User):
    session.add(
        AutoApprovalRule(
            persona_type="researcher",
            rule_type="email_domain",
            rule_value="example.com",
            role_to_assign="researcher",
        )
    )
    session.commit()

    result = rbac.check_auto_approve(
        session,
        {"user_id": str(citizen.id), "user_email": "someone@lab.example.com", "persona_type": "researcher"},
    )

    assert result["auto_approved"] is True
    assert result["role"] == "researcher"
    assert result["role_data"].user_id == citizen.id


def test_auto_approve_respects_rule_priority(session: Session):
    session.add(AutoApprovalRule(persona_type="provider", rule_type="never", role_to_assign="provider", priority=10))
    session.add(AutoApprovalRule(persona_type="provider", rule_type="always", role_to_assign="viewer", priority=1))
    session.commit()

    result = rbac.check_auto_approve(session, {"user_email": "p@x.com", "persona_type": "provider"})

    # "never" does not match, so evaluation continues to the next rule
    assert result["auto_approved"] is True
    assert result["role"] == "viewer"
    assert result["role_data"] is None


def test_auto_approve_via_municipality_domains(session: Session):
    municipality = Municipality(name_en="Dammam", approved_email_domains=["dammam.gov.sa"])
    session.add(municipality)
    session.commit()

    approved = rbac.check_auto_approve(
        session,
        {
            "user_email": "a@dammam.gov.sa",
            "persona_type": "municipality_staff",
            "municipality_id": str(municipality.id),
        },
    )
    rejected = rbac.check_auto_approve(
        session,
        {
            "user_email": "a@gmail.com",
            "persona_type": "municipality_staff",
            "municipality_id": str(municipality.id),
        },
    )

    assert approved["auto_approved"] is True
    assert approved["role"] == "municipality_staff"
    assert rejected == {"auto_approved": False, "requires_approval": True, "suggested_role": "municipality_staff"}


def test_validate_permission_from_role_map(session: Session):
    session.add(UserRole(user_email="viewer@example.com", role="viewer"))
    session.commit()

    read = rbac.validate_permission(session, {"user_email": "viewer@example.com", "permission": "challenges.read"})
    create = rbac.validate_permission(session, {"user_email": "viewer@example.com", "action": "create"})

    assert read["allowed"] is True
    assert create == {"allowed": False, "roles": ["viewer"], "reason": "insufficient_permission"}


def test_validate_permission_through_delegation(session: Session):
    now = get_datetime_utc()
    session.add(
        DelegationRule(
            delegator_email="boss@example.com",
            delegate_email="deputy@example.com",
            permission_types=["approve"],
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            is_active=True,
            approval_status="approved",
        )
    )
    session.commit()

    result = rbac.validate_permission(session, {"user_email": "deputy@example.com", "action": "approve"})

    assert result["allowed"] is True
    assert result["reason"] == "delegation"
    assert result["delegated_from"] == "boss@example.com"


def test_expired_delegation_is_ignored(session: Session):
    now = get_datetime_utc()
    session.add(
        DelegationRule(
            delegator_email="boss@example.com",
            delegate_email="deputy@example.com",
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
            is_active=True,
            approval_status="approved",
        )
    )
    session.commit()

    result = rbac.validate_permission(session, {"user_email": "deputy@example.com", "action": "approve"})
    assert result["allowed"] is False


def test_delegation_approval_lifecycle(session: Session):
    now = get_datetime_utc()
    delegation = DelegationRule(
        delegator_email="boss@example.com",
        delegate_email="deputy@example.com",
        start_date=now,
        end_date=now + timedelta(days=3),
    )
    session.add(delegation)
    session.commit()

    approved = rbac.dispatch(session, "delegation.approve", {"delegation_id": str(delegation.id)})
    assert approved["delegation"].is_active is True
    assert approved["delegation"].approval_status == "approved"

    rejected = rbac.dispatch(session, "delegation.reject", {"delegation_id": str(delegation.id)})
    assert rejected["delegation"].is_active is False
    assert rejected["delegation"].reason == "Rejected by administrator"


def test_missing_delegation(session: Session):
    with pytest.raises(LookupError):
        rbac.dispatch(session, "delegation.approve", {"delegation_id": "00000000-0000-0000-0000-000000000000"})


def test_security_audit_flags_stale_and_orphaned_roles(session: Session):
    session.add(UserRole(user_email="ghost@example.com", role="viewer"))
    session.add(UserRole(user_email="recent@example.com", role="viewer", last_activity=get_datetime_utc()))
    session.commit()

    result = rbac.dispatch(session, "audit.run_security_audit", {})

    categories = {f["category"] for f in result["findings"]}
    assert categories == {"inactive_users", "orphaned_permissions"}
    assert result["summary"] == {"critical": 0, "high": 1, "warning": 1, "info": 0}
    assert result["security_score"] == 80


def test_security_audit_flags_excessive_admins(session: Session):
    for i in range(rbac.MAX_ADMINS + 1):
        user = make_user(session, f"admin{i}@example.com")
        session.add(UserRole(user_id=user.id, role="admin", last_activity=get_datetime_utc()))
    session.commit()

    result = rbac.run_security_audit(session, {})

    assert [f["category"] for f in result["findings"]] == ["excessive_admins"]
    assert result["security_score"] == 95


def test_role_request_auto_approved(session: Session, citizen: User):
    session.add(AutoApprovalRule(persona_type="citizen", rule_type="always", role_to_assign="citizen"))
    session.commit()

    request = rbac.submit_role_request(session, citizen, RoleRequestCreate(requested_role="citizen"))

    assert request.status == "approved"
    assert request.reviewed_by == "auto_approval"
    roles = rbac.get_user_roles(session, {"user_id": str(citizen.id)})["roles"]
    assert [r.role for r in roles] == ["citizen"]


def test_role_request_manual_approval(session: Session, citizen: User):
    request = rbac.submit_role_request(
        session, citizen, RoleRequestCreate(requested_role="expert", justification="PhD")
    )
    assert request.status == "pending"

    rbac.dispatch(
        session,
        "role.request.approve",
        {
            "request_id": str(request.id),
            "user_id": str(citizen.id),
            "user_email": citizen.email,
            "role": "expert",
            "approver_email": "admin@example.com",
        },
    )

    stored = session.get(RoleRequest, request.id)
    assert stored.status == "approved"
    assert stored.reviewed_by == "admin@example.com"
    assert [r.role for r in rbac.get_user_roles(session, {"user_email": citizen.email})["roles"]] == ["expert"]


def test_role_request_rejection(session: Session, citizen: User):
    request = rbac.submit_role_request(session, citizen, RoleRequestCreate(requested_role="expert"))

    rbac.dispatch(session, "role.request.reject", {"request_id": str(request.id), "reason": "Incomplete"})

    stored = session.get(RoleRequest, request.id)
    assert stored.status == "rejected"
    assert stored.rejection_reason == "Incomplete"
