import uuid

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.core.config import settings
from app.models import AIRateLimit, AuditLog, Challenge, Municipality, Notification, Pilot

API = settings.API_V1_STR


def test_health_check(client: TestClient):
    response = client.get(f"{API}/utils/health-check/")
    assert response.status_code == 200
    assert response.json() is True


def test_approval_gates(client: TestClient):
    response = client.get(f"{API}/utils/approval-gates/pilot")
    assert response.status_code == 200
    assert [gate["name"] for gate in response.json()] == ["design_review", "launch_approval"]
    assert client.get(f"{API}/utils/approval-gates/spaceship").status_code == 404


def test_anonymous_sees_only_published_challenges(
    client: TestClient, session: Session, municipality: Municipality
):
    session.add(Challenge(title_en="Draft", municipality_id=municipality.id))
    session.add(Challenge(title_en="Public", municipality_id=municipality.id, is_published=True))
    session.commit()

    response = client.get(f"{API}/challenges/")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert [c["title_en"] for c in body["data"]] == ["Public"]


def test_staff_creates_challenge_in_own_municipality(
    client: TestClient, session: Session, staff_headers: dict, municipality: Municipality
):
    response = client.post(
        f"{API}/challenges/", headers=staff_headers, json={"title_en": "Flash floods in Al Olaya"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["municipality_id"] == str(municipality.id)
    assert body["created_by"] == "staff@riyadh.gov.sa"
    assert body["status"] == "draft"

    audit = session.exec(select(AuditLog).where(AuditLog.entity_id == body["id"])).one()
    assert audit.action == "create"
    notification = session.exec(select(Notification)).one()
    assert notification.type == "challenge_created"
    assert notification.user_email == "staff@riyadh.gov.sa"


def test_staff_cannot_create_for_other_municipality(
    client: TestClient, staff_headers: dict, other_municipality: Municipality
):
    response = client.post(
        f"{API}/challenges/",
        headers=staff_headers,
        json={"title_en": "Not mine", "municipality_id": str(other_municipality.id)},
    )
    assert response.status_code == 403


def test_create_requires_login(client: TestClient):
    response = client.post(f"{API}/challenges/", json={"title_en": "Anonymous"})
    assert response.status_code == 401


def test_invalid_payload_is_rejected(client: TestClient, staff_headers: dict):
    response = client.post(f"{API}/challenges/", headers=staff_headers, json={"title_en": ""})
    assert response.status_code == 422


def test_draft_of_other_municipality_is_hidden(
    client: TestClient, session: Session, staff_headers: dict, other_municipality: Municipality
):
    challenge = Challenge(title_en="Jeddah draft", municipality_id=other_municipality.id)
    session.add(challenge)
    session.commit()

    response = client.get(f"{API}/challenges/{challenge.id}", headers=staff_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Challenge not found"


def test_status_change_is_audited(
    client: TestClient, session: Session, staff_headers: dict, municipality: Municipality
):
    challenge = Challenge(title_en="Potholes", municipality_id=municipality.id)
    session.add(challenge)
    session.commit()

    response = client.patch(
        f"{API}/challenges/{challenge.id}", headers=staff_headers, json={"status": "in_treatment"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "in_treatment"
    audit = session.exec(select(AuditLog).where(AuditLog.entity_id == str(challenge.id))).one()
    assert audit.action == "status_change"
    assert audit.old_values["status"] == "draft"


def test_global_user_cannot_edit_others_challenge(
    client: TestClient, session: Session, citizen_headers: dict, municipality: Municipality
):
    challenge = Challenge(title_en="Published", municipality_id=municipality.id, is_published=True)
    session.add(challenge)
    session.commit()

    response = client.patch(
        f"{API}/challenges/{challenge.id}", headers=citizen_headers, json={"title_en": "Hijacked"}
    )
    assert response.status_code == 403


def test_soft_delete_hides_row(
    client: TestClient, session: Session, superuser_headers: dict, municipality: Municipality
):
    challenge = Challenge(title_en="Old", municipality_id=municipality.id, is_published=True)
    session.add(challenge)
    session.commit()

    response = client.delete(f"{API}/challenges/{challenge.id}", headers=superuser_headers)

    assert response.status_code == 200
    assert client.get(f"{API}/challenges/{challenge.id}").status_code == 404
    session.refresh(challenge)
    assert challenge.is_deleted is True


def test_pagination(client: TestClient, session: Session, superuser_headers: dict):
    for i in range(5):
        session.add(Challenge(title_en=f"Challenge {i}"))
    session.commit()

    response = client.get(f"{API}/challenges/?skip=1&limit=2", headers=superuser_headers)

    body = response.json()
    assert body["count"] == 5
    assert len(body["data"]) == 2


def test_program_dates_are_validated(client: TestClient, staff_headers: dict):
    response = client.post(
        f"{API}/programs/",
        headers=staff_headers,
        json={"name_en": "Accelerator", "start_date": "2025-05-01", "end_date": "2025-04-01"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "end_date must not be before start_date"


def test_strategic_plan_years_are_validated(client: TestClient, staff_headers: dict):
    response = client.post(
        f"{API}/strategic-plans/",
        headers=staff_headers,
        json={"name_en": "Plan", "start_year": 2030, "end_year": 2025},
    )
    assert response.status_code == 400


def test_partnership_and_case_study_crud(
    client: TestClient, staff_headers: dict, municipality: Municipality
):
    partnership = client.post(
        f"{API}/partnerships/",
        headers=staff_headers,
        json={"name_en": "SDAIA data partnership", "partnership_type": "government"},
    )
    case_study = client.post(
        f"{API}/case-studies/",
        headers=staff_headers,
        json={"title_en": "Smart lighting results", "tags": ["energy"]},
    )

    assert partnership.status_code == 200
    assert partnership.json()["municipality_id"] == str(municipality.id)
    assert case_study.status_code == 200
    assert client.get(f"{API}/case-studies/", headers=staff_headers).json()["count"] == 1


def test_municipality_directory_is_public(client: TestClient, municipality: Municipality):
    response = client.get(f"{API}/municipalities/")
    assert response.json()["count"] == 1
    assert response.json()["data"][0]["name_en"] == "Riyadh"


def test_only_national_users_create_municipalities(
    client: TestClient, staff_headers: dict, superuser_headers: dict
):
    payload = {"name_en": "Abha", "region": "Asir"}
    assert client.post(f"{API}/municipalities/", headers=staff_headers, json=payload).status_code == 403
    response = client.post(f"{API}/municipalities/", headers=superuser_headers, json=payload)
    assert response.status_code == 200
    assert response.json()["name_en"] == "Abha"


def test_pilot_requires_existing_challenge(client: TestClient, staff_headers: dict):
    response = client.post(
        f"{API}/pilots/",
        headers=staff_headers,
        json={"title_en": "Sensors", "challenge_id": str(uuid.uuid4())},
    )
    assert response.status_code == 400


def test_pilot_stage_transitions(
    client: TestClient, session: Session, staff_headers: dict, municipality: Municipality
):
    pilot = Pilot(title_en="Smart parking", municipality_id=municipality.id, created_by="staff@riyadh.gov.sa")
    session.add(pilot)
    session.commit()
    url = f"{API}/pilots/{pilot.id}/stage"

    assert client.post(url, headers=staff_headers, json={"stage": "flying"}).status_code == 400
    assert client.post(url, headers=staff_headers, json={"stage": "design"}).status_code == 400

    response = client.post(url, headers=staff_headers, json={"stage": "terminated", "notes": "Vendor left"})
    assert response.status_code == 200
    assert response.json()["stage"] == "terminated"

    final = client.post(url, headers=staff_headers, json={"stage": "active"})
    assert final.status_code == 400
    assert final.json()["detail"] == "Pilot stage 'terminated' is final"

    notification = session.exec(select(Notification).where(Notification.type == "pilot_stage_changed")).one()
    assert notification.details == {"from": "design", "to": "terminated"}


def test_purge_ai_cache_is_superuser_only(
    client: TestClient, session: Session, staff_headers: dict, superuser_headers: dict
):
    session.add(AIRateLimit(key="user:old", window_bucket=1, request_count=3))
    session.commit()

    assert client.post(f"{API}/utils/purge-ai-cache/", headers=staff_headers).status_code == 403

    response = client.post(f"{API}/utils/purge-ai-cache/", headers=superuser_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Purged 0 cache entries and 1 rate limit counters"
    assert session.exec(select(AIRateLimit)).all() == []
