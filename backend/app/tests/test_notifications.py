from unittest.mock import MagicMock, patch

import httpx
import pytest
from sqlmodel import Session, select

from app.models import Notification, User, UserRole
from app.notifications import (
    admin_emails,
    notify,
    notify_safely,
    role_display_name,
    role_email_content,
    send_email,
    send_role_request_notification,
)


def _mock_http_client():
    client = MagicMock()
    client_cls = MagicMock()
    client_cls.return_value.__enter__.return_value = client
    return client_cls, client


def test_role_display_names():
    assert role_display_name("expert") == "Expert Evaluator"
    assert role_display_name("expert", "ar") == "خبير مُقيّم"
    assert role_display_name("custom_role") == "custom_role"


def test_role_email_content_is_localised_and_escaped():
    subject, html = role_email_content("rejected", "<b>Sara</b>", "Researcher", "ar", "Missing <docs>")

    assert subject == "طلب الدور يحتاج مراجعة - Researcher"
    assert 'dir="rtl"' in html
    assert "&lt;b&gt;Sara&lt;/b&gt;" in html
    assert "Missing &lt;docs&gt;" in html


def test_send_email_disabled_without_key():
    client_cls, _ = _mock_http_client()
    with patch("app.notifications.settings.RESEND_API_KEY", None), patch(
        "app.notifications.httpx.Client", client_cls
    ):
        assert send_email(["a@example.com"], "Hi", "<p>Hi</p>") is False
    client_cls.assert_not_called()


def test_send_email_posts_to_resend():
    client_cls, client = _mock_http_client()
    with patch("app.notifications.settings.RESEND_API_KEY", "re_test"), patch(
        "app.notifications.httpx.Client", client_cls
    ):
        assert send_email(["a@example.com"], "Hi", "<p>Hi</p>") is True

    _, kwargs = client.post.call_args
    assert kwargs["headers"] == {"Authorization": "Bearer re_test"}
    assert kwargs["json"]["to"] == ["a@example.com"]
    assert kwargs["json"]["subject"] == "Hi"


def test_send_email_failure_is_reported():
    client_cls, client = _mock_http_client()
    client.post.side_effect = httpx.ConnectError("boom")
    with patch("app.notifications.settings.RESEND_API_KEY", "re_test"), patch(
        "app.notifications.httpx.Client", client_cls
    ):
        assert send_email(["a@example.com"], "Hi", "<p>Hi</p>") is False


def test_notify_links_known_users(session: Session, citizen: User):
    rows = notify(
        session,
        type="challenge_created",
        title="New challenge",
        entity_type="challenge",
        entity_id=42,
        recipient_emails=[citizen.email, "outsider@example.com", None, citizen.email],
    )

    assert len(rows) == 2
    by_email = {row.user_email: row for row in rows}
    assert by_email[citizen.email].user_id == citizen.id
    assert by_email["outsider@example.com"].user_id is None
    assert by_email[citizen.email].entity_id == "42"


def test_notify_without_recipients(session: Session):
    assert notify(session, type="x", title="x") == []


def test_notify_safely_swallows_failures(session: Session):
    with patch("app.notifications.notify", side_effect=RuntimeError("db down")):
        assert notify_safely(session, type="x", title="x", recipient_emails=["a@example.com"]) == []


def test_admin_emails_include_superusers(session: Session, superuser: User, citizen: User):
    session.add(UserRole(user_id=citizen.id, role="admin"))
    session.add(UserRole(user_email="former@example.com", role="admin", is_active=False))
    session.commit()

    assert admin_emails(session) == [superuser.email, citizen.email]


def test_role_request_notification_records_in_app_message(session: Session, citizen: User):
    client_cls, client = _mock_http_client()
    with patch("app.notifications.settings.RESEND_API_KEY", "re_test"), patch(
        "app.notifications.httpx.Client", client_cls
    ):
        result = send_role_request_notification(
            session,
            kind="submitted",
            user_id=citizen.id,
            user_email=citizen.email,
            user_name=citizen.full_name,
            requested_role="researcher",
        )

    assert result == {"notified": True, "type": "submitted"}
    row = session.exec(select(Notification).where(Notification.user_email == citizen.email)).one()
    assert row.type == "role_request_submitted"
    assert row.message == "Your Researcher role request is under review"
    # One message to the requester; no admins exist to copy
    assert client.post.call_count == 1


def test_role_request_notification_rejects_unknown_kind(session: Session):
    with pytest.raises(ValueError):
        send_role_request_notification(
            session, kind="archived", user_email="a@example.com", requested_role="expert"
        )
