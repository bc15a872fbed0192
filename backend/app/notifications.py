import logging
import uuid
from collections.abc import Iterable
from html import escape
from typing import Any

import httpx
from sqlmodel import Session, col, select

from app.core.config import settings
from app.models import Notification, User, UserRole

logger = logging.getLogger(__name__)

ROLE_DISPLAY_NAMES: dict[str, dict[str, str]] = {
    "admin": {"en": "Administrator", "ar": "مدير النظام"},
    "municipality_staff": {"en": "Municipality Staff", "ar": "موظف بلدية"},
    "municipality_admin": {"en": "Municipality Admin", "ar": "مدير البلدية"},
    "municipality_coordinator": {"en": "Municipality Coordinator", "ar": "منسق البلدية"},
    "deputyship_admin": {"en": "Deputyship Director", "ar": "مدير الوكالة"},
    "deputyship_staff": {"en": "Deputyship Staff", "ar": "موظف الوكالة"},
    "provider": {"en": "Solution Provider", "ar": "مزود حلول"},
    "researcher": {"en": "Researcher", "ar": "باحث"},
    "expert": {"en": "Expert Evaluator", "ar": "خبير مُقيّم"},
    "citizen": {"en": "Citizen", "ar": "مواطن"},
    "viewer": {"en": "Explorer", "ar": "مستكشف"},
}

ROLE_REQUEST_KINDS = ("submitted", "approved", "rejected")


def role_display_name(role: str, language: str = "en") -> str:
    names = ROLE_DISPLAY_NAMES.get(role)
    if not names:
        return role
    return names.get(language) or names["en"]


def send_email(to: list[str], subject: str, html: str) -> bool:
    """Send one message through the Resend HTTP API. Failures are logged and reported as ``False``."""
    if not settings.emails_enabled:
        logger.debug("E-mail disabled, skipping '%s' to %s", subject, to)
        return False
    try:
        with httpx.Client(timeout=15.0) as client:
            response = client.post(
                settings.RESEND_API_URL,
                headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
                json={
                    "from": settings.EMAILS_FROM,
                    "to": to,
                    "subject": subject,
                    "html": html,
                },
            )
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("E-mail send error for '%s' to %s: %s", subject, to, exc)
        return False
    return True


def _simple_html(title: str, message: str | None) -> str:
    return (
        '<!DOCTYPE html><html><head><meta charset="UTF-8"></head><body>'
        f"<h2>{escape(title)}</h2><p>{escape(message or '')}</p>"
        f'<p><a href="{settings.FRONTEND_HOST}">{escape(settings.PROJECT_NAME)}</a></p>'
        "</body></html>"
    )


def notify(
    session: Session,
    *,
    type: str,
    title: str,
    message: str | None = None,
    entity_type: str | None = None,
    entity_id: Any = None,
    recipient_emails: Iterable[str | None] = (),
    details: dict[str, Any] | None = None,
    send_email_copy: bool = False,
) -> list[Notification]:
    emails = sorted({e for e in recipient_emails if e})
    if not emails:
        return []

    users = session.exec(select(User).where(col(User.email).in_(emails))).all()
    user_ids = {u.email: u.id for u in users}

    rows = []
    for email in emails:
        row = Notification(
            user_id=user_ids.get(email),
            user_email=email,
            type=type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details or {},
        )
        session.add(row)
        rows.append(row)
    session.commit()
    logger.info("Created %s '%s' notification(s)", len(rows), type)

    if send_email_copy:
        html = _simple_html(title, message)
        for email in emails:
            send_email([email], title, html)
    return rows


def notify_safely(session: Session, **kwargs: Any) -> list[Notification]:
    """Run ``notify`` for a side effect that must never fail the calling operation."""
    try:
        return notify(session, **kwargs)
    except Exception as exc:
        session.rollback()
        logger.warning("Notification '%s' failed: %s", kwargs.get("type"), exc)
        return []


# Role request e-mails

_FOOTER = '<div class="footer"><p>© Saudi Innovation Platform</p></div>'
_STYLES = (
    "body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; background: #f8fafc; padding: 40px 20px; }"
    ".container { max-width: 600px; margin: 0 auto; background: white; border-radius: 16px; }"
    ".header { padding: 30px; text-align: center; border-radius: 16px 16px 0 0; }"
    ".header h1 { color: white; margin: 0; font-size: 24px; }"
    ".content { padding: 30px; }"
    ".status-badge { display: inline-block; padding: 8px 16px; border-radius: 20px; font-weight: 600; margin: 15px 0; }"
    ".footer { background: #f8fafc; padding: 20px; text-align: center; color: #64748b; font-size: 12px; }"
)
_HEADER_COLORS = {
    "submitted": ("#f59e0b", "#fef3c7", "#d97706"),
    "approved": ("#10b981", "#d1fae5", "#059669"),
    "rejected": ("#ef4444", "#fee2e2", "#dc2626"),
}

_ROLE_COPY: dict[str, dict[str, dict[str, str]]] = {
    "submitted": {
        "en": {
            "subject": "Role Request Received - {role}",
            "heading": "⏳ Role Request Under Review",
            "badge": "Pending Review",
            "body": 'Your request for the "{role}" role has been received. '
            "Our team will review it and notify you of the outcome.",
        },
        "ar": {
            "subject": "تم استلام طلب الدور - {role}",
            "heading": "⏳ طلب الدور قيد المراجعة",
            "badge": "قيد المراجعة",
            "body": 'تم استلام طلبك للحصول على دور "{role}". سيقوم فريقنا بمراجعته وإعلامك بالنتيجة.',
        },
    },
    "approved": {
        "en": {
            "subject": "🎉 Role Request Approved - {role}",
            "heading": "🎉 Approved!",
            "badge": "Approved",
            "body": 'Congratulations! Your request for the "{role}" role has been approved.',
        },
        "ar": {
            "subject": "🎉 تمت الموافقة على طلب الدور - {role}",
            "heading": "🎉 تمت الموافقة!",
            "badge": "تمت الموافقة",
            "body": 'تهانينا! تمت الموافقة على طلبك للحصول على دور "{role}".',
        },
    },
    "rejected": {
        "en": {
            "subject": "Role Request Needs Attention - {role}",
            "heading": "Role Request Update",
            "badge": "Needs Review",
            "body": 'Unfortunately, we were unable to approve your request for the "{role}" role.',
        },
        "ar": {
            "subject": "طلب الدور يحتاج مراجعة - {role}",
            "heading": "طلب الدور",
            "badge": "يحتاج مراجعة",
            "body": 'للأسف، لم نتمكن من الموافقة على طلبك للحصول على دور "{role}".',
        },
    },
}

_IN_APP_COPY: dict[str, dict[str, tuple[str, str]]] = {
    "submitted": {
        "en": ("Role Request Received", "Your {role} role request is under review"),
        "ar": ("تم استلام طلب الدور", "طلب دور {role} قيد المراجعة"),
    },
    "approved": {
        "en": ("Role Request Approved", "Your {role} role has been approved"),
        "ar": ("تمت الموافقة على طلب الدور", "تمت الموافقة على دور {role}"),
    },
    "rejected": {
        "en": ("Role Request Update", "Your {role} role request needs attention"),
        "ar": ("تحديث طلب الدور", "طلب دور {role} يحتاج مراجعة"),
    },
}


def role_email_content(
    kind: str,
    user_name: str,
    role_name: str,
    language: str = "en",
    rejection_reason: str | None = None,
) -> tuple[str, str]:
    lang = "ar" if language == "ar" else "en"
    copy = _ROLE_COPY[kind][lang]
    header, badge_bg, badge_fg = _HEADER_COLORS[kind]
    greeting = f"مرحباً {escape(user_name)}،" if lang == "ar" else f"Hello {escape(user_name)},"

    extra = ""
    if kind == "approved":
        label = "🚀 الذهاب إلى لوحة التحكم" if lang == "ar" else "🚀 Go to Dashboard"
        extra = f'<p><a href="{settings.FRONTEND_HOST}">{label}</a></p>'
    elif kind == "rejected" and rejection_reason:
        label = "السبب:" if lang == "ar" else "Reason:"
        extra = f"<div><strong>{label}</strong><p>{escape(rejection_reason)}</p></div>"

    html = (
        f'<!DOCTYPE html><html dir="{"rtl" if lang == "ar" else "ltr"}" lang="{lang}">'
        f'<head><meta charset="UTF-8"><style>{_STYLES}'
        f".header {{ background: {header}; }}"
        f".status-badge {{ background: {badge_bg}; color: {badge_fg}; }}</style></head>"
        f'<body><div class="container"><div class="header"><h1>{copy["heading"]}</h1></div>'
        f'<div class="content"><p>{greeting}</p>'
        f'<span class="status-badge">{copy["badge"]}</span>'
        f'<p>{copy["body"].format(role=escape(role_name))}</p>{extra}</div>'
        f"{_FOOTER}</div></body></html>"
    )
    return copy["subject"].format(role=role_name), html


def admin_notification_html(
    user_name: str, user_email: str, role_name: str, justification: str | None
) -> str:
    return (
        '<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8">'
        f"<style>{_STYLES}.header {{ background: #6366f1; }}</style></head>"
        '<body><div class="container"><div class="header"><h1>🔔 New Role Request</h1></div>'
        '<div class="content"><p>A new role request requires your review:</p>'
        f"<p><strong>User:</strong> {escape(user_name)}</p>"
        f"<p><strong>Email:</strong> {escape(user_email)}</p>"
        f"<p><strong>Requested Role:</strong> {escape(role_name)}</p>"
        "<p><strong>Justification:</strong></p>"
        f'<p style="font-style: italic;">{escape(justification or "No justification provided")}</p>'
        f"</div>{_FOOTER}</div></body></html>"
    )


def admin_emails(session: Session) -> list[str]:
    role_rows = session.exec(
        select(UserRole).where(UserRole.role == "admin", UserRole.is_active == True)  # noqa: E712
    ).all()
    emails = {r.user_email for r in role_rows if r.user_email}
    role_user_ids = [r.user_id for r in role_rows if r.user_id and not r.user_email]
    if role_user_ids:
        users = session.exec(select(User).where(col(User.id).in_(role_user_ids))).all()
        emails.update(u.email for u in users)
    superusers = session.exec(select(User).where(User.is_superuser == True)).all()  # noqa: E712
    emails.update(u.email for u in superusers)
    return sorted(emails)


def send_role_request_notification(
    session: Session,
    *,
    kind: str,
    user_email: str,
    requested_role: str,
    user_id: uuid.UUID | None = None,
    user_name: str | None = None,
    justification: str | None = None,
    rejection_reason: str | None = None,
    language: str = "en",
    notify_admins: bool = True,
) -> dict[str, Any]:
    if kind not in ROLE_REQUEST_KINDS:
        raise ValueError(f"Unknown role request notification type: {kind}")

    lang = "ar" if language == "ar" else "en"
    role_name = role_display_name(requested_role, lang)
    title, message = _IN_APP_COPY[kind][lang]

    session.add(
        Notification(
            user_id=user_id,
            user_email=user_email,
            type=f"role_request_{kind}",
            title=title,
            message=message.format(role=role_name),
            entity_type="role_request",
            details={"role": requested_role, "status": kind},
        )
    )
    session.commit()

    name = user_name or user_email
    subject, html = role_email_content(kind, name, role_name, lang, rejection_reason)
    send_email([user_email], subject, html)

    if kind == "submitted" and notify_admins and settings.emails_enabled:
        admin_html = admin_notification_html(name, user_email, role_name, justification)
        for email in admin_emails(session):
            send_email([email], f"🔔 New Role Request: {role_name} - {name}", admin_html)

    return {"notified": True, "type": kind}
