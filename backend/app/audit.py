import logging
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlmodel import Session

from app.models import AuditLog

logger = logging.getLogger(__name__)

CREATE = "create"
UPDATE = "update"
DELETE = "delete"
STATUS_CHANGE = "status_change"
APPROVE = "approve"
REJECT = "reject"


def snapshot(obj: Any) -> dict[str, Any] | None:
    if obj is None:
        return None
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump()
    return jsonable_encoder(obj)


def log_crud_operation(
    session: Session,
    action: str,
    entity_type: str,
    entity_id: Any,
    user_email: str | None = None,
    old_values: Any = None,
    new_values: Any = None,
) -> AuditLog | None:
    """Append an audit row. Audit failures are logged and never undo the mutation."""
    entry = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        user_email=user_email,
        old_values=snapshot(old_values),
        new_values=snapshot(new_values),
    )
    try:
        session.add(entry)
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.error("Audit log for %s %s %s failed: %s", action, entity_type, entity_id, exc)
        return None
    logger.debug("Audit %s %s %s by %s", action, entity_type, entity_id, user_email)
    return entry
