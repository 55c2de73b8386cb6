from sqlalchemy.orm import Session
from moneyflow.models.audit_log import AuditLog


def log_event(
    s: Session,
    user_id: str,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    details: dict | None = None,
):
    row = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    s.add(row)
    s.commit()
    return row
