import uuid, json
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog

# Never persisted into audit details, at any nesting level.
REDACTED_KEYS = {"card_number", "number", "cvv", "securityCode", "token", "secret", "secret_key", "consumer_secret", "authorization"}

def redact(value):
    if isinstance(value, dict):
        return {k: ("***" if k in REDACTED_KEYS else redact(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value

def log_audit(db: Session, actor_user_id: str, action: str, entity_type: str, entity_id: str, details: dict | None = None) -> AuditLog:
    """Add an audit row to the session; the caller owns the commit so it lands with the change it describes."""
    row = AuditLog(
        id=str(uuid.uuid4()),
        actor_user_id=actor_user_id or "system",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id or "",
        details_json=json.dumps(redact(details or {}), ensure_ascii=False, default=str),
    )
    db.add(row)
    return row
