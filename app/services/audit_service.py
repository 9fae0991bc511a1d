import uuid, json
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog

def log_audit(db: Session, actor: str, action: str, entity_type: str, entity_id, details: dict | None = None):
    """Stage an audit row; it is committed together with the caller's change."""
    db.add(AuditLog(
        id=str(uuid.uuid4()),
        actor=actor or "system",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details_json=json.dumps(details or {}, ensure_ascii=False, default=str),
    ))


def list_audit(db: Session, entity_type: str | None = None, entity_id: str | None = None, limit: int = 100) -> list[AuditLog]:
    q = db.query(AuditLog)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        q = q.filter(AuditLog.entity_id == str(entity_id))
    return q.order_by(AuditLog.created_at.desc()).limit(limit).all()
