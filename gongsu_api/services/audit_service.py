from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from gongsu_api.extensions import db
from gongsu_api.models.audit import AuditLog

log = logging.getLogger(__name__)


def log_event(
    action: str,
    category: str,
    target_id: Any = None,
    target_name: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    actor: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """
    Append one audit row. Call after the audited change is committed.
    A failed audit write is logged and dropped; it never undoes the change.
    """
    if actor is None:
        from gongsu_api.common.auth import current_actor
        actor = current_actor()
    row = AuditLog(
        action=action,
        category=category,
        actor_id=str(actor["id"]) if actor.get("id") is not None else None,
        actor_email=actor.get("email"),
        actor_name=actor.get("name"),
        target_id=str(target_id) if target_id is not None else None,
        target_name=target_name,
        details=details,
        ip=request.remote_addr if has_request_context() else None,
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        log.exception("failed to write audit log %s:%s", category, action)
        return None
    log.info("[audit] %s:%s by %s", category, action, row.actor_email or row.actor_id or "-")
    return row


def get_logs(limit: int = 100, category: Optional[str] = None, actor_id: Optional[str] = None) -> List[AuditLog]:
    q = AuditLog.query
    if category:
        q = q.filter(AuditLog.category == category)
    if actor_id:
        q = q.filter(AuditLog.actor_id == str(actor_id))
    return q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()


def row(a: AuditLog) -> Dict[str, Any]:
    return {
        "id": a.id,
        "action": a.action,
        "category": a.category,
        "actor_id": a.actor_id,
        "actor_email": a.actor_email,
        "actor_name": a.actor_name,
        "target_id": a.target_id,
        "target_name": a.target_name,
        "details": a.details,
        "ip": a.ip,
        "timestamp": a.timestamp.isoformat() if a.timestamp else None,
    }
