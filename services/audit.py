import logging
import math
from collections import Counter
from datetime import datetime

from flask import current_app
from sqlalchemy import or_

from database import db
from models import AuditLog, User
from utils.request_auth import client_ip


logger = logging.getLogger(__name__)


def _cipher():
    return current_app.extensions["log_cipher"]


def audit_log(user_id, action, resource=None, details=None, ip=None):
    """Append one encrypted audit entry. Never raises into the caller."""
    try:
        a = AuditLog(
            user_id=user_id,
            ip=ip or client_ip(),
            action=action,
            resource=resource,
            details=_cipher().encrypt(details or {}),
        )
        db.session.add(a)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Audit log write failed for %s: %r", action, e)


def query_logs(search: str = "", action: str = "", start: datetime | None = None,
               end: datetime | None = None, page: int = 1, limit: int = 50) -> dict:
    page = max(page, 1)
    limit = max(limit, 1)
    q = db.session.query(AuditLog, User.name, User.email).outerjoin(User, AuditLog.user_id == User.id)
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(
            AuditLog.action.like(pattern),
            AuditLog.resource.like(pattern),
            AuditLog.ip.like(pattern),
        ))
    if action:
        q = q.filter(AuditLog.action == action)
    if start is not None:
        q = q.filter(AuditLog.ts >= start)
    if end is not None:
        q = q.filter(AuditLog.ts <= end)

    total = q.order_by(None).count()
    rows = (
        q.order_by(AuditLog.ts.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    cipher = _cipher()
    logs = [
        {
            "id": a.id,
            "userId": a.user_id,
            "userName": name,
            "userEmail": email,
            "action": a.action,
            "resource": a.resource,
            "ipAddress": a.ip,
            "details": cipher.decrypt(a.details) if a.details else None,
            "timestamp": a.ts.isoformat() if a.ts else None,
        }
        for a, name, email in rows
    ]
    return {
        "logs": logs,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


def summary():
    rows = AuditLog.query.order_by(AuditLog.ts.desc()).limit(500).all()
    actions = Counter([r.action for r in rows])
    resources = Counter([r.resource for r in rows if r.resource])
    return {
        "counts": {
            "actions": actions,
            "resources": resources,
            "total": len(rows),
        }
    }
