from datetime import datetime

from flask import Blueprint, jsonify, request
from sqlalchemy import or_

from database import db
from errors import NotFound, ValidationFailure
from models import ROLES, SECURITY_LEVELS, User
from services.audit import audit_log, query_logs, summary
from utils.request_auth import current_user, role_required


bp = Blueprint("admin", __name__, url_prefix="/admin")


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except ValueError:
        raise ValidationFailure(f"Invalid {name}")


def _date_arg(name: str) -> datetime | None:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationFailure(f"Invalid {name}")


@bp.get("/users")
@role_required("admin")
def users_list():
    search = request.args.get("search", "")
    page = max(_int_arg("page", 1), 1)
    limit = max(_int_arg("limit", 20), 1)
    q = User.query
    if search:
        q = q.filter(or_(User.name.like(f"%{search}%"), User.email.like(f"%{search}%")))
    users = q.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify({"users": [
        {
            **x.summary(),
            "emailVerified": x.email_verified,
            "createdAt": x.created_at.isoformat() if x.created_at else None,
        }
        for x in users
    ]})


def _target(user_id: str) -> User:
    u = db.session.get(User, user_id)
    if not u:
        raise NotFound("User not found")
    return u


@bp.patch("/users/<user_id>/role")
@role_required("admin")
def change_role(user_id):
    data = request.get_json(silent=True) or {}
    role = data.get("role")
    if role not in ROLES:
        raise ValidationFailure("Invalid role")
    target = _target(user_id)
    old_role = target.role
    target.role = role
    db.session.commit()
    admin = current_user()
    audit_log(admin.id, "ROLE_CHANGE", "users", {
        "targetUserId": target.id,
        "targetUserEmail": target.email,
        "oldRole": old_role,
        "newRole": role,
        "changedBy": admin.email,
    })
    return jsonify({"success": True, "oldRole": old_role, "newRole": role})


@bp.patch("/users/<user_id>/security-level")
@role_required("admin")
def change_security_level(user_id):
    data = request.get_json(silent=True) or {}
    level = data.get("securityLevel")
    if level not in SECURITY_LEVELS:
        raise ValidationFailure("Invalid security level")
    target = _target(user_id)
    old_level = target.security_level
    target.security_level = level
    db.session.commit()
    admin = current_user()
    audit_log(admin.id, "SECURITY_LEVEL_CHANGE", "users", {
        "targetUserId": target.id,
        "oldLevel": old_level,
        "newLevel": level,
        "changedBy": admin.email,
    })
    return jsonify({"success": True, "oldLevel": old_level, "newLevel": level})


@bp.get("/audit-logs")
@role_required("admin")
def audit_logs():
    return jsonify(query_logs(
        search=request.args.get("search", ""),
        action=request.args.get("action", ""),
        start=_date_arg("startDate"),
        end=_date_arg("endDate"),
        page=_int_arg("page", 1),
        limit=_int_arg("limit", 50),
    ))


@bp.get("/audit/summary")
@role_required("admin")
def audit_summary():
    return jsonify(summary())
