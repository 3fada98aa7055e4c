from database import db
from errors import NotFound, ValidationFailure
from models import Course, Grade, ResourceShare, User
from services.audit import audit_log
from services.policy_engine import PERMISSIONS


def resource_owner(resource_type: str, resource_id: int) -> str | None:
    """Owner of a shareable resource: the enrolled student for a grade, the instructor for a course."""
    if resource_type == "grade":
        g = db.session.get(Grade, resource_id)
        return g.enrollment.student_id if g else None
    if resource_type == "course":
        c = db.session.get(Course, resource_id)
        return c.instructor_id if c else None
    return None


def share(owner: User, resource_type: str, resource_id, shared_with_email: str, permission: str) -> ResourceShare:
    if not resource_type or not resource_id or not shared_with_email or not permission:
        raise ValidationFailure("Missing required fields")
    if permission not in PERMISSIONS:
        raise ValidationFailure("Invalid permission")
    try:
        resource_id = int(resource_id)
    except (TypeError, ValueError):
        raise ValidationFailure("Invalid resource id")

    target = User.query.filter_by(email=shared_with_email).first()
    if not target:
        raise NotFound("User not found")
    if target.id == owner.id:
        raise ValidationFailure("Cannot share with yourself")
    if resource_owner(resource_type, resource_id) != owner.id:
        raise NotFound("Resource not found")

    s = ResourceShare(
        resource_type=resource_type,
        resource_id=resource_id,
        owner_id=owner.id,
        shared_with_id=target.id,
        permission=permission,
    )
    db.session.add(s)
    db.session.commit()
    audit_log(owner.id, "DAC_SHARE", resource_type, {
        "resourceId": resource_id,
        "sharedWith": target.email,
        "permission": permission,
    })
    return s


def revoke(owner: User, share_id):
    if not share_id:
        raise ValidationFailure("Share ID required")
    s = ResourceShare.query.filter_by(id=share_id, owner_id=owner.id).first()
    if not s:
        raise NotFound("Share not found or unauthorized")
    details = {"shareId": s.id, "resourceId": s.resource_id}
    resource_type = s.resource_type
    db.session.delete(s)
    db.session.commit()
    audit_log(owner.id, "DAC_REVOKE", resource_type, details)


def _row(s: ResourceShare, other: User | None, prefix: str) -> dict:
    return {
        "id": s.id,
        "resourceType": s.resource_type,
        "resourceId": s.resource_id,
        "permission": s.permission,
        f"{prefix}Email": other.email if other else None,
        f"{prefix}Name": other.name if other else None,
        "createdAt": s.created_at.isoformat() if s.created_at else None,
    }


def list_shares(u: User) -> dict:
    by_me = (
        db.session.query(ResourceShare, User)
        .outerjoin(User, ResourceShare.shared_with_id == User.id)
        .filter(ResourceShare.owner_id == u.id)
        .all()
    )
    with_me = (
        db.session.query(ResourceShare, User)
        .outerjoin(User, ResourceShare.owner_id == User.id)
        .filter(ResourceShare.shared_with_id == u.id)
        .all()
    )
    return {
        "sharedByMe": [_row(s, other, "sharedWith") for s, other in by_me],
        "sharedWithMe": [_row(s, other, "owner") for s, other in with_me],
    }
