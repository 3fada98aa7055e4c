"""Access-control decision functions.

Five independent checks; handlers pick whichever apply to a resource and
chain them explicitly. Every check is total: unknown labels deny, nothing
raises for well-typed input.
"""
from datetime import datetime

from models import ResourceShare


SECURITY_LEVEL_RANK = {
    "public": 0,
    "internal": 1,
    "confidential": 2,
    "restricted": 3,
}

ROLE_RANK = {
    "student": 0,
    "instructor": 1,
    "department_head": 2,
    "registrar": 3,
    "admin": 4,
}

PERMISSIONS = ("read", "write")

# Mon-Fri, [9, 17)
BUSINESS_HOURS = (9, 17)


def check_mac(user_level: str, resource_level: str) -> bool:
    """Read-down: the viewer's clearance must be at least the resource's level."""
    user_rank = SECURITY_LEVEL_RANK.get(user_level)
    resource_rank = SECURITY_LEVEL_RANK.get(resource_level)
    if user_rank is None or resource_rank is None:
        return False
    return user_rank >= resource_rank


def check_dac(user_id: str, resource_id: int, resource_type: str, permission: str) -> bool:
    """Explicit grant lookup. Ownership is NOT implied; see ``can_access``."""
    if permission not in PERMISSIONS:
        return False
    q = ResourceShare.query.filter_by(
        shared_with_id=user_id, resource_id=resource_id, resource_type=resource_type
    )
    if permission == "write":
        q = q.filter_by(permission="write")
    else:
        q = q.filter(ResourceShare.permission.in_(PERMISSIONS))
    return q.first() is not None


def can_access(user_id: str, owner_id: str | None, resource_id: int, resource_type: str, permission: str) -> bool:
    """Ownership first, then fall back to a DAC grant."""
    if owner_id is not None and user_id == owner_id:
        return True
    return check_dac(user_id, resource_id, resource_type, permission)


def check_rbac(user_role: str, required_role: str) -> bool:
    """Hierarchical privilege floor. Most endpoints use exact role equality instead."""
    user_rank = ROLE_RANK.get(user_role)
    required_rank = ROLE_RANK.get(required_role)
    if user_rank is None or required_rank is None:
        return False
    return user_rank >= required_rank


def check_rubac(rule_type: str, at: datetime) -> bool:
    """Time-window rules evaluated against the supplied local time."""
    weekday = at.weekday() < 5
    if rule_type == "weekday_only":
        return weekday
    if rule_type == "business_hours":
        start, end = BUSINESS_HOURS
        return weekday and start <= at.hour < end
    return False


def check_abac(user_attrs: dict, resource_attrs: dict, policy: str) -> bool:
    if policy == "same_department":
        key = "department"
    elif policy == "same_year":
        key = "year"
    else:
        return False
    mine = (user_attrs or {}).get(key)
    theirs = (resource_attrs or {}).get(key)
    if mine is None or theirs is None:
        return False
    return mine == theirs
