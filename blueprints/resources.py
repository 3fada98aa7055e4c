from flask import Blueprint, jsonify, request

from database import db
from errors import AuthorizationDenied, NotFound, ValidationFailure
from models import Grade
from services import sharing
from services.audit import audit_log
from services.policy_engine import check_mac, check_rubac
from services.records import GRADE_LETTERS, can_edit_grade, can_view_grade, department_report, grade_row
from utils.clock import now
from utils.request_auth import current_user, login_required, role_required


bp = Blueprint("res", __name__)


def _grade(grade_id: int) -> Grade:
    g = db.session.get(Grade, grade_id)
    if not g:
        raise NotFound("Grade not found")
    return g


@bp.get("/grades")
@login_required
def grades_list():
    u = current_user()
    all_grades = Grade.query.order_by(Grade.id).all()
    visible = [g for g in all_grades if check_mac(u.security_level, g.security_level)]
    audit_log(u.id, "ACCESS_GRADES", "grades", {
        "userSecurityLevel": u.security_level,
        "totalFound": len(all_grades),
        "accessibleCount": len(visible),
    })
    return jsonify({
        "grades": [grade_row(g) for g in visible],
        "userSecurityLevel": u.security_level,
        "totalFound": len(all_grades),
        "accessibleCount": len(visible),
    })


@bp.get("/grades/<int:grade_id>")
@login_required
def grade_detail(grade_id):
    u = current_user()
    g = _grade(grade_id)
    if not can_view_grade(u, g):
        audit_log(u.id, "ACCESS_DENIED", "grades", {"gradeId": g.id, "operation": "read"})
        raise AuthorizationDenied()
    audit_log(u.id, "GRADE_VIEW", "grades", {"gradeId": g.id})
    return jsonify(grade_row(g))


@bp.patch("/grades/<int:grade_id>")
@login_required
def grade_update(grade_id):
    u = current_user()
    data = request.get_json(silent=True) or {}
    letter = data.get("grade")
    if letter not in GRADE_LETTERS:
        raise ValidationFailure("Invalid grade")
    g = _grade(grade_id)
    if not can_edit_grade(u, g, now()):
        audit_log(u.id, "ACCESS_DENIED", "grades", {"gradeId": g.id, "operation": "write"})
        raise AuthorizationDenied()
    old = g.grade
    g.grade = letter
    g.updated_by = u.id
    db.session.commit()
    audit_log(u.id, "GRADE_UPDATE", "grades", {
        "gradeId": g.id,
        "enrollmentId": g.enrollment_id,
        "oldGrade": old,
        "newGrade": letter,
    })
    return jsonify({"success": True, "oldGrade": old, "newGrade": letter})


@bp.get("/department/report")
@role_required("department_head")
def department_stats():
    u = current_user()
    if not check_rubac("weekday_only", now()):
        raise AuthorizationDenied()
    report = department_report(u)
    audit_log(u.id, "DEPARTMENT_REPORT", "department", {"department": u.department})
    return jsonify(report)


@bp.post("/dac/share")
@login_required
def dac_share():
    data = request.get_json(silent=True) or {}
    s = sharing.share(
        current_user(),
        data.get("resourceType"),
        data.get("resourceId"),
        data.get("sharedWithEmail"),
        data.get("permission"),
    )
    return jsonify({"success": True, "shareId": s.id})


@bp.post("/dac/revoke")
@login_required
def dac_revoke():
    data = request.get_json(silent=True) or {}
    sharing.revoke(current_user(), data.get("shareId"))
    return jsonify({"success": True})


@bp.get("/dac/list")
@login_required
def dac_list():
    return jsonify(sharing.list_shares(current_user()))
