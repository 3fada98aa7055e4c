"""Grade and department access decisions composed from the policy checks.

MAC is always enforced on its own. Role and attribute checks form the
primary path; a DAC grant is the alternate path next to it, never a way
around MAC.
"""
from datetime import datetime

from models import Course, Enrollment, Grade, User
from services.policy_engine import can_access, check_abac, check_dac, check_mac, check_rubac


GRADE_LETTERS = ("A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D", "F")


def _role_view(u: User, g: Grade) -> bool:
    course = g.enrollment.course
    if u.role == "instructor":
        return course.instructor_id == u.id
    if u.role == "department_head":
        return check_abac(u.abac_attributes(), {"department": course.department}, "same_department")
    return u.role in ("registrar", "admin")


def can_view_grade(u: User, g: Grade) -> bool:
    if not check_mac(u.security_level, g.security_level):
        return False
    # the enrolled student owns the grade
    return _role_view(u, g) or can_access(u.id, g.enrollment.student_id, g.id, "grade", "read")


def can_edit_grade(u: User, g: Grade, at: datetime) -> bool:
    if not check_mac(u.security_level, g.security_level):
        return False
    if not check_rubac("business_hours", at):
        return False
    teaches = u.role == "instructor" and g.enrollment.course.instructor_id == u.id
    return teaches or check_dac(u.id, g.id, "grade", "write")


def grade_row(g: Grade) -> dict:
    course = g.enrollment.course
    return {
        "id": g.id,
        "grade": g.grade,
        "courseCode": course.code,
        "courseTitle": course.title,
        "semester": g.enrollment.semester,
        "securityLevel": g.security_level,
    }


def department_report(head: User) -> dict:
    attrs = head.abac_attributes()
    courses = [
        c for c in Course.query.order_by(Course.code).all()
        if check_abac(attrs, {"department": c.department}, "same_department")
    ]
    rows = []
    for c in courses:
        enrolled = Enrollment.query.filter_by(course_id=c.id).count()
        rows.append({"id": c.id, "code": c.code, "title": c.title, "enrollments": enrolled})
    return {
        "department": head.department,
        "courseCount": len(rows),
        "enrollmentCount": sum(r["enrollments"] for r in rows),
        "courses": rows,
    }
