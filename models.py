from database import db
from utils.clock import now
from utils.security import new_id


ROLES = ("student", "instructor", "department_head", "registrar", "admin")
SECURITY_LEVELS = ("public", "internal", "confidential", "restricted")


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    pass_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), default="student", nullable=False)
    department = db.Column(db.String(128), nullable=True)
    attributes = db.Column(db.JSON, nullable=True)  # extra ABAC attributes, e.g. {"year": 2}
    security_level = db.Column(db.String(32), default="public", nullable=False)

    mfa_enabled = db.Column(db.Boolean, default=False, nullable=False)
    mfa_secret = db.Column(db.String(64), nullable=True)
    mfa_last_step = db.Column(db.Integer, nullable=True)  # last accepted TOTP time-step
    backup_codes = db.Column(db.JSON, nullable=True)

    email_verified = db.Column(db.Boolean, default=False, nullable=False)
    verification_token = db.Column(db.String(64), nullable=True, index=True)
    verification_expires = db.Column(db.DateTime, nullable=True)

    failed_login_attempts = db.Column(db.Integer, default=0, nullable=False)
    locked_until = db.Column(db.DateTime, nullable=True)
    last_login_attempt = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=now)
    updated_at = db.Column(db.DateTime, default=now, onupdate=now)

    def abac_attributes(self) -> dict:
        attrs = dict(self.attributes or {})
        attrs["department"] = self.department
        return attrs

    def summary(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "department": self.department,
            "securityLevel": self.security_level,
            "mfaEnabled": self.mfa_enabled,
        }


class Session(db.Model):
    __tablename__ = "sessions"
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=now)


class PasswordReset(db.Model):
    __tablename__ = "password_resets"
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False)
    token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=now)


class PasswordHistory(db.Model):
    __tablename__ = "password_history"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False, index=True)
    pass_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=now)


class ResourceShare(db.Model):
    __tablename__ = "resource_shares"
    id = db.Column(db.Integer, primary_key=True)
    resource_type = db.Column(db.String(64), nullable=False)  # grade | course
    resource_id = db.Column(db.Integer, nullable=False)
    owner_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False)
    shared_with_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False, index=True)
    permission = db.Column(db.String(16), nullable=False)  # read | write
    created_at = db.Column(db.DateTime, default=now)


class AuditLog(db.Model):
    __tablename__ = "audit_logs"
    id = db.Column(db.Integer, primary_key=True)
    ts = db.Column(db.DateTime, default=now, index=True)
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=True)
    ip = db.Column(db.String(64))
    action = db.Column(db.String(64), index=True)  # LOGIN_SUCCESS, GRADE_UPDATE, ROLE_CHANGE ...
    resource = db.Column(db.String(255), nullable=True)
    details = db.Column(db.Text)  # encrypted JSON blob


class Course(db.Model):
    __tablename__ = "courses"
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    department = db.Column(db.String(128), nullable=False)
    instructor_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=True)
    security_level = db.Column(db.String(32), default="internal", nullable=False)


class Enrollment(db.Model):
    __tablename__ = "enrollments"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    semester = db.Column(db.String(32), nullable=False)
    course = db.relationship("Course")


class Grade(db.Model):
    __tablename__ = "grades"
    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(db.Integer, db.ForeignKey("enrollments.id"), nullable=False)
    grade = db.Column(db.String(4), nullable=True)
    updated_by = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=True)
    security_level = db.Column(db.String(32), default="confidential", nullable=False)
    enrollment = db.relationship("Enrollment")
