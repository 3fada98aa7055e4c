from flask import current_app

from database import db
from errors import ValidationFailure
from models import PasswordHistory, PasswordReset, User
from services.audit import audit_log
from services.mailer import send_password_reset_email
from services.password_policy import is_password_reused, validate_password
from services.sessions import invalidate_user_sessions
from utils.clock import now
from utils.security import hash_password, new_token


def create_reset_token(email: str) -> str | None:
    """Issue a 1h token, replacing any earlier one. None for unknown emails."""
    u = User.query.filter_by(email=email).first()
    if not u:
        return None
    current = now()
    PasswordReset.query.filter_by(user_id=u.id).delete()
    token = new_token()
    db.session.add(PasswordReset(
        user_id=u.id,
        token=token,
        expires_at=current + current_app.config["RESET_TOKEN_TTL"],
        created_at=current,
    ))
    db.session.commit()
    return token


def validate_reset_token(token: str) -> PasswordReset | None:
    reset = PasswordReset.query.filter_by(token=token).first()
    if not reset:
        return None
    if reset.expires_at < now():
        PasswordReset.query.filter_by(id=reset.id).delete()
        db.session.commit()
        return None
    return reset


def delete_reset_token(reset_id: str):
    PasswordReset.query.filter_by(id=reset_id).delete()
    db.session.commit()


def request_reset(email: str):
    if not email:
        raise ValidationFailure("Email is required")
    token = create_reset_token(email)
    if token:
        send_password_reset_email(email, token)
        audit_log(None, "PASSWORD_RESET_REQUESTED", "auth", {"email": email})


def reset_password(token: str, password: str):
    if not token or not password:
        raise ValidationFailure("Token and password are required")
    reset = validate_reset_token(token)
    if not reset:
        raise ValidationFailure("Invalid or expired token")

    u = db.session.get(User, reset.user_id)
    if not u:
        raise ValidationFailure("Invalid or expired token")
    verdict = validate_password(password, [u.email, u.name])
    if not verdict.is_valid:
        raise ValidationFailure(verdict.errors[0])
    if is_password_reused(reset.user_id, password, current_app.config["PASSWORD_HISTORY_DEPTH"]):
        raise ValidationFailure("Password was used recently. Please choose a different password")

    pass_hash = hash_password(password)
    u.pass_hash = pass_hash
    db.session.add(PasswordHistory(user_id=u.id, pass_hash=pass_hash, created_at=now()))
    db.session.commit()

    delete_reset_token(reset.id)
    invalidate_user_sessions(u.id)
    audit_log(u.id, "PASSWORD_RESET", "auth", {"email": u.email})
