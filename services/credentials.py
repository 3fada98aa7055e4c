"""Signup, password sign-in with lockout, and email verification."""
import math
from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from database import db
from errors import AuthenticationFailure, RateLimitedFailure, ValidationFailure
from models import PasswordHistory, User
from services.audit import audit_log
from services.captcha import verify_captcha
from services.mailer import send_verification_email
from services.password_policy import validate_password
from services.sessions import create_session
from utils.clock import now
from utils.security import hash_password, new_token, verify_password
from utils.signed_tokens import pending_signer


GENERIC_FAILURE = "Invalid email or password"


@dataclass
class LoginOutcome:
    user: User
    mfa_required: bool
    token: str  # session token, or the pending-MFA token when mfa_required
    expires_at: datetime | None = None


def signup(email: str, password: str, name: str, captcha_token: str) -> LoginOutcome:
    if not email or not password or not name:
        raise ValidationFailure("Email, password, and name are required")
    if not all(isinstance(v, str) for v in (email, password, name)):
        raise ValidationFailure("Invalid input")
    if not captcha_token:
        raise ValidationFailure("CAPTCHA required")
    if not verify_captcha(captcha_token):
        raise ValidationFailure("CAPTCHA verification failed")

    verdict = validate_password(password, [email, name])
    if not verdict.is_valid:
        raise ValidationFailure(verdict.errors[0])

    if User.query.filter_by(email=email).first():
        audit_log(None, "signup_failed", "user", {"email": email, "reason": "duplicate_email"})
        raise ValidationFailure("User with this email already exists")

    current = now()
    pass_hash = hash_password(password)
    u = User(
        email=email,
        name=name,
        pass_hash=pass_hash,
        role="student",
        security_level="public",
        email_verified=False,
        verification_token=new_token(),
        verification_expires=current + current_app.config["VERIFICATION_TTL"],
    )
    db.session.add(u)
    db.session.flush()
    db.session.add(PasswordHistory(user_id=u.id, pass_hash=pass_hash, created_at=current))
    db.session.commit()

    send_verification_email(email, u.verification_token)
    audit_log(u.id, "signup_success", "user", {"email": email, "name": name, "role": u.role})

    token, expires_at = create_session(u.id)
    return LoginOutcome(u, False, token, expires_at)


def _register_failure(u: User, current: datetime):
    cfg = current_app.config
    attempts = (u.failed_login_attempts or 0) + 1
    u.failed_login_attempts = attempts
    u.locked_until = current + cfg["LOCKOUT_DURATION"] if attempts >= cfg["LOCKOUT_THRESHOLD"] else None
    u.last_login_attempt = current
    db.session.commit()


def authenticate(email: str, password: str) -> LoginOutcome:
    """Password step of sign-in.

    Unknown emails and wrong passwords fail with the same message. A locked
    account is refused before the password is looked at. Five consecutive
    failures lock the account; success clears the counter. MFA-enabled users
    get a short-lived pending token instead of a session.
    """
    if not email or not password:
        raise ValidationFailure("Email and password are required")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationFailure("Invalid input")

    u = User.query.filter_by(email=email).first()
    if not u:
        audit_log(None, "LOGIN_FAILED", "auth", {"email": email, "reason": "User not found"})
        raise AuthenticationFailure(GENERIC_FAILURE)

    current = now()
    if u.locked_until and u.locked_until > current:
        audit_log(u.id, "LOGIN_LOCKED", "auth", {"email": email})
        wait = math.ceil((u.locked_until - current).total_seconds() / 60)
        raise RateLimitedFailure(wait)

    if not verify_password(u.pass_hash, password):
        _register_failure(u, current)
        audit_log(u.id, "LOGIN_FAILED", "auth", {"email": email, "reason": "Invalid password"})
        raise AuthenticationFailure(GENERIC_FAILURE)

    u.failed_login_attempts = 0
    u.locked_until = None
    u.last_login_attempt = current
    db.session.commit()

    if u.mfa_enabled:
        audit_log(u.id, "LOGIN_MFA_CHALLENGE", "auth", {"email": email})
        return LoginOutcome(u, True, pending_signer().issue(u.id))

    token, expires_at = create_session(u.id)
    audit_log(u.id, "LOGIN_SUCCESS", "auth", {"email": email})
    return LoginOutcome(u, False, token, expires_at)


def verify_email(token: str):
    if not token:
        raise ValidationFailure("Token is required")
    u = User.query.filter_by(verification_token=token).first()
    if not u:
        raise ValidationFailure("Invalid token")
    if u.verification_expires and u.verification_expires < now():
        raise ValidationFailure("Token expired")
    u.email_verified = True
    u.verification_token = None
    u.verification_expires = None
    db.session.commit()
    audit_log(u.id, "EMAIL_VERIFIED", "user", {"email": u.email})
