from datetime import datetime

from flask import current_app
from pyotp.utils import strings_equal

from database import db
from errors import AuthenticationFailure, ValidationFailure
from models import User
from services.audit import audit_log
from services.sessions import create_session
from utils.clock import now
from utils.signed_tokens import pending_signer
from utils.totp_utils import (
    generate_backup_codes,
    matching_step,
    new_totp_secret,
    provisioning_uri,
    qr_data_url,
)


def start_setup(u: User) -> dict:
    """Store a fresh secret as pending; MFA stays disabled until confirmed."""
    if u.mfa_enabled:
        raise ValidationFailure("MFA already enabled")
    secret = new_totp_secret()
    uri = provisioning_uri(secret, u.email, current_app.config["MFA_ISSUER"])
    u.mfa_secret = secret
    u.mfa_last_step = None
    db.session.commit()
    return {"secret": secret, "otpauth": uri, "qrCode": qr_data_url(uri)}


def accept_totp(u: User, code: str, at: datetime) -> bool:
    """TOTP check with +/-1 step drift; a step already used is refused."""
    if not u.mfa_secret:
        return False
    step = matching_step(u.mfa_secret, code, at)
    if step is None:
        return False
    if u.mfa_last_step is not None and step <= u.mfa_last_step:
        return False
    u.mfa_last_step = step
    return True


def consume_backup_code(u: User, code: str) -> bool:
    codes = list(u.backup_codes or [])
    candidate = str(code).strip().upper()
    for stored in codes:
        if strings_equal(stored, candidate):
            codes.remove(stored)
            u.backup_codes = codes
            return True
    return False


def confirm_setup(u: User, code: str) -> list[str]:
    if not code:
        raise ValidationFailure("Token required")
    if not u.mfa_secret:
        raise ValidationFailure("MFA setup not initiated")
    if not accept_totp(u, code, now()):
        raise ValidationFailure("Invalid token")
    codes = generate_backup_codes()
    u.backup_codes = codes
    u.mfa_enabled = True
    db.session.commit()
    audit_log(u.id, "MFA_ENABLED", "auth", {"email": u.email})
    return codes


def disable(u: User):
    # self-service, no re-verification
    u.mfa_enabled = False
    u.mfa_secret = None
    u.mfa_last_step = None
    u.backup_codes = None
    db.session.commit()
    audit_log(u.id, "MFA_DISABLED", "auth", {"email": u.email})


def complete_login(pending_token: str | None, code: str) -> tuple[User, str, datetime]:
    """Second step of sign-in: pending token first, then TOTP or a backup code."""
    if not code or not pending_token:
        raise ValidationFailure("Token required")
    user_id = pending_signer().verify(pending_token)
    if not user_id:
        raise AuthenticationFailure("Session expired")
    u = db.session.get(User, user_id)
    if not u or not u.mfa_enabled or not u.mfa_secret:
        raise ValidationFailure("Invalid user")

    if accept_totp(u, code, now()):
        method = "totp"
    elif consume_backup_code(u, code):
        method = "backup_code"
    else:
        audit_log(u.id, "LOGIN_MFA_FAILED", "auth", {"email": u.email})
        raise ValidationFailure("Invalid code")
    db.session.commit()

    token, expires_at = create_session(u.id)
    audit_log(u.id, "LOGIN_SUCCESS", "auth", {"email": u.email, "mfa": method})
    return u, token, expires_at
