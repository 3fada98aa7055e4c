from flask import Blueprint, jsonify, request

from services import credentials, mfa, password_reset
from services.audit import audit_log
from services.sessions import invalidate_session
from utils.request_auth import (
    PENDING_COOKIE,
    SESSION_COOKIE,
    clear_auth_cookies,
    current_user,
    login_required,
    set_pending_cookie,
    set_session_cookie,
)


bp = Blueprint("auth", __name__, url_prefix="/auth")


def _user_json(u):
    return {"id": u.id, "email": u.email, "name": u.name, "role": u.role}


@bp.post("/signup")
def signup():
    data = request.get_json(silent=True) or {}
    outcome = credentials.signup(
        data.get("email"), data.get("password"), data.get("name"), data.get("captchaToken")
    )
    resp = jsonify({"user": _user_json(outcome.user)})
    set_session_cookie(resp, outcome.token, outcome.expires_at)
    return resp, 201


@bp.post("/signin")
def signin():
    data = request.get_json(silent=True) or {}
    outcome = credentials.authenticate(data.get("email"), data.get("password"))
    if outcome.mfa_required:
        resp = jsonify({"mfaRequired": True})
        set_pending_cookie(resp, outcome.token)
        return resp
    resp = jsonify({"user": _user_json(outcome.user)})
    set_session_cookie(resp, outcome.token, outcome.expires_at)
    return resp


@bp.post("/signout")
def signout():
    u = current_user()
    if u:
        audit_log(u.id, "LOGOUT", "auth", {"email": u.email})
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        invalidate_session(token)
    resp = jsonify({"success": True})
    clear_auth_cookies(resp)
    return resp


@bp.get("/session")
def session_info():
    u = current_user()
    return jsonify({"user": u.summary() if u else None})


@bp.post("/verify-email")
def verify_email():
    data = request.get_json(silent=True) or {}
    credentials.verify_email(data.get("token"))
    return jsonify({"success": True})


@bp.post("/mfa/setup")
@login_required
def mfa_setup():
    return jsonify(mfa.start_setup(current_user()))


@bp.post("/mfa/verify")
@login_required
def mfa_verify():
    data = request.get_json(silent=True) or {}
    codes = mfa.confirm_setup(current_user(), data.get("token"))
    return jsonify({"success": True, "backupCodes": codes})


@bp.post("/mfa/validate")
def mfa_validate():
    data = request.get_json(silent=True) or {}
    u, token, expires_at = mfa.complete_login(request.cookies.get(PENDING_COOKIE), data.get("token"))
    resp = jsonify({"user": _user_json(u)})
    set_session_cookie(resp, token, expires_at)
    clear_auth_cookies(resp, pending_only=True)
    return resp


@bp.post("/mfa/disable")
@login_required
def mfa_disable():
    mfa.disable(current_user())
    return jsonify({"success": True})


@bp.post("/password/forgot")
def password_forgot():
    data = request.get_json(silent=True) or {}
    password_reset.request_reset(data.get("email"))
    # same answer whether or not the address exists
    return jsonify({"success": True})


@bp.post("/password/reset")
def password_reset_submit():
    data = request.get_json(silent=True) or {}
    password_reset.reset_password(data.get("token"), data.get("password"))
    return jsonify({"success": True})
