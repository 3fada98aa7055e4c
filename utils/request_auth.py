from functools import wraps

from flask import current_app, has_request_context, request

from errors import AuthenticationFailure, AuthorizationDenied
from services.sessions import validate_session


SESSION_COOKIE = "session_token"
PENDING_COOKIE = "mfa_pending_token"


def client_ip() -> str:
    if not has_request_context():
        return "unknown"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or "unknown"


def _cookie_opts() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config["ENV"] == "production",
        "samesite": "Lax",
        "path": "/",
    }


def set_session_cookie(response, token: str, expires_at):
    response.set_cookie(SESSION_COOKIE, token, expires=expires_at, **_cookie_opts())


def set_pending_cookie(response, token: str):
    max_age = int(current_app.config["MFA_PENDING_TTL"].total_seconds())
    response.set_cookie(PENDING_COOKIE, token, max_age=max_age, **_cookie_opts())


def clear_auth_cookies(response, pending_only: bool = False):
    if not pending_only:
        response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(PENDING_COOKIE, path="/")


def current_user():
    """Resolve the session cookie to its user, or None."""
    token = request.cookies.get(SESSION_COOKIE)
    found = validate_session(token) if token else None
    return found[1] if found else None


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            raise AuthenticationFailure("Unauthorized")
        return view(*args, **kwargs)

    return wrapper


def role_required(*roles):
    """Exact role equality, the way most portal endpoints gate access."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                raise AuthenticationFailure("Unauthorized")
            if user.role not in roles:
                raise AuthorizationDenied()
            return view(*args, **kwargs)

        return wrapper

    return decorator
