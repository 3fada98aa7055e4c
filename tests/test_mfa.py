"""Tests for MFA enrollment and the two-step sign-in."""

import pyotp
import pytest

from database import db
from models import AuditLog
from utils.request_auth import PENDING_COOKIE, SESSION_COOKIE

from conftest import PASSWORD


def _code(user, clock, offset=0):
    return pyotp.TOTP(user.mfa_secret).at(clock(), offset)


@pytest.fixture
def enrolled(client, make_user, login, clock):
    """A user with MFA fully enabled, signed out again."""
    u = make_user()
    login(u)
    client.post("/auth/mfa/setup")
    db.session.refresh(u)
    r = client.post("/auth/mfa/verify", json={"token": _code(u, clock)})
    assert r.status_code == 200
    client.post("/auth/signout")
    # next window, so the setup code is spent
    clock.advance(seconds=60)
    db.session.refresh(u)
    return u, r.get_json()["backupCodes"]


class TestSetup:
    def test_setup_stores_pending_secret(self, client, make_user, login):
        u = make_user()
        login(u)
        r = client.post("/auth/mfa/setup")
        assert r.status_code == 200
        body = r.get_json()
        assert body["qrCode"].startswith("data:image/png;base64,")
        assert body["otpauth"].startswith("otpauth://totp/")
        assert "issuer=SIAS" in body["otpauth"]
        db.session.refresh(u)
        assert u.mfa_secret == body["secret"]
        assert len(u.mfa_secret) >= 16
        assert u.mfa_enabled is False

    def test_confirm_enables_and_issues_backup_codes(self, client, make_user, login, clock):
        u = make_user()
        login(u)
        client.post("/auth/mfa/setup")
        db.session.refresh(u)
        r = client.post("/auth/mfa/verify", json={"token": _code(u, clock)})
        assert r.status_code == 200
        codes = r.get_json()["backupCodes"]
        assert len(codes) == 10
        assert all(len(c) == 8 and c == c.upper() for c in codes)
        db.session.refresh(u)
        assert u.mfa_enabled is True
        assert u.backup_codes == codes
        assert AuditLog.query.filter_by(action="MFA_ENABLED").count() == 1

    def test_wrong_confirmation_code_keeps_pending(self, client, make_user, login, clock):
        u = make_user()
        login(u)
        client.post("/auth/mfa/setup")
        db.session.refresh(u)
        wrong = "000000" if _code(u, clock) != "000000" else "111111"
        r = client.post("/auth/mfa/verify", json={"token": wrong})
        assert r.status_code == 400
        db.session.refresh(u)
        assert u.mfa_enabled is False
        assert u.mfa_secret is not None
        assert not u.backup_codes

    def test_non_ascii_confirmation_code(self, client, make_user, login):
        login(make_user())
        client.post("/auth/mfa/setup")
        r = client.post("/auth/mfa/verify", json={"token": "\u0661\u0662\u0663\u0664\u0665\u0666"})
        assert r.status_code == 400
        assert r.get_json() == {"error": "Invalid token"}

    def test_confirm_without_setup(self, client, make_user, login):
        login(make_user())
        r = client.post("/auth/mfa/verify", json={"token": "123456"})
        assert r.status_code == 400
        assert r.get_json()["error"] == "MFA setup not initiated"

    def test_disable_clears_everything(self, client, enrolled, clock):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        assert client.post("/auth/mfa/validate", json={"token": _code(u, clock)}).status_code == 200
        r = client.post("/auth/mfa/disable")
        assert r.status_code == 200
        db.session.refresh(u)
        assert u.mfa_enabled is False
        assert u.mfa_secret is None
        assert u.backup_codes is None
        r = client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        assert "mfaRequired" not in r.get_json()

    def test_setup_refused_while_enabled(self, client, enrolled, clock):
        u, _ = enrolled
        secret = u.mfa_secret
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        assert client.post("/auth/mfa/validate", json={"token": _code(u, clock)}).status_code == 200
        r = client.post("/auth/mfa/setup")
        assert r.status_code == 400
        assert r.get_json() == {"error": "MFA already enabled"}
        db.session.refresh(u)
        assert u.mfa_secret == secret
        assert u.mfa_last_step is not None


class TestMfaSignin:
    def test_signin_returns_challenge_only(self, client, enrolled):
        u, _ = enrolled
        r = client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        assert r.status_code == 200
        assert r.get_json() == {"mfaRequired": True}
        assert client.get_cookie(PENDING_COOKIE) is not None
        assert client.get_cookie(SESSION_COOKIE) is None
        assert AuditLog.query.filter_by(action="LOGIN_MFA_CHALLENGE").count() == 1

    def test_pending_token_is_bound_to_user(self, client, enrolled):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        assert client.get_cookie(PENDING_COOKIE).value.split(".")[0] == u.id

    def test_totp_completes_login(self, client, enrolled, clock):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        r = client.post("/auth/mfa/validate", json={"token": _code(u, clock)})
        assert r.status_code == 200
        assert r.get_json()["user"]["id"] == u.id
        assert client.get_cookie(SESSION_COOKIE) is not None
        assert client.get_cookie(PENDING_COOKIE) is None
        assert client.get("/auth/session").get_json()["user"]["mfaEnabled"] is True

    def test_previous_window_code_accepted(self, client, enrolled, clock):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        r = client.post("/auth/mfa/validate", json={"token": _code(u, clock, offset=-1)})
        assert r.status_code == 200

    def test_totp_code_cannot_be_replayed(self, client, enrolled, clock):
        u, _ = enrolled
        code = _code(u, clock)
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        assert client.post("/auth/mfa/validate", json={"token": code}).status_code == 200
        client.post("/auth/signout")
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        r = client.post("/auth/mfa/validate", json={"token": code})
        assert r.status_code == 400
        assert r.get_json()["error"] == "Invalid code"

    def test_backup_code_is_single_use(self, client, enrolled):
        u, codes = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        assert client.post("/auth/mfa/validate", json={"token": codes[0]}).status_code == 200
        db.session.refresh(u)
        assert codes[0] not in u.backup_codes
        assert len(u.backup_codes) == 9

        client.post("/auth/signout")
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        r = client.post("/auth/mfa/validate", json={"token": codes[0]})
        assert r.status_code == 400
        assert client.post("/auth/mfa/validate", json={"token": codes[1]}).status_code == 200

    def test_invalid_code_keeps_pending_token(self, client, enrolled, clock):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        good = _code(u, clock)
        wrong = "000000" if good != "000000" else "111111"
        r = client.post("/auth/mfa/validate", json={"token": wrong})
        assert r.status_code == 400
        assert client.get_cookie(SESSION_COOKIE) is None
        assert client.post("/auth/mfa/validate", json={"token": good}).status_code == 200

    @pytest.mark.parametrize("code", ["\u00e9t\u00e9", "\u0661\u0662\u0663\u0664\u0665\u0666", "\uff11\uff12\uff13\uff14\uff15\uff16"])
    def test_non_ascii_code_is_invalid(self, client, enrolled, code):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        r = client.post("/auth/mfa/validate", json={"token": code})
        assert r.status_code == 400
        assert r.get_json() == {"error": "Invalid code"}

    def test_expired_pending_token(self, client, enrolled, clock):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        clock.advance(minutes=5, seconds=1)
        r = client.post("/auth/mfa/validate", json={"token": _code(u, clock)})
        assert r.status_code == 401
        assert r.get_json()["error"] == "Session expired"

    def test_tampered_pending_token(self, client, enrolled, make_user, clock):
        u, _ = enrolled
        other = make_user()
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        _, ts, sig = client.get_cookie(PENDING_COOKIE).value.split(".")
        client.set_cookie(PENDING_COOKIE, f"{other.id}.{ts}.{sig}")
        r = client.post("/auth/mfa/validate", json={"token": _code(u, clock)})
        assert r.status_code == 401

    def test_missing_pending_cookie(self, client, enrolled, clock):
        u, _ = enrolled
        r = client.post("/auth/mfa/validate", json={"token": _code(u, clock)})
        assert r.status_code == 400

    def test_signout_clears_pending_cookie(self, client, enrolled):
        u, _ = enrolled
        client.post("/auth/signin", json={"email": u.email, "password": PASSWORD})
        client.post("/auth/signout")
        assert client.get_cookie(PENDING_COOKIE) is None
