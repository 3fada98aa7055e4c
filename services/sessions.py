from datetime import datetime

from flask import current_app

from database import db
from models import Session, User
from utils.clock import now
from utils.security import new_token


def create_session(user_id: str) -> tuple[str, datetime]:
    current = now()
    # a fresh login sweeps this user's stale rows
    Session.query.filter(Session.user_id == user_id, Session.expires_at < current).delete()
    token = new_token()
    expires_at = current + current_app.config["SESSION_TTL"]
    db.session.add(Session(token=token, user_id=user_id, expires_at=expires_at, created_at=current))
    db.session.commit()
    return token, expires_at


def validate_session(token: str) -> tuple[Session, User] | None:
    s = Session.query.filter_by(token=token).first()
    if not s:
        return None
    if s.expires_at < now():
        # a concurrent reaper may already have removed the row
        Session.query.filter_by(id=s.id).delete()
        db.session.commit()
        return None
    u = db.session.get(User, s.user_id)
    if not u:
        return None
    return s, u


def invalidate_session(token: str):
    Session.query.filter_by(token=token).delete()
    db.session.commit()


def invalidate_user_sessions(user_id: str):
    Session.query.filter_by(user_id=user_id).delete()
    db.session.commit()
