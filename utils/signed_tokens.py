"""Pending-MFA bearer tokens.

Format is ``payload.timestamp.signature`` as produced by itsdangerous'
``TimestampSigner``: the HMAC covers ``payload.timestamp`` and ``unsign``
checks the signature before the age.
"""
import hashlib
from typing import Callable
from datetime import datetime

from flask import current_app
from itsdangerous import BadSignature, TimestampSigner

from utils.clock import now


class PendingTokenSigner(TimestampSigner):
    def __init__(self, secret_key: str, clock: Callable[[], datetime], max_age: int):
        super().__init__(secret_key, salt="mfa-pending", digest_method=hashlib.sha256)
        self.clock = clock
        self.max_age = max_age

    def get_timestamp(self) -> int:
        return int(self.clock().timestamp())

    def issue(self, user_id: str) -> str:
        return self.sign(user_id).decode()

    def verify(self, token: str) -> str | None:
        """Return the bound user id, or None if tampered, malformed or expired."""
        if not token:
            return None
        try:
            return self.unsign(token, max_age=self.max_age).decode()
        except BadSignature:
            return None


def pending_signer() -> PendingTokenSigner:
    cfg = current_app.config
    return PendingTokenSigner(
        cfg["AUTH_SECRET"], clock=now, max_age=int(cfg["MFA_PENDING_TTL"].total_seconds())
    )
