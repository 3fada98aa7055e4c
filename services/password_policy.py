import re
from dataclasses import dataclass, field

from zxcvbn import zxcvbn

from models import PasswordHistory
from utils.security import verify_password


MIN_LENGTH = 12
SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

COMMON_PASSWORDS = frozenset([
    "password", "password123", "12345678", "qwerty", "abc123",
    "monkey", "1234567", "letmein", "trustno1", "dragon",
    "baseball", "iloveyou", "master", "sunshine", "ashley",
    "bailey", "passw0rd", "shadow", "123123", "654321",
    "superman", "qazwsx", "michael", "football", "welcome123",
])

STRENGTH_LABELS = ("weak", "fair", "good", "strong", "very-strong")

_RULES = (
    (lambda pw: len(pw) >= MIN_LENGTH, f"Password must be at least {MIN_LENGTH} characters long"),
    (lambda pw: re.search(r"[A-Z]", pw), "Password must contain at least one uppercase letter"),
    (lambda pw: re.search(r"[a-z]", pw), "Password must contain at least one lowercase letter"),
    (lambda pw: re.search(r"[0-9]", pw), "Password must contain at least one number"),
    (lambda pw: any(c in SYMBOLS for c in pw),
     "Password must contain at least one special character (!@#$%^&* etc.)"),
    (lambda pw: pw.lower() not in COMMON_PASSWORDS,
     "This password is too common. Please choose a more unique password"),
)


@dataclass
class PasswordVerdict:
    is_valid: bool
    errors: list[str]
    strength: str
    score: int
    suggestions: list[str] = field(default_factory=list)


def validate_password(password: str, user_inputs: list[str] | None = None) -> PasswordVerdict:
    """Composition rules plus a zxcvbn estimate seeded with the user's own strings."""
    errors = [message for rule, message in _RULES if not rule(password)]
    inputs = [s for s in (user_inputs or []) if s]
    result = zxcvbn(password, user_inputs=inputs) if password else {"score": 0, "feedback": {}}
    score = int(result["score"])
    return PasswordVerdict(
        is_valid=not errors,
        errors=errors,
        strength=STRENGTH_LABELS[score],
        score=score,
        suggestions=list(result["feedback"].get("suggestions") or []),
    )


def is_password_reused(user_id: str, candidate: str, depth: int) -> bool:
    recent = (
        PasswordHistory.query.filter_by(user_id=user_id)
        .order_by(PasswordHistory.created_at.desc(), PasswordHistory.id.desc())
        .limit(depth)
        .all()
    )
    return any(verify_password(h.pass_hash, candidate) for h in recent)
