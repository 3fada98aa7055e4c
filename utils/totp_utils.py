import base64
import secrets
from datetime import datetime
from io import BytesIO

import pyotp
import qrcode
from pyotp.utils import strings_equal


BACKUP_CODE_COUNT = 10


def new_totp_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(secret: str, email: str, issuer: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=issuer)


def qr_data_url(uri: str) -> str:
    img = qrcode.make(uri)
    buffered = BytesIO()
    img.save(buffered, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode()


def totp_at(secret: str, for_time: datetime) -> str:
    return pyotp.TOTP(secret).at(for_time)


def matching_step(secret: str, code: str, for_time: datetime, valid_window: int = 1) -> int | None:
    """Return the TOTP time-step ``code`` belongs to, allowing +/- ``valid_window`` steps."""
    totp = pyotp.TOTP(secret)
    code = str(code).strip()
    if len(code) != totp.digits or not (code.isascii() and code.isdigit()):
        return None
    base = totp.timecode(for_time)
    for offset in range(-valid_window, valid_window + 1):
        if strings_equal(totp.at(for_time, offset), code):
            return base + offset
    return None


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    return [secrets.token_hex(4).upper() for _ in range(count)]
