import logging

import requests
from flask import current_app


logger = logging.getLogger(__name__)


def verify_captcha(token: str) -> bool:
    cfg = current_app.config
    if not cfg["CAPTCHA_ENABLED"]:
        return bool(token)
    try:
        r = requests.post(
            cfg["RECAPTCHA_VERIFY_URL"],
            data={"secret": cfg["RECAPTCHA_SECRET_KEY"], "response": token},
            timeout=5,
        )
        r.raise_for_status()
        return bool(r.json().get("success"))
    except (requests.RequestException, ValueError) as e:
        logger.warning("CAPTCHA verification unavailable: %r", e)
        return False
