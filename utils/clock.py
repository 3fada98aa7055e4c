from datetime import datetime

from flask import current_app, has_app_context


def now() -> datetime:
    """Local wall-clock time, read through the app's CLOCK setting when present."""
    if has_app_context():
        clock = current_app.config.get("CLOCK")
        if clock is not None:
            return clock()
    return datetime.now()
