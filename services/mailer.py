import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app


logger = logging.getLogger(__name__)

BUTTON = (
    '<a href="{url}" style="background-color: #0070f3; color: white; padding: 10px 20px; '
    'text-decoration: none; border-radius: 5px;">{label}</a>'
)


def _send(to_email: str, subject: str, html_body: str):
    cfg = current_app.config
    msg = MIMEMultipart()
    msg["From"] = cfg["SMTP_FROM"]
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(html_body, "html"))
    with smtplib.SMTP(cfg["SMTP_HOST"], cfg["SMTP_PORT"], timeout=10) as server:
        server.starttls()
        if cfg["SMTP_USER"]:
            server.login(cfg["SMTP_USER"], cfg["SMTP_PASS"])
        server.sendmail(cfg["SMTP_FROM"], to_email, msg.as_string())


def _link(path: str, token: str) -> str:
    return f"{current_app.config['APP_URL']}{path}?token={token}"


def _deliver(to_email: str, subject: str, url: str, heading: str, label: str, footer: str):
    cfg = current_app.config
    if not cfg["MAIL_ENABLED"] or cfg["ENV"] == "development":
        logger.info("Mail to %s: %s", to_email, url)
        return
    body = (
        f"<h1>{heading}</h1>"
        f"<div style=\"margin: 20px 0;\">{BUTTON.format(url=url, label=label)}</div>"
        f"<p style=\"color: #666; font-size: 14px;\">{footer}</p>"
    )
    _send(to_email, subject, body)


def send_verification_email(email: str, token: str):
    """Best effort; signup proceeds even if delivery fails."""
    try:
        _deliver(email, "Verify your email address - SIAS", _link("/verify-email", token),
                 "Welcome to SIAS", "Verify Email", "This link will expire in 24 hours.")
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send verification email to %s: %r", email, e)


def send_password_reset_email(email: str, token: str):
    try:
        _deliver(email, "Reset your password - SIAS", _link("/reset-password", token),
                 "Password Reset Request", "Reset Password", "This link will expire in 1 hour.")
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send password reset email to %s: %r", email, e)
        raise
