import os
from datetime import timedelta
from dotenv import load_dotenv


load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///sias.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    ENV = os.getenv("ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # required, checked by create_app
    AUTH_SECRET = os.getenv("AUTH_SECRET")
    LOG_ENCRYPTION_KEY = os.getenv("LOG_ENCRYPTION_KEY")

    SESSION_TTL = timedelta(days=int(os.getenv("SESSION_DAYS", 7)))
    MFA_PENDING_TTL = timedelta(minutes=int(os.getenv("MFA_PENDING_MINUTES", 5)))
    RESET_TOKEN_TTL = timedelta(minutes=int(os.getenv("RESET_TOKEN_MINUTES", 60)))
    VERIFICATION_TTL = timedelta(hours=int(os.getenv("VERIFICATION_HOURS", 24)))

    LOCKOUT_THRESHOLD = int(os.getenv("LOCKOUT_THRESHOLD", 5))
    LOCKOUT_DURATION = timedelta(minutes=int(os.getenv("LOCKOUT_MINUTES", 30)))
    PASSWORD_HISTORY_DEPTH = int(os.getenv("PASSWORD_HISTORY_DEPTH", 5))

    MFA_ISSUER = os.getenv("MFA_ISSUER", "SIAS")

    RECAPTCHA_SECRET_KEY = os.getenv("RECAPTCHA_SECRET_KEY")
    RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
    CAPTCHA_ENABLED = True

    SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASS = os.getenv("SMTP_PASS")
    SMTP_FROM = os.getenv("SMTP_FROM", "noreply@sias.edu")
    APP_URL = os.getenv("APP_URL", "http://localhost:5000")
    MAIL_ENABLED = True

    # zero-arg callable returning local naive time; None means the system clock
    CLOCK = None


class TestConfig(Config):
    TESTING = True
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    AUTH_SECRET = "test-auth-secret"
    LOG_ENCRYPTION_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
    CAPTCHA_ENABLED = False
    MAIL_ENABLED = False
