import logging

from flask import Flask

from blueprints.admin import bp as admin_bp
from blueprints.auth import bp as auth_bp
from blueprints.resources import bp as res_bp
from config import Config
from database import db
from errors import ConfigError, register_error_handlers
from utils.log_cipher import LogCipher


def _check_secrets(app):
    if not app.config.get("AUTH_SECRET"):
        raise ConfigError("AUTH_SECRET must be set")
    try:
        app.extensions["log_cipher"] = LogCipher(app.config.get("LOG_ENCRYPTION_KEY"))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"LOG_ENCRYPTION_KEY is invalid: {e}")


def create_app(config=Config):
    app = Flask(__name__)
    app.config.from_object(config)
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _check_secrets(app)
    db.init_app(app)
    register_error_handlers(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(res_bp)
    app.register_blueprint(admin_bp)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


def init_db():
    app = create_app()
    with app.app_context():
        import models  # noqa: F401
        db.create_all()
        print("DB initialized")


if __name__ == "__main__":
    app = create_app()
    app.run(debug=app.config["ENV"] == "development")
