# ideaboard/__init__.py
import os

from flask import Flask
from flask_cors import CORS

from .config import Config
from .extensions import api_backend
from .utils.telemetry import setup_event_logging


def create_app(config_object=None, client_factory=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    # Under pytest keep the event logger quiet about files and mark the app as testing
    if os.environ.get('PYTEST_CURRENT_TEST'):
        app.config['TESTING'] = True
        app.config['EVENT_LOG_PATH'] = ''

    origins = app.config.get('CORS_ORIGINS') or '*'
    if origins != '*':
        origins = [o.strip() for o in origins.split(',') if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins}})

    # Initialize Application Extensions
    api_backend.init_app(app, client_factory=client_factory)
    setup_event_logging(app)

    # Register App Blueprints (import lazily to avoid cycles)
    from .routes.discussion import discussion_bp

    app.register_blueprint(discussion_bp, url_prefix="")

    @app.errorhandler(500)
    def internal_error(exc):
        original = getattr(exc, "original_exception", None) or exc
        app.logger.error(f"Unhandled error: {original}", exc_info=original)
        return {"ok": False, "error": "Internal server error"}, 500

    @app.get("/health")
    def health():
        return {"ok": True, "app": app.config.get("APP_NAME")}

    return app
