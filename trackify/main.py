"""Flask application setup and blueprint wiring."""

from __future__ import annotations

from typing import Optional

from flask import Flask
from flask_cors import CORS

from trackify import database
from trackify.config import Settings
from trackify.errors import register_error_handlers
from trackify.routes import register_routes
from trackify.routes.auth import AUTH_SERVICE_KEY
from trackify.services.auth_service import AuthService
from trackify.services.email_service import EmailJSGateway
from trackify.utils.auth import SETTINGS_KEY


def create_app(settings: Optional[Settings] = None, email_gateway: Optional[EmailJSGateway] = None) -> Flask:
    """Configure and return the Flask application instance."""
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.logger.setLevel(settings.log_level)
    CORS(
        app,
        origins=settings.cors_origins,
        methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
        supports_credentials=True,
    )

    app.config[SETTINGS_KEY] = settings
    app.extensions[AUTH_SERVICE_KEY] = AuthService(settings, email_gateway or EmailJSGateway(settings))

    if settings.uses_dev_secret:
        app.logger.warning("JWT_SECRET is not set; using the development secret")

    database.configure(settings)
    register_error_handlers(app)
    register_routes(app)

    try:
        database.create_indexes()
        app.logger.info("MongoDB indexes created successfully")
    except Exception as e:
        app.logger.warning(f"Failed to create MongoDB indexes: {e}")

    return app
