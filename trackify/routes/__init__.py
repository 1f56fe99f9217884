"""Blueprint registration helper."""

from __future__ import annotations

from flask import Flask, jsonify

from .applications import bp as applications_bp
from .auth import bp as auth_bp
from .dashboard import bp as dashboard_bp
from .users import bp as users_bp


def register_routes(app: Flask) -> None:
    """Register all application blueprints on the provided Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(applications_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(dashboard_bp)

    @app.get("/")
    def index():
        return jsonify(message="Internship Tracker API is up"), 200
