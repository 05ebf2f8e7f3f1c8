"""
Dev Mastery — Flask Web Application

Local, single-user learning tracker: card completion and bookmarks, XP and
levels, daily streaks, achievements, notes and study goals, all persisted to a
local durable store.
"""

from __future__ import annotations

import os
from typing import Any

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException

import database
from blueprints import register_blueprints


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    if test_config is not None:
        from config import TestingConfig
        app.config.from_object(TestingConfig)
        app.config.update(test_config)
    else:
        from config import config_by_name
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.secret_key = app.config.get("SECRET_KEY", "dev-key-change-in-production")

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    # Register database teardown
    database.init_app(app)

    # Register all application blueprints
    register_blueprints(app)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description or e.name}), e.code

    # Security headers
    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
