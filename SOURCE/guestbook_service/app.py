"""
Flask application factory for the guestbook backend.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from .auth import is_token_revoked
from .config import get_settings
from .database import SessionLocal, init_db
from .routes import api_bp


def _auth_error(code: str, message: str):
    return jsonify({"error": code, "message": message}), 401


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    settings = get_settings()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["JWT_SECRET_KEY"] = settings.jwt_secret_key
    if config_overrides:
        app.config.update(config_overrides)

    CORS(app)
    jwt = JWTManager(app)

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):  # type: ignore[override]
        return _auth_error("token-expired", "JWT expired")

    @jwt.invalid_token_loader
    def invalid_token_callback(reason: str):  # type: ignore[override]
        return _auth_error("invalid-token", reason)

    @jwt.unauthorized_loader
    def missing_token_callback(reason: str):  # type: ignore[override]
        return _auth_error("not-authenticated", reason)

    @jwt.token_in_blocklist_loader
    def token_revoked_check(jwt_header, jwt_payload) -> bool:  # type: ignore[override]
        return is_token_revoked(jwt_payload)

    @jwt.revoked_token_loader
    def revoked_token_callback(jwt_header, jwt_payload):  # type: ignore[override]
        return _auth_error("token-revoked", "Session has been signed out")

    init_db()

    app.register_blueprint(api_bp, url_prefix=settings.api_prefix)

    @app.teardown_appcontext
    def remove_session(exc: Optional[BaseException] = None) -> None:
        SessionLocal.remove()

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


__all__ = ["create_app"]
