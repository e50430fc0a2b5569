"""
Authentication helpers for password hashing and JWT management.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict

from flask_jwt_extended import create_access_token
from sqlalchemy import select
from werkzeug.security import check_password_hash, generate_password_hash

from .config import get_settings
from .database import session_scope
from .models import RevokedToken


logger = logging.getLogger(__name__)
settings = get_settings()


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_jwt(identity: Any) -> str:
    expires = dt.timedelta(minutes=settings.access_token_expires_minutes)
    return create_access_token(identity=str(identity), expires_delta=expires)


def revoke_token(jwt_payload: Dict[str, Any]) -> None:
    """Record the token's ``jti`` so it is rejected from now on."""
    jti = jwt_payload["jti"]
    with session_scope() as session:
        if session.get(RevokedToken, jti) is None:
            session.add(RevokedToken(jti=jti))
    logger.info("Revoked token for user %s", jwt_payload.get("sub"))


def is_token_revoked(jwt_payload: Dict[str, Any]) -> bool:
    with session_scope() as session:
        found = session.execute(
            select(RevokedToken.jti).where(RevokedToken.jti == jwt_payload["jti"])
        ).scalar_one_or_none()
        return found is not None


__all__ = [
    "hash_password",
    "verify_password",
    "create_jwt",
    "revoke_token",
    "is_token_revoked",
]
