"""
API route definitions for the auth and guestbook endpoints.

The guestbook collection is exposed through a small query surface:
``select``/``order`` query arguments and ``column=eq.value`` filters. Writes
are scoped to the caller's own rows, the way a row-level access policy
would scope them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required
from pydantic import ValidationError
from sqlalchemy import select

from .auth import create_jwt, hash_password, revoke_token, verify_password
from .database import session_scope
from .models import GuestbookEntry, User
from .schemas import (
    EntryCreateRequest,
    EntryResponse,
    EntryUpdateRequest,
    SignInRequest,
    SignUpRequest,
    UserResponse,
    UserUpdateRequest,
)


logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

ENTRY_COLUMNS = ("id", "author_id", "nickname", "message", "created_at")
FILTERABLE_COLUMNS = {"id": int, "author_id": str}
RESERVED_ARGS = {"select", "order"}


class QueryError(ValueError):
    """Raised for malformed ``select``, ``order`` or filter arguments."""


def parse_request(model_cls, payload: Optional[dict] = None):
    """Utility to build and validate Pydantic models from request JSON."""
    payload = payload or request.get_json(silent=True) or {}
    return model_cls.model_validate(payload)


def error_response(status: int, code: str, message: str, details: Any = None):
    body: Dict[str, Any] = {"error": code, "message": message}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def serialize_user(user: User) -> Dict[str, Any]:
    return UserResponse.model_validate(user).model_dump(mode="json")


def serialize_entry(entry: GuestbookEntry, columns=ENTRY_COLUMNS) -> Dict[str, Any]:
    data = EntryResponse.model_validate(entry).model_dump(mode="json")
    return {column: data[column] for column in columns}


def session_payload(user: User) -> Dict[str, Any]:
    return {"access_token": create_jwt(identity=user.user_id), "user": serialize_user(user)}


def current_user_id() -> str:
    identity = get_jwt_identity()
    if not identity:
        raise ValueError("Invalid user identity in token")
    return str(identity)


def parse_columns(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw or raw.strip() == "*":
        return ENTRY_COLUMNS
    columns = tuple(part.strip() for part in raw.split(",") if part.strip())
    unknown = [column for column in columns if column not in ENTRY_COLUMNS]
    if unknown or not columns:
        raise QueryError(f"Unknown column(s) in select: {', '.join(unknown) or raw}")
    return columns


def parse_order(raw: Optional[str]):
    """Translate ``column.asc|desc`` into ORDER BY clauses with an ``id`` tiebreak."""
    if not raw:
        return [GuestbookEntry.id.asc()]
    column_name, _, direction = raw.partition(".")
    direction = direction or "asc"
    if column_name not in ENTRY_COLUMNS or direction not in {"asc", "desc"}:
        raise QueryError(f"Invalid order argument: {raw}")
    column = getattr(GuestbookEntry, column_name)
    descending = direction == "desc"
    clauses = [column.desc() if descending else column.asc()]
    if column_name != "id":
        clauses.append(GuestbookEntry.id.desc() if descending else GuestbookEntry.id.asc())
    return clauses


def parse_filters(args) -> List[Any]:
    conditions = []
    for name, raw in args.items():
        if name in RESERVED_ARGS:
            continue
        if name not in FILTERABLE_COLUMNS:
            raise QueryError(f"Cannot filter on column: {name}")
        operator, _, value = raw.partition(".")
        if operator != "eq":
            raise QueryError(f"Unsupported filter operator: {operator}")
        try:
            typed_value = FILTERABLE_COLUMNS[name](value)
        except ValueError as exc:
            raise QueryError(f"Invalid value for {name}: {value}") from exc
        conditions.append(getattr(GuestbookEntry, name) == typed_value)
    return conditions


@api_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):  # type: ignore[override]
    details = err.errors(include_url=False, include_context=False, include_input=False)
    first = details[0] if details else {}
    loc = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    # Custom credential errors are already user-facing sentences.
    if first.get("type") not in {"email_address_invalid", "weak_password"} and loc:
        message = f"{loc}: {message}"
    return error_response(400, "invalid-request", message, details)


@api_bp.errorhandler(QueryError)
def handle_query_error(err: QueryError):  # type: ignore[override]
    return error_response(400, "invalid-query", str(err))


# --- auth -----------------------------------------------------------------


@api_bp.route("/auth/signup", methods=["POST"])
def sign_up():
    data = parse_request(SignUpRequest)
    with session_scope() as session:
        existing = session.execute(
            select(User).where(User.email == data.email)
        ).scalar_one_or_none()
        if existing:
            return error_response(422, "user_already_exists", "User already registered")

        user = User(
            email=data.email,
            password_hash=hash_password(data.password),
            user_metadata={},
        )
        user.touch_last_sign_in()
        session.add(user)
        session.flush()
        logger.info("Registered user %s", user.user_id)
        return jsonify(session_payload(user)), 201


@api_bp.route("/auth/token", methods=["POST"])
def sign_in():
    data = parse_request(SignInRequest)
    with session_scope() as session:
        user = session.execute(
            select(User).where(User.email == data.email)
        ).scalar_one_or_none()
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("Rejected sign-in attempt")
            return error_response(400, "invalid_credentials", "Invalid login credentials")

        user.touch_last_sign_in()
        session.add(user)
        session.flush()
        logger.info("User %s signed in", user.user_id)
        return jsonify(session_payload(user)), 200


@api_bp.route("/auth/logout", methods=["POST"])
@jwt_required()
def sign_out():
    revoke_token(get_jwt())
    return jsonify({"status": "signed-out"}), 200


@api_bp.route("/auth/user", methods=["GET"])
@jwt_required()
def get_user():
    user_id = current_user_id()
    with session_scope() as session:
        user = session.get(User, user_id)
        if user is None:
            return error_response(401, "user_not_found", "User from token no longer exists")
        return jsonify({"user": serialize_user(user)})


@api_bp.route("/auth/user", methods=["PUT"])
@jwt_required()
def update_user():
    user_id = current_user_id()
    data = parse_request(UserUpdateRequest)
    with session_scope() as session:
        user = session.get(User, user_id)
        if user is None:
            return error_response(401, "user_not_found", "User from token no longer exists")
        user.merge_metadata(data.data)
        session.add(user)
        session.flush()
        return jsonify({"user": serialize_user(user)})


# --- guestbook ------------------------------------------------------------


@api_bp.route("/guestbook", methods=["GET"])
def list_entries():
    columns = parse_columns(request.args.get("select"))
    order_by = parse_order(request.args.get("order"))
    conditions = parse_filters(request.args)
    with session_scope() as session:
        stmt = select(GuestbookEntry).where(*conditions).order_by(*order_by)
        entries = session.execute(stmt).scalars().all()
        return jsonify({"data": [serialize_entry(entry, columns) for entry in entries]})


@api_bp.route("/guestbook", methods=["POST"])
@jwt_required()
def create_entry():
    user_id = current_user_id()
    data = parse_request(EntryCreateRequest)
    if data.author_id is not None and data.author_id != user_id:
        return error_response(
            403,
            "forbidden",
            'new row violates row-level security policy for table "guestbook"',
        )
    with session_scope() as session:
        if session.get(User, user_id) is None:
            return error_response(401, "user_not_found", "User from token no longer exists")
        entry = GuestbookEntry(
            author_id=user_id,
            nickname=data.nickname,
            message=data.message,
        )
        session.add(entry)
        session.flush()
        session.refresh(entry)
        return jsonify({"data": [serialize_entry(entry)]}), 201


@api_bp.route("/guestbook", methods=["PATCH"])
@jwt_required()
def update_entries():
    user_id = current_user_id()
    conditions = parse_filters(request.args)
    if not conditions:
        raise QueryError("UPDATE requires a filter")
    data = parse_request(EntryUpdateRequest)
    with session_scope() as session:
        entries = session.execute(
            select(GuestbookEntry).where(
                GuestbookEntry.author_id == user_id, *conditions
            )
        ).scalars().all()
        for entry in entries:
            entry.nickname = data.nickname
        session.flush()
        logger.info("User %s updated %d entries", user_id, len(entries))
        return jsonify({"data": [serialize_entry(entry) for entry in entries]})


@api_bp.route("/guestbook", methods=["DELETE"])
@jwt_required()
def delete_entries():
    user_id = current_user_id()
    conditions = parse_filters(request.args)
    if not conditions:
        raise QueryError("DELETE requires a filter")
    with session_scope() as session:
        entries = session.execute(
            select(GuestbookEntry).where(
                GuestbookEntry.author_id == user_id, *conditions
            )
        ).scalars().all()
        deleted = [serialize_entry(entry) for entry in entries]
        for entry in entries:
            session.delete(entry)
        logger.info("User %s deleted %d entries", user_id, len(deleted))
        return jsonify({"data": deleted})


__all__ = ["api_bp"]
