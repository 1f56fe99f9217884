"""/users routes for account management."""

from __future__ import annotations

from flask import Blueprint, jsonify

from trackify.errors import ConflictError, ForbiddenError
from trackify.schemas import UserCreate, UserUpdate, parse_body
from trackify.services import application_service, user_service
from trackify.services.user_service import DUPLICATE_EMAIL_MESSAGE
from trackify.utils.auth import get_settings, require_session
from trackify.utils.ids import require_object_id

bp = Blueprint("users", __name__, url_prefix="/users")


def _not_found():
    return jsonify(error="not_found", message="User not found."), 404


def _require_self(claims, user_id: str) -> None:
    if claims["sub"] != user_id:
        raise ForbiddenError("You can only modify your own account.")


@bp.get("")
def list_users():
    _, error_response = require_session()
    if error_response is not None:
        return error_response

    return jsonify([user.to_dict() for user in user_service.list_users()]), 200


@bp.post("")
def create_user():
    """Create an account without issuing a session."""
    body = parse_body(UserCreate)
    user = user_service.create_user(
        body.firstname,
        body.lastname,
        body.email,
        body.password,
        rounds=get_settings().bcrypt_rounds,
        is_active=body.is_active,
    )
    return jsonify(user.to_dict()), 201


@bp.get("/<user_id>")
def get_user(user_id: str):
    _, error_response = require_session()
    if error_response is not None:
        return error_response

    user = user_service.get_user_by_id(require_object_id(user_id, "user id"))
    if user is None:
        return _not_found()
    return jsonify(user.to_dict()), 200


@bp.put("/<user_id>")
def update_user(user_id: str):
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    require_object_id(user_id, "user id")
    _require_self(claims, user_id)
    body = parse_body(UserUpdate)
    changes = body.model_dump(exclude_unset=True, by_alias=True)
    if "email" in changes and user_service.email_taken_by_other(changes["email"], user_id):
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    user = user_service.update_user(
        user_id,
        changes,
        rounds=get_settings().bcrypt_rounds,
        updated_by=claims["sub"],
    )
    if user is None:
        return _not_found()
    return jsonify(user.to_dict()), 200


@bp.delete("/<user_id>")
def delete_user(user_id: str):
    """Delete the caller's own account together with its applications."""
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    require_object_id(user_id, "user id")
    _require_self(claims, user_id)
    if user_service.get_user_by_id(user_id) is None:
        return _not_found()
    # Applications go first so none is ever left without its owner.
    application_service.delete_applications_for_user(user_id)
    if not user_service.delete_user(user_id):
        return _not_found()
    return "", 204
