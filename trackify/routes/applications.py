"""/applications routes: CRUD over the session user's applications."""

from __future__ import annotations

from flask import Blueprint, jsonify

from trackify.schemas import ApplicationCreate, ApplicationUpdate, parse_body
from trackify.services import application_service, user_service
from trackify.utils.auth import require_session
from trackify.utils.ids import require_object_id

bp = Blueprint("applications", __name__, url_prefix="/applications")


def _not_found():
    return jsonify(error="not_found", message="Application not found."), 404


@bp.get("")
def list_applications():
    """Return the caller's applications, newest application date first."""
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    apps = application_service.list_applications(claims["sub"])
    return jsonify([app.to_dict() for app in apps]), 200


@bp.post("")
def create_application():
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    if user_service.get_user_by_id(claims["sub"]) is None:
        return jsonify(error="invalid_session", message="Account no longer exists."), 401

    body = parse_body(ApplicationCreate)
    app = application_service.create_application(
        claims["sub"],
        body.company_name,
        body.location,
        position_title=body.position_title,
        application_date=body.application_date,
        application_status=body.application_status,
        company_website=body.company_website,
        notes=body.notes,
    )
    return jsonify(app.to_dict()), 201


@bp.get("/<application_id>")
def get_application(application_id: str):
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    app = application_service.get_application(claims["sub"], require_object_id(application_id))
    if app is None:
        return _not_found()
    return jsonify(app.to_dict()), 200


@bp.put("/<application_id>")
def update_application(application_id: str):
    """Replace the fields present in the body; omitted fields are kept."""
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    require_object_id(application_id)
    body = parse_body(ApplicationUpdate)
    app = application_service.update_application(claims["sub"], application_id, body.changes())
    if app is None:
        return _not_found()
    return jsonify(app.to_dict()), 200


@bp.delete("/<application_id>")
def delete_application(application_id: str):
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    if not application_service.delete_application(claims["sub"], require_object_id(application_id)):
        return _not_found()
    return "", 204
