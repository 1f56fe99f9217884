"""/dashboard routes serving derived views of the caller's applications."""

from __future__ import annotations

from flask import Blueprint, jsonify

from trackify.schemas import DashboardQuery, parse_query
from trackify.services import application_service, dashboard_service
from trackify.utils.auth import require_session, utcnow

bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


@bp.get("")
def dashboard_view():
    """Filter, sort and page the caller's applications, annotated with suggestions."""
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    query = parse_query(DashboardQuery)
    apps = application_service.list_applications(claims["sub"])
    view = dashboard_service.compute_visible(
        apps,
        status=query.status,
        search=query.search,
        date_from=query.date_from,
        date_to=query.date_to,
        sort_field=query.sort,
        ascending=query.order == "asc",
        page=query.page,
    )

    now = utcnow()
    items = []
    for app in view.paged:
        item = app.to_dict()
        item["suggestion"] = dashboard_service.get_suggestion(app, now)
        items.append(item)

    return (
        jsonify(
            applications=items,
            page=view.page,
            totalPages=view.total_pages,
            totalCount=len(view.visible),
            pageSize=dashboard_service.PAGE_SIZE,
        ),
        200,
    )


@bp.get("/analytics")
def analytics():
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    apps = application_service.list_applications(claims["sub"])
    return jsonify(total=len(apps), **dashboard_service.summarize(apps)), 200
