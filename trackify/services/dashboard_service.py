"""Search, filtering, paging and analytics over a user's applications.

Everything here is pure: callers pass the full list of applications and get
a derived view back, recomputed from scratch on every change.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, TypeVar

from trackify.models import ApplicationStatus, InternshipApplication
from trackify.utils.auth import utcnow

PAGE_SIZE = 9
NO_RESPONSE_FOLLOW_UP_DAYS = 10
APPLIED_REAPPLY_DAYS = 90

T = TypeVar("T")


@dataclass
class Page:
    page: int
    total_pages: int
    items: list


@dataclass
class VisibleApplications:
    visible: List[InternshipApplication]
    paged: List[InternshipApplication]
    page: int
    total_pages: int


def _matches_search(app: InternshipApplication, query: str) -> bool:
    if not query:
        return True
    needle = query.lower()
    return (
        needle in app.company_name.lower()
        or needle in (app.position_title or "").lower()
        or needle in app.location.lower()
    )


def _in_date_range(app: InternshipApplication, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from and app.application_date < datetime.combine(date_from, datetime.min.time()):
        return False
    # The upper bound covers the whole of ``date_to``.
    if date_to and app.application_date >= datetime.combine(date_to + timedelta(days=1), datetime.min.time()):
        return False
    return True


def filter_applications(
    apps: Sequence[InternshipApplication],
    status: str = "all",
    search: str = "",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[InternshipApplication]:
    """Keep applications matching the status, search text and inclusive date range."""
    return [
        app
        for app in apps
        if (status == "all" or app.application_status.value == status)
        and _matches_search(app, search.strip())
        and _in_date_range(app, date_from, date_to)
    ]


def sort_applications(
    apps: Sequence[InternshipApplication],
    field: str = "date",
    ascending: bool = True,
) -> List[InternshipApplication]:
    if field == "name":
        return sorted(apps, key=lambda app: app.company_name.casefold(), reverse=not ascending)
    return sorted(apps, key=lambda app: app.application_date, reverse=not ascending)


def paginate(items: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> Page:
    """Slice out ``page`` (1-based), clamping it into the valid range."""
    total_pages = max(1, -(-len(items) // page_size))
    safe_page = min(max(1, page), total_pages)
    start = (safe_page - 1) * page_size
    return Page(page=safe_page, total_pages=total_pages, items=list(items[start:start + page_size]))


def compute_visible(
    apps: Sequence[InternshipApplication],
    *,
    status: str = "all",
    search: str = "",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    sort_field: str = "date",
    ascending: bool = True,
    page: int = 1,
    page_size: int = PAGE_SIZE,
) -> VisibleApplications:
    filtered = filter_applications(apps, status, search, date_from, date_to)
    ordered = sort_applications(filtered, sort_field, ascending)
    window = paginate(ordered, page, page_size)
    return VisibleApplications(visible=ordered, paged=window.items, page=window.page, total_pages=window.total_pages)


def days_since(app: InternshipApplication, now: Optional[datetime] = None) -> int:
    return ((now or utcnow()) - app.application_date).days


def get_suggestion(app: InternshipApplication, now: Optional[datetime] = None) -> Optional[str]:
    """Return a follow-up hint for the application, or None when nothing is due."""
    elapsed = days_since(app, now)
    status = app.application_status

    if status == ApplicationStatus.NO_RESPONSE and elapsed >= NO_RESPONSE_FOLLOW_UP_DAYS:
        return f"You applied {elapsed} days ago with no response. Consider sending a follow-up email."
    if status == ApplicationStatus.INTERVIEWING:
        return "You mentioned waiting for a reply. Consider checking in with the recruiter."
    if status == ApplicationStatus.TO_BE_APPLIED:
        return "You marked this for future application. Make sure to apply soon!"
    if status == ApplicationStatus.REJECTED:
        return "Improve your resume for your next interview."
    if status == ApplicationStatus.APPLIED and elapsed >= APPLIED_REAPPLY_DAYS:
        return f"You applied {elapsed} days ago with no response. Consider applying again."
    return None


def _counts(label: str, counter: Counter, keys: Optional[List[str]] = None) -> List[Dict[str, object]]:
    return [{label: key, "count": counter[key]} for key in (keys if keys is not None else counter)]


def summarize(apps: Sequence[InternshipApplication]) -> Dict[str, List[Dict[str, object]]]:
    """Aggregate counts for the analytics charts."""
    by_status = Counter(app.application_status.value for app in apps)
    by_day = Counter(app.application_date.date().isoformat() for app in apps)
    by_location = Counter(app.location for app in apps)
    by_role = Counter(app.position_title or "Unknown" for app in apps)

    months: Dict[str, str] = {}
    by_month: Counter = Counter()
    for app in apps:
        label = app.application_date.strftime("%b %Y")
        months.setdefault(app.application_date.strftime("%Y-%m"), label)
        by_month[label] += 1

    return {
        "status": _counts("status", by_status),
        "day": _counts("date", by_day, sorted(by_day)),
        "month": _counts("month", by_month, [months[key] for key in sorted(months)]),
        "location": _counts("location", by_location),
        "role": _counts("role", by_role),
    }
