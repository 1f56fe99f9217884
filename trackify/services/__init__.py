"""Service layer modules for the Trackify API."""

from . import application_service, auth_service, dashboard_service, email_service, user_service, verification_service

__all__ = [
    "application_service",
    "auth_service",
    "dashboard_service",
    "email_service",
    "user_service",
    "verification_service",
]
