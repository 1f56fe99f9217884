"""/auth routes for signup, login and the password reset flow."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from trackify.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyCodeRequest,
    parse_body,
)
from trackify.services.auth_service import AuthService
from trackify.utils.auth import clear_session_cookie, get_settings, require_session, set_session_cookie

AUTH_SERVICE_KEY = "trackify.auth_service"

bp = Blueprint("auth", __name__, url_prefix="/auth")


def get_auth_service() -> AuthService:
    return current_app.extensions[AUTH_SERVICE_KEY]


@bp.post("/signup")
def signup():
    """Create an account and return a session token for it."""
    body = parse_body(SignupRequest)
    grant = get_auth_service().signup(body.firstname, body.lastname, body.email, body.password)
    settings = get_settings()
    return (
        jsonify(
            message="User registered successfully.",
            expiresIn=settings.session_ttl_seconds,
            **grant.to_dict(),
        ),
        201,
    )


@bp.post("/login")
def login():
    """Check credentials, return a session token and set it as a cookie."""
    body = parse_body(LoginRequest)
    grant = get_auth_service().login(body.email, body.password)
    settings = get_settings()
    response = jsonify(expiresIn=settings.session_ttl_seconds, **grant.to_dict())
    set_session_cookie(response, grant.token, settings)
    return response, 200


@bp.post("/logout")
def logout():
    """Drop the session cookie. Tokens stay valid until they expire."""
    response = jsonify(message="Logged out.")
    clear_session_cookie(response, get_settings())
    return response, 200


@bp.get("/session")
def get_session_info():
    """Return information about the current session token if it is valid."""
    claims, error_response = require_session()
    if error_response is not None:
        return error_response

    return (
        jsonify(
            userId=claims["sub"],
            email=claims.get("email"),
            expiresAt=claims["exp"] * 1000,
        ),
        200,
    )


@bp.post("/forgot-password")
def forgot_password():
    """Email a verification code and hand the paired token back to the client."""
    body = parse_body(ForgotPasswordRequest)
    ticket = get_auth_service().request_password_reset(body.email)
    return (
        jsonify(
            message="Verification code has been sent via email",
            token=ticket.token,
            expiring_date=ticket.expiring_date.isoformat() + "Z",
        ),
        200,
    )


@bp.post("/verify")
def verify_code():
    """Consume a verification code/token pair."""
    body = parse_body(VerifyCodeRequest)
    success = get_auth_service().verify_code(body.code, body.token, body.email)
    return jsonify(success=success), 200


@bp.post("/reset-password")
def reset_password():
    """Set a new password using a verified token."""
    body = parse_body(ResetPasswordRequest)
    user = get_auth_service().reset_password(body.email, body.token, body.new_password)
    return jsonify(message="Password has been reset successfully.", email=user.email), 200
