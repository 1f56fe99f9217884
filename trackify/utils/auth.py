"""Authentication helpers for credentials, codes and session tokens."""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bcrypt
import jwt
from bson import ObjectId
from flask import current_app, jsonify, request

from trackify.config import Settings

SETTINGS_KEY = "TRACKIFY_SETTINGS"
SESSION_COOKIE = "token"

# Six digit numeric codes, upper bound exclusive.
CODE_MIN = 100000
CODE_MAX = 1000000
TOKEN_BYTES = 23


def now_seconds() -> int:
    """Return the current UNIX timestamp in seconds."""
    return int(time.time())


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, matching what pymongo hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_code() -> int:
    """Return a uniformly random six digit verification code."""
    return CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN)


def generate_token() -> str:
    """Return an opaque 46 character hex token."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_password(password: str, rounds: int = 10) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def create_session_token(settings: Settings, user_id: str, email: str) -> Tuple[str, int]:
    """Sign a session token for ``user_id`` and return it with its expiry timestamp."""
    issued_at = now_seconds()
    expires_at = issued_at + settings.session_ttl_seconds
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": issued_at,
        "exp": expires_at,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires_at


def decode_session_token(settings: Settings, token: str) -> Dict[str, Any]:
    """Verify signature and expiry, raising ``jwt.PyJWTError`` on failure."""
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )
    return payload


def get_settings() -> Settings:
    return current_app.config[SETTINGS_KEY]


def extract_session_token() -> Optional[str]:
    """Find the session token: bearer header, then ``token`` query arg, then cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token

    query_token = request.args.get("token")
    if query_token:
        return query_token

    return request.cookies.get(SESSION_COOKIE) or None


def require_session() -> Tuple[Optional[Dict[str, Any]], Optional[Any]]:
    """Validate the request's session token and return its verified claims."""
    token = extract_session_token()
    if not token:
        return None, (jsonify(error="not_authenticated", message="Not authenticated."), 401)

    try:
        claims = decode_session_token(get_settings(), token)
    except jwt.ExpiredSignatureError:
        return None, (jsonify(error="invalid_session", message="Session expired."), 401)
    except jwt.PyJWTError:
        return None, (jsonify(error="invalid_session", message="Invalid or expired token."), 401)

    if not ObjectId.is_valid(str(claims.get("sub", ""))):
        return None, (jsonify(error="invalid_session", message="Invalid or expired token."), 401)

    return claims, None


def set_session_cookie(response, token: str, settings: Settings):
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="Lax",
        path="/",
    )
    return response


def clear_session_cookie(response, settings: Settings):
    response.delete_cookie(
        SESSION_COOKIE,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="Lax",
    )
    return response


def expiry_from_now(minutes: int) -> datetime:
    return utcnow() + timedelta(minutes=minutes)
