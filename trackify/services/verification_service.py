"""Service for one-time verification codes stored in MongoDB."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from trackify import database
from trackify.models import AuditFields, VerificationCode
from trackify.utils.auth import expiry_from_now, utcnow


def _collection():
    return database.get_collection(database.VERIFICATION_CODES)


def save_verification_code(
    code: int,
    token: str,
    action: str,
    duration_minutes: int,
    *,
    email: Optional[str] = None,
    user_id: Optional[str] = None,
) -> VerificationCode:
    """
    Save a fresh verification code to MongoDB.

    Args:
        code: The 6-digit verification code
        token: Opaque token paired with the code
        action: Workflow the code authorizes, e.g. ``forgot_password``
        duration_minutes: Minutes until the code expires
        email: Email of the account that requested the code
        user_id: Id of the account that requested the code

    Returns:
        The stored code
    """
    document: Dict[str, Any] = {
        "code": code,
        "token": token,
        "action": action,
        "duration": duration_minutes,
        "expiring_date": expiry_from_now(duration_minutes),
        "is_expired": False,
        "is_used": False,
        "email": email,
        "user_id": user_id,
        "reset_at": None,
        **AuditFields(created_by=user_id, updated_by=user_id).to_document(),
    }
    result = _collection().insert_one(document)
    document["_id"] = result.inserted_id
    return VerificationCode.from_document(document)


def find_code(code: int, token: str, action: str) -> Optional[VerificationCode]:
    """Look up a code by its code, token and action, whatever its state."""
    document = _collection().find_one({"code": code, "token": token, "action": action})
    return VerificationCode.from_document(document) if document else None


def find_by_token(token: str, action: str) -> Optional[VerificationCode]:
    document = _collection().find_one({"token": token, "action": action})
    return VerificationCode.from_document(document) if document else None


def consume_code(record_id: str, now: Optional[datetime] = None) -> Optional[VerificationCode]:
    """
    Atomically mark a code used and expired.

    The update only matches while the code is unused, unexpired and inside its
    validity window, so at most one caller can ever consume a given code.

    Returns:
        The consumed code, or None if it was no longer consumable
    """
    now = now or utcnow()
    document = _collection().find_one_and_update(
        {
            "_id": ObjectId(record_id),
            "is_used": False,
            "is_expired": False,
            "expiring_date": {"$gt": now},
        },
        {"$set": {"is_used": True, "is_expired": True, "updated_at": now}},
        return_document=ReturnDocument.AFTER,
    )
    return VerificationCode.from_document(document) if document else None


def claim_for_reset(token: str, action: str, email: str) -> Optional[VerificationCode]:
    """
    Atomically record that a verified code has authorized its password reset.

    Only a code that was consumed by verification and has not yet been used
    for a reset matches.
    """
    now = utcnow()
    document = _collection().find_one_and_update(
        {
            "token": token,
            "action": action,
            "email": email,
            "is_used": True,
            "reset_at": None,
        },
        {"$set": {"reset_at": now, "updated_at": now}},
        return_document=ReturnDocument.AFTER,
    )
    return VerificationCode.from_document(document) if document else None


def release_reset_claim(token: str, action: str) -> None:
    """Undo ``claim_for_reset`` after the password write failed."""
    _collection().update_one(
        {"token": token, "action": action, "reset_at": {"$ne": None}},
        {"$set": {"reset_at": None, "updated_at": utcnow()}},
    )


def expire_stale_codes(now: Optional[datetime] = None) -> int:
    """Flag codes whose expiry time has passed. Returns the number flagged."""
    now = now or utcnow()
    result = _collection().update_many(
        {"is_expired": False, "expiring_date": {"$lte": now}},
        {"$set": {"is_expired": True, "updated_at": now}},
    )
    return result.modified_count


def delete_old_codes(days: int = 30) -> int:
    """Remove codes that expired more than ``days`` ago."""
    cutoff = utcnow() - timedelta(days=days)
    result = _collection().delete_many({"expiring_date": {"$lte": cutoff}})
    return result.deleted_count
