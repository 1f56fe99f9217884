"""Service for managing user accounts in MongoDB."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from trackify import database
from trackify.errors import ConflictError
from trackify.models import AuditFields, User
from trackify.utils.auth import hash_password, utcnow

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists."


def _collection():
    return database.get_collection(database.USERS)


def create_user(
    firstname: str,
    lastname: str,
    email: str,
    password: str,
    *,
    rounds: int = 10,
    is_active: bool = True,
    created_by: Optional[str] = None,
) -> User:
    """
    Insert a new user with a bcrypt-hashed password.

    Args:
        firstname: Given name
        lastname: Family name
        email: Normalized email address, unique across users
        password: Plaintext password; only its hash is stored
        rounds: bcrypt cost factor
        is_active: Whether the account may log in
        created_by: Audit actor for the insert

    Returns:
        The stored user

    Raises:
        ConflictError: if the email is already registered
    """
    collection = _collection()
    if collection.find_one({"email": email}, {"_id": 1}) is not None:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    audit = AuditFields(created_by=created_by, updated_by=created_by)
    document: Dict[str, Any] = {
        "firstname": firstname,
        "lastname": lastname,
        "email": email,
        "password": hash_password(password, rounds),
        "isActive": is_active,
        **audit.to_document(),
    }
    try:
        result = collection.insert_one(document)
    except DuplicateKeyError as exc:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from exc

    document["_id"] = result.inserted_id
    return User.from_document(document)


def get_user_by_email(email: str) -> Optional[User]:
    document = _collection().find_one({"email": email})
    return User.from_document(document) if document else None


def get_user_by_id(user_id: str) -> Optional[User]:
    document = _collection().find_one({"_id": ObjectId(user_id)})
    return User.from_document(document) if document else None


def list_users() -> List[User]:
    return [User.from_document(doc) for doc in _collection().find().sort("created_at", 1)]


def update_user(
    user_id: str,
    changes: Dict[str, Any],
    *,
    rounds: int = 10,
    updated_by: Optional[str] = None,
) -> Optional[User]:
    """
    Apply a partial update to a user.

    ``changes`` uses stored field names (``firstname``, ``email``, ``isActive``...).
    A ``password`` entry is rehashed before it is written.

    Returns:
        The updated user, or None if no user has this id
    """
    update = dict(changes)
    if "password" in update:
        update["password"] = hash_password(update["password"], rounds)
    update["updated_at"] = utcnow()
    update["updated_by"] = updated_by

    try:
        document = _collection().find_one_and_update(
            {"_id": ObjectId(user_id)},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError as exc:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from exc
    return User.from_document(document) if document else None


def set_password(user_id: str, password: str, *, rounds: int = 10) -> bool:
    """Replace a user's password hash. Returns True if a user was updated."""
    result = _collection().update_one(
        {"_id": ObjectId(user_id)},
        {
            "$set": {
                "password": hash_password(password, rounds),
                "updated_at": utcnow(),
                "updated_by": user_id,
            }
        },
    )
    return result.matched_count > 0


def delete_user(user_id: str) -> bool:
    result = _collection().delete_one({"_id": ObjectId(user_id)})
    return result.deleted_count > 0


def email_taken_by_other(email: str, user_id: str) -> bool:
    return _collection().find_one({"email": email, "_id": {"$ne": ObjectId(user_id)}}, {"_id": 1}) is not None
