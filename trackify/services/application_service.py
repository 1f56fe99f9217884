"""Service for managing a user's internship applications in MongoDB."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from trackify import database
from trackify.models import ApplicationStatus, AuditFields, InternshipApplication
from trackify.utils.auth import utcnow


def _collection():
    return database.get_collection(database.APPLICATIONS)


def _owned(user_id: str, application_id: str) -> Dict[str, Any]:
    return {"_id": ObjectId(application_id), "user": ObjectId(user_id)}


def list_applications(user_id: str) -> List[InternshipApplication]:
    """Return the user's applications, most recent application date first."""
    cursor = _collection().find({"user": ObjectId(user_id)}).sort("applicationDate", DESCENDING)
    return [InternshipApplication.from_document(doc) for doc in cursor]


def get_application(user_id: str, application_id: str) -> Optional[InternshipApplication]:
    document = _collection().find_one(_owned(user_id, application_id))
    return InternshipApplication.from_document(document) if document else None


def create_application(
    user_id: str,
    company_name: str,
    location: str,
    *,
    position_title: Optional[str] = None,
    application_date=None,
    application_status: ApplicationStatus = ApplicationStatus.APPLIED,
    company_website: Optional[str] = None,
    notes: Optional[str] = None,
) -> InternshipApplication:
    """
    Insert an application owned by ``user_id``.

    Args:
        user_id: Id of the owning user
        company_name: Company applied to
        location: Where the role is based
        position_title: Optional role title
        application_date: When the application was sent; defaults to now
        application_status: Current status, ``Applied`` by default
        company_website: Optional company URL
        notes: Free-form notes

    Returns:
        The stored application
    """
    audit = AuditFields(created_by=user_id, updated_by=user_id)
    document: Dict[str, Any] = {
        "user": ObjectId(user_id),
        "companyName": company_name,
        "positionTitle": position_title,
        "location": location,
        "applicationDate": application_date or utcnow(),
        "applicationStatus": ApplicationStatus(application_status).value,
        "companyWebsite": company_website,
        "notes": notes,
        **audit.to_document(),
    }
    result = _collection().insert_one(document)
    document["_id"] = result.inserted_id
    return InternshipApplication.from_document(document)


def update_application(
    user_id: str,
    application_id: str,
    changes: Dict[str, Any],
) -> Optional[InternshipApplication]:
    """
    Replace the given fields of one of the user's applications.

    ``changes`` uses stored field names (``companyName``, ``applicationStatus``...);
    ownership cannot be changed through it.

    Returns:
        The updated application, or None if the user has no such application
    """
    update = {key: value for key, value in changes.items() if key not in ("_id", "user")}
    update["updated_at"] = utcnow()
    update["updated_by"] = user_id

    document = _collection().find_one_and_update(
        _owned(user_id, application_id),
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    return InternshipApplication.from_document(document) if document else None


def delete_application(user_id: str, application_id: str) -> bool:
    result = _collection().delete_one(_owned(user_id, application_id))
    return result.deleted_count > 0


def delete_applications_for_user(user_id: str) -> int:
    result = _collection().delete_many({"user": ObjectId(user_id)})
    return result.deleted_count
