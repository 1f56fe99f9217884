"""Typed records for the documents stored in MongoDB."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from trackify.utils.auth import utcnow


class ApplicationStatus(str, enum.Enum):
    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    OFFER = "Offer"
    REJECTED = "Rejected"
    NO_RESPONSE = "No Response"
    TO_BE_APPLIED = "To Be Applied"


FORGOT_PASSWORD_ACTION = "forgot_password"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class AuditFields:
    """Creation/update metadata embedded in every stored document."""

    created_at: datetime = field(default_factory=utcnow)
    created_by: Optional[str] = None
    updated_at: datetime = field(default_factory=utcnow)
    updated_by: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "AuditFields":
        return cls(
            created_at=document.get("created_at") or utcnow(),
            created_by=document.get("created_by"),
            updated_at=document.get("updated_at") or utcnow(),
            updated_by=document.get("updated_by"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "created_at": self.created_at,
            "created_by": self.created_by,
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created_at": _isoformat(self.created_at),
            "created_by": self.created_by,
            "updated_at": _isoformat(self.updated_at),
            "updated_by": self.updated_by,
        }


@dataclass
class User:
    id: str
    firstname: str
    lastname: str
    email: str
    password_hash: str
    is_active: bool = True
    audit: AuditFields = field(default_factory=AuditFields)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "User":
        return cls(
            id=str(document["_id"]),
            firstname=document.get("firstname", ""),
            lastname=document.get("lastname", ""),
            email=document["email"],
            password_hash=document.get("password", ""),
            is_active=document.get("isActive", True),
            audit=AuditFields.from_document(document),
        )

    def to_public(self) -> Dict[str, Any]:
        """Fields safe to hand to clients; the password hash is never included."""
        return {
            "id": self.id,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "email": self.email,
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = self.to_public()
        payload["isActive"] = self.is_active
        payload.update(self.audit.to_dict())
        return payload


@dataclass
class InternshipApplication:
    id: str
    user: str
    company_name: str
    location: str
    application_date: datetime
    application_status: ApplicationStatus = ApplicationStatus.APPLIED
    position_title: Optional[str] = None
    company_website: Optional[str] = None
    notes: Optional[str] = None
    audit: AuditFields = field(default_factory=AuditFields)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "InternshipApplication":
        return cls(
            id=str(document["_id"]),
            user=str(document["user"]),
            company_name=document["companyName"],
            location=document.get("location", ""),
            application_date=document.get("applicationDate") or utcnow(),
            application_status=ApplicationStatus(document.get("applicationStatus", ApplicationStatus.APPLIED.value)),
            position_title=document.get("positionTitle"),
            company_website=document.get("companyWebsite"),
            notes=document.get("notes"),
            audit=AuditFields.from_document(document),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "user": self.user,
            "companyName": self.company_name,
            "positionTitle": self.position_title,
            "location": self.location,
            "applicationDate": _isoformat(self.application_date),
            "applicationStatus": self.application_status.value,
            "companyWebsite": self.company_website,
            "notes": self.notes,
        }
        payload.update(self.audit.to_dict())
        return payload


@dataclass
class VerificationCode:
    id: str
    code: int
    token: str
    action: str
    duration: int
    expiring_date: datetime
    is_expired: bool = False
    is_used: bool = False
    email: Optional[str] = None
    user_id: Optional[str] = None
    reset_at: Optional[datetime] = None
    audit: AuditFields = field(default_factory=AuditFields)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "VerificationCode":
        return cls(
            id=str(document["_id"]),
            code=int(document["code"]),
            token=document["token"],
            action=document["action"],
            duration=int(document.get("duration", 0)),
            expiring_date=document["expiring_date"],
            is_expired=bool(document.get("is_expired", False)),
            is_used=bool(document.get("is_used", False)),
            email=document.get("email"),
            user_id=document.get("user_id"),
            reset_at=document.get("reset_at"),
            audit=AuditFields.from_document(document),
        )

    def has_lapsed(self, now: Optional[datetime] = None) -> bool:
        """True when the code is flagged expired or its expiry time has passed."""
        return self.is_expired or self.expiring_date <= (now or utcnow())


@dataclass
class EmailConfig:
    service_id: str
    public_key: str
    private_key: str
    is_active: bool = True

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "EmailConfig":
        return cls(
            service_id=document.get("service_id", ""),
            public_key=document.get("public_key", ""),
            private_key=document.get("private_key", ""),
            is_active=document.get("is_active", True),
        )


@dataclass
class EmailTemplate:
    action: str
    template_id: str

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "EmailTemplate":
        return cls(action=document["action"], template_id=document["template_id"])
