"""Request schemas validated at the HTTP boundary."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, ClassVar, Dict, List, Literal, Optional, Type, TypeVar

from flask import request
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel

from trackify.errors import ValidationError
from trackify.models import ApplicationStatus

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72

SchemaT = TypeVar("SchemaT", bound="RequestSchema")


def _required_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must be a non-empty string")
    return value.strip()


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("must be a string")
    return value.strip() or None


def _normalize_email(value: Any) -> str:
    email = _required_text(value).lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValueError("must be a valid email address")
    return email


def _optional_email(value: Any) -> Optional[str]:
    return None if value is None else _normalize_email(value)


def _password(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError("must be a non-empty string")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


def _parse_datetime(value: Any) -> datetime:
    """Accept ISO dates or datetimes and store them as naive UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError("must be an ISO 8601 date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _format_errors(exc: SchemaValidationError) -> List[Dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]) or "body",
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


class RequestSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error_message: ClassVar[str] = "Invalid request."


class SignupRequest(RequestSchema):
    error_message: ClassVar[str] = "All required fields must be provided."

    firstname: str
    lastname: str
    email: str
    password: str

    _names = field_validator("firstname", "lastname", mode="before")(_required_text)
    _email = field_validator("email", mode="before")(_normalize_email)
    _check_password = field_validator("password", mode="before")(_password)


class LoginRequest(RequestSchema):
    error_message: ClassVar[str] = "Email and password are required."

    email: str
    password: str

    _email = field_validator("email", mode="before")(_normalize_email)

    @field_validator("password", mode="before")
    @classmethod
    def _password_present(cls, value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise ValueError("must be a non-empty string")
        return value


class ForgotPasswordRequest(RequestSchema):
    error_message: ClassVar[str] = "A valid email is required."

    email: str

    _email = field_validator("email", mode="before")(_normalize_email)


class VerifyCodeRequest(RequestSchema):
    error_message: ClassVar[str] = "Code (number) and token (string) are required."

    code: int
    token: str
    email: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def _numeric_code(cls, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError("must be a number")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        raise ValueError("must be a number")

    @field_validator("token", mode="before")
    @classmethod
    def _token_string(cls, value: Any) -> str:
        return _required_text(value)

    _email = field_validator("email", mode="before")(_optional_email)


class ResetPasswordRequest(RequestSchema):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    error_message: ClassVar[str] = "Email, token and new password are required."

    email: str
    token: str
    new_password: str = Field(alias="newPassword")

    _email = field_validator("email", mode="before")(_normalize_email)
    _token = field_validator("token", mode="before")(_required_text)
    _new_password = field_validator("new_password", mode="before")(_password)


class ApplicationCreate(RequestSchema):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)
    error_message: ClassVar[str] = "Invalid application."

    company_name: str
    location: str
    position_title: Optional[str] = None
    application_date: Optional[datetime] = None
    application_status: ApplicationStatus = ApplicationStatus.APPLIED
    company_website: Optional[str] = None
    notes: Optional[str] = None

    _required = field_validator("company_name", "location", mode="before")(_required_text)
    _optional = field_validator("position_title", "company_website", "notes", mode="before")(_optional_text)

    @field_validator("application_date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> Optional[datetime]:
        return None if value is None else _parse_datetime(value)


class ApplicationUpdate(RequestSchema):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)
    error_message: ClassVar[str] = "Invalid application update."

    company_name: Optional[str] = None
    location: Optional[str] = None
    position_title: Optional[str] = None
    application_date: Optional[datetime] = None
    application_status: Optional[ApplicationStatus] = None
    company_website: Optional[str] = None
    notes: Optional[str] = None

    _optional = field_validator("position_title", "company_website", "notes", mode="before")(_optional_text)

    @field_validator("company_name", "location", "application_date", "application_status", mode="before")
    @classmethod
    def _not_null(cls, value: Any, info) -> Any:
        if value is None:
            raise ValueError("cannot be cleared")
        if info.field_name in ("company_name", "location"):
            return _required_text(value)
        if info.field_name == "application_date":
            return _parse_datetime(value)
        return value

    def changes(self) -> Dict[str, Any]:
        """Return only the fields the client sent, keyed by their stored names."""
        changes = self.model_dump(exclude_unset=True, by_alias=True)
        if "applicationStatus" in changes:
            changes["applicationStatus"] = ApplicationStatus(changes["applicationStatus"]).value
        return changes


class UserCreate(RequestSchema):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    error_message: ClassVar[str] = "All required fields must be provided."

    firstname: str
    lastname: str
    email: str
    password: str
    is_active: bool = Field(default=True, alias="isActive")

    _names = field_validator("firstname", "lastname", mode="before")(_required_text)
    _email = field_validator("email", mode="before")(_normalize_email)
    _check_password = field_validator("password", mode="before")(_password)


class UserUpdate(RequestSchema):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    error_message: ClassVar[str] = "Invalid user update."

    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    @field_validator("firstname", "lastname", "email", "password", "is_active", mode="before")
    @classmethod
    def _not_null(cls, value: Any, info) -> Any:
        if value is None:
            raise ValueError("cannot be cleared")
        if info.field_name == "email":
            return _normalize_email(value)
        if info.field_name == "password":
            return _password(value)
        if info.field_name in ("firstname", "lastname"):
            return _required_text(value)
        return value


class DashboardQuery(RequestSchema):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)
    error_message: ClassVar[str] = "Invalid dashboard query."

    status: str = "all"
    search: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort: Literal["name", "date"] = "date"
    order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str) -> str:
        if value != "all":
            ApplicationStatus(value)
        return value

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def validate_payload(schema: Type[SchemaT], payload: Any) -> SchemaT:
    """Validate ``payload`` against ``schema``, raising the API's ValidationError."""
    if not isinstance(payload, dict):
        raise ValidationError(schema.error_message, details=[{"field": "body", "message": "must be a JSON object"}])
    try:
        return schema.model_validate(payload)
    except SchemaValidationError as exc:
        raise ValidationError(schema.error_message, details=_format_errors(exc)) from exc


def parse_body(schema: Type[SchemaT]) -> SchemaT:
    return validate_payload(schema, request.get_json(silent=True) or {})


def parse_query(schema: Type[SchemaT]) -> SchemaT:
    return validate_payload(schema, request.args.to_dict())
