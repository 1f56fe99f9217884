"""Validation of identifiers taken from request paths."""

from __future__ import annotations

from bson import ObjectId

from trackify.errors import ValidationError


def require_object_id(value: str, label: str = "id") -> str:
    """Return ``value`` unchanged if it is a well-formed ObjectId, else raise ValidationError."""
    if not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label}.", error="invalid_id")
    return value
