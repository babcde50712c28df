"""Required-field checks for provider, course and instructor payloads.

A field counts as present when it is truthy. Nested objects that are
missing altogether make the payload invalid instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

POSITION_FIELDS = ("pos.latitude", "pos.longitude")

PROVIDER_REQUIRED_FIELDS = (
    *POSITION_FIELDS,
    "name",
    "contact.phone",
    "contact.email",
    "contact.website",
    "sponsor",
    "license_expiry",
    "insurance_expiry",
    "license_agreement",
)

COURSE_REQUIRED_FIELDS = (
    "providerid",
    *POSITION_FIELDS,
    "name",
    "date",
    "level",
    "desc",
    "tags",
)

INSTRUCTOR_REQUIRED_FIELDS = ("name", "email", "caalevel")

# Older clients send the misspelled key.
MEMBERSHIP_FIELDS = ("memberships", "memerships")


def is_valid_provider(payload: Any) -> bool:
    return _has_fields(payload, PROVIDER_REQUIRED_FIELDS) and _has_numeric_position(payload)


def is_valid_course(payload: Any) -> bool:
    return _has_fields(payload, COURSE_REQUIRED_FIELDS) and _has_numeric_position(payload)


def is_valid_instructor(payload: Any) -> bool:
    if not _has_fields(payload, INSTRUCTOR_REQUIRED_FIELDS):
        return False
    return any(bool(payload.get(field)) for field in MEMBERSHIP_FIELDS)


def field_value(payload: Any, dotted: str) -> Any:
    current = payload
    for part in dotted.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _has_fields(payload: Any, fields: tuple[str, ...]) -> bool:
    if not isinstance(payload, Mapping):
        return False
    return all(bool(field_value(payload, field)) for field in fields)


def _has_numeric_position(payload: Mapping[str, Any]) -> bool:
    for field in POSITION_FIELDS:
        value = field_value(payload, field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return True
