from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from geo_engine.geohash import DEFAULT_PRECISION, decode, encode

from ast_service.validation import MEMBERSHIP_FIELDS

PROVIDER_UPDATE_FIELDS = (
    "name",
    "geohash",
    "contact",
    "sponsor",
    "license_expiry",
    "license_agreement",
    "insurance_expiry",
)


def position_geohash(details: Mapping[str, Any], precision: int = DEFAULT_PRECISION) -> str:
    pos = details["pos"]
    return encode(pos["latitude"], pos["longitude"], precision=precision)


def build_provider_record(
    provider_id: str,
    details: Mapping[str, Any],
    precision: int = DEFAULT_PRECISION,
) -> dict[str, Any]:
    contact = details["contact"]
    return {
        "providerid": provider_id,
        "geohash": position_geohash(details, precision),
        "name": details["name"],
        "contact": {
            "phone": contact["phone"],
            "email": contact["email"],
            "website": contact["website"],
        },
        "sponsor": details["sponsor"],
        "license_expiry": details["license_expiry"],
        "insurance_expiry": details["insurance_expiry"],
        "license_agreement": details["license_agreement"],
        "instructors": {},
    }


def provider_update_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    """Fields a whole-provider update may overwrite; never ``instructors``."""
    return {field: record[field] for field in PROVIDER_UPDATE_FIELDS}


def build_course_record(
    course_id: str,
    details: Mapping[str, Any],
    precision: int = DEFAULT_PRECISION,
) -> dict[str, Any]:
    return {
        "courseid": course_id,
        "providerid": details["providerid"],
        "geohash": position_geohash(details, precision),
        "name": details["name"],
        "date": details["date"],
        "level": details["level"],
        "desc": details["desc"],
        "tags": details["tags"],
    }


def build_instructor_record(details: Mapping[str, Any]) -> dict[str, Any]:
    memberships = next((details[field] for field in MEMBERSHIP_FIELDS if details.get(field)), None)
    return {
        "name": details["name"],
        "email": details["email"],
        "caalevel": details["caalevel"],
        "memberships": memberships,
    }


def with_position(item: dict[str, Any]) -> dict[str, Any]:
    geohash = item.get("geohash")
    if geohash:
        point = decode(geohash)
        item["pos"] = {"latitude": point.lat, "longitude": point.lng}
    return item
