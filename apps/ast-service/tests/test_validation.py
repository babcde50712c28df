import copy

import pytest

from ast_service.validation import (
    COURSE_REQUIRED_FIELDS,
    PROVIDER_REQUIRED_FIELDS,
    is_valid_course,
    is_valid_instructor,
    is_valid_provider,
)


def _without(payload: dict, dotted: str) -> dict:
    result = copy.deepcopy(payload)
    parts = dotted.split(".")
    target = result
    for part in parts[:-1]:
        target = target[part]
    del target[parts[-1]]
    return result


def test_complete_payloads_are_valid(provider_details, course_details, instructor_details) -> None:
    assert is_valid_provider(provider_details)
    assert is_valid_course(course_details)
    assert is_valid_instructor(instructor_details)


@pytest.mark.parametrize("field", PROVIDER_REQUIRED_FIELDS)
def test_provider_missing_field_is_invalid(provider_details, field: str) -> None:
    assert not is_valid_provider(_without(provider_details, field))


@pytest.mark.parametrize("field", COURSE_REQUIRED_FIELDS)
def test_course_missing_field_is_invalid(course_details, field: str) -> None:
    assert not is_valid_course(_without(course_details, field))


def test_falsy_values_count_as_missing(provider_details) -> None:
    provider_details["license_agreement"] = False
    assert not is_valid_provider(provider_details)
    provider_details["license_agreement"] = True
    provider_details["name"] = ""
    assert not is_valid_provider(provider_details)


def test_zero_coordinate_is_rejected(course_details) -> None:
    course_details["pos"]["latitude"] = 0
    assert not is_valid_course(course_details)


def test_missing_nested_objects_do_not_raise(provider_details) -> None:
    del provider_details["contact"]
    assert not is_valid_provider(provider_details)
    assert not is_valid_provider({"pos": "51.5,-0.12"})
    assert not is_valid_provider(None)
    assert not is_valid_course(["not", "a", "mapping"])


def test_coordinates_are_not_coerced(provider_details) -> None:
    provider_details["pos"]["latitude"] = "51.5"
    assert not is_valid_provider(provider_details)
    provider_details["pos"]["latitude"] = True
    assert not is_valid_provider(provider_details)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_coordinates_are_rejected(provider_details, course_details, value: float) -> None:
    provider_details["pos"]["longitude"] = value
    course_details["pos"]["latitude"] = value
    assert not is_valid_provider(provider_details)
    assert not is_valid_course(course_details)


def test_coordinates_are_not_range_checked(provider_details) -> None:
    provider_details["pos"] = {"latitude": 123.0, "longitude": -500}
    assert is_valid_provider(provider_details)


def test_instructor_accepts_legacy_membership_key(instructor_details) -> None:
    instructor_details["memerships"] = instructor_details.pop("memberships")
    assert is_valid_instructor(instructor_details)
    del instructor_details["memerships"]
    assert not is_valid_instructor(instructor_details)


@pytest.mark.parametrize("field", ["name", "email", "caalevel"])
def test_instructor_missing_field_is_invalid(instructor_details, field: str) -> None:
    del instructor_details[field]
    assert not is_valid_instructor(instructor_details)
