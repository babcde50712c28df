from __future__ import annotations

import copy
from collections.abc import Iterator
from typing import Any

import pytest

from devkit.docstore import InMemoryDocumentStore

PROVIDER_TABLE = "ast-providers"
COURSE_TABLE = "ast-courses"

PROVIDER_DETAILS: dict[str, Any] = {
    "pos": {"latitude": 51.5, "longitude": -0.12},
    "name": "Acme Diving",
    "contact": {"phone": "123", "email": "a@b.com", "website": "http://x"},
    "sponsor": "PADI",
    "license_expiry": "2030-01-01",
    "insurance_expiry": "2030-01-01",
    "license_agreement": True,
}

COURSE_DETAILS: dict[str, Any] = {
    "providerid": "provider-1",
    "pos": {"latitude": 50.9573, "longitude": -115.2993},
    "name": "AST 1 Kananaskis",
    "date": "2031-01-14",
    "level": "AST1",
    "desc": "Two day introductory avalanche course",
    "tags": ["ast1", "rockies"],
}

INSTRUCTOR_DETAILS: dict[str, Any] = {
    "name": "Ann Example",
    "email": "ann@example.com",
    "caalevel": "Level 2",
    "memberships": ["CAA", "ACMG"],
}


class SpyStore(InMemoryDocumentStore):
    """In-memory store that records every call made to it."""

    def __init__(self) -> None:
        super().__init__({PROVIDER_TABLE: "providerid", COURSE_TABLE: "courseid"})
        self.calls: list[tuple[str, str]] = []

    async def scan(self, table):
        self.calls.append(("scan", table))
        return await super().scan(table)

    async def query(self, table, field, value):
        self.calls.append(("query", table))
        return await super().query(table, field, value)

    async def put(self, table, item, **kwargs):
        self.calls.append(("put", table))
        return await super().put(table, item, **kwargs)

    async def update(self, table, key, update_expression, **kwargs):
        self.calls.append(("update", table))
        return await super().update(table, key, update_expression, **kwargs)


def sequential_ids(prefix: str) -> Iterator[str]:
    counter = 0
    while True:
        counter += 1
        yield f"{prefix}-{counter}"


@pytest.fixture
def store() -> SpyStore:
    return SpyStore()


@pytest.fixture
def provider_details() -> dict[str, Any]:
    return copy.deepcopy(PROVIDER_DETAILS)


@pytest.fixture
def course_details() -> dict[str, Any]:
    return copy.deepcopy(COURSE_DETAILS)


@pytest.fixture
def instructor_details() -> dict[str, Any]:
    return copy.deepcopy(INSTRUCTOR_DETAILS)


@pytest.fixture
def provider_manager(store: SpyStore):
    from ast_service.providers import ProviderManager

    ids = sequential_ids("generated")
    return ProviderManager(store, PROVIDER_TABLE, id_factory=lambda: next(ids))


@pytest.fixture
def course_manager(store: SpyStore):
    from ast_service.courses import CourseManager

    ids = sequential_ids("course")
    return CourseManager(store, COURSE_TABLE, id_factory=lambda: next(ids))
