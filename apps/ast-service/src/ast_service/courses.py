from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from devkit.docstore import DocumentStore
from geo_engine.geohash import DEFAULT_PRECISION

from ast_service.config import COURSE_KEY
from ast_service.pipeline import EntityDefinition, EntityPipeline, new_identifier
from ast_service.records import build_course_record
from ast_service.validation import is_valid_course


class CourseManager:
    def __init__(
        self,
        store: DocumentStore,
        table: str,
        *,
        id_factory: Callable[[], str] = new_identifier,
        precision: int = DEFAULT_PRECISION,
    ) -> None:
        self._pipeline = EntityPipeline(
            store,
            EntityDefinition(
                name="course",
                table=table,
                key_field=COURSE_KEY,
                validate=is_valid_course,
                build=build_course_record,
            ),
            id_factory=id_factory,
            precision=precision,
        )

    async def list_courses(self) -> list[dict[str, Any]]:
        return await self._pipeline.list_all()

    async def get_course(self, course_id: str) -> list[dict[str, Any]]:
        return await self._pipeline.get(course_id)

    async def add_course(self, details: Mapping[str, Any]) -> dict[str, Any]:
        return await self._pipeline.create(details)

    async def update_course(self, course_id: str, details: Mapping[str, Any]) -> dict[str, Any]:
        return await self._pipeline.replace(course_id, details)
