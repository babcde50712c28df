from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from devkit.docstore import DocumentStore
from geo_engine.geohash import DEFAULT_PRECISION

from ast_service.config import PROVIDER_KEY
from ast_service.pipeline import EntityDefinition, EntityPipeline, new_identifier, require_valid
from ast_service.records import build_instructor_record, build_provider_record, provider_update_fields
from ast_service.validation import is_valid_instructor, is_valid_provider

logger = logging.getLogger(__name__)

INSTRUCTORS_FIELD = "instructors"


class ProviderManager:
    """Providers and the instructors embedded in them."""

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
                name="provider",
                table=table,
                key_field=PROVIDER_KEY,
                validate=is_valid_provider,
                build=build_provider_record,
            ),
            id_factory=id_factory,
            precision=precision,
        )

    async def list_providers(self) -> list[dict[str, Any]]:
        return await self._pipeline.list_all()

    async def get_provider(self, provider_id: str) -> list[dict[str, Any]]:
        return await self._pipeline.get(provider_id)

    async def add_provider(self, details: Mapping[str, Any]) -> dict[str, Any]:
        return await self._pipeline.create(details)

    async def update_provider(self, provider_id: str, details: Mapping[str, Any]) -> dict[str, Any]:
        # Merge rather than put so the instructors map survives.
        return await self._pipeline.merge_fields(provider_id, details, provider_update_fields)

    async def add_instructor(self, provider_id: str, details: Mapping[str, Any]) -> str:
        require_valid(is_valid_instructor, "add", "instructor", details)
        instructor_id = self._pipeline.new_id()
        record = build_instructor_record(details)
        logger.info(
            "instructor_add_requested",
            extra={"component": "ast_service", "provider_id": provider_id, "instructor_id": instructor_id},
        )
        await self._pipeline.set_entry(provider_id, INSTRUCTORS_FIELD, instructor_id, record, must_exist=False)
        logger.info(
            "instructor_added",
            extra={"component": "ast_service", "provider_id": provider_id, "instructor_id": instructor_id},
        )
        return instructor_id

    async def update_instructor(
        self,
        provider_id: str,
        instructor_id: str,
        details: Mapping[str, Any],
    ) -> None:
        require_valid(is_valid_instructor, "update", "instructor", details)
        record = build_instructor_record(details)
        logger.info(
            "instructor_update_requested",
            extra={"component": "ast_service", "provider_id": provider_id, "instructor_id": instructor_id},
        )
        await self._pipeline.set_entry(provider_id, INSTRUCTORS_FIELD, instructor_id, record, must_exist=True)
        logger.info(
            "instructor_updated",
            extra={"component": "ast_service", "provider_id": provider_id, "instructor_id": instructor_id},
        )
