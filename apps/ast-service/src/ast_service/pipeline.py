"""Generic validate -> build -> store call -> decode pipeline.

Providers and courses only differ in their validator, record builder, table
and key attribute, so both managers drive one ``EntityPipeline`` each.
Every public coroutine issues at most one store request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from devkit.docstore import DocumentStore
from devkit.expressions import build_set_expression
from devkit.observability import store_span
from geo_engine.geohash import DEFAULT_PRECISION

from ast_service.errors import InvalidPayloadError
from ast_service.records import with_position

logger = logging.getLogger(__name__)

Validator = Callable[[Any], bool]
RecordBuilder = Callable[[str, Mapping[str, Any], int], dict[str, Any]]
FieldSelector = Callable[[Mapping[str, Any]], Mapping[str, Any]]


def new_identifier() -> str:
    return str(uuid4())


def require_valid(validate: Validator, action: str, entity: str, details: Any) -> None:
    if not validate(details):
        logger.info("payload_rejected", extra={"component": "ast_service", "entity": entity, "action": action})
        raise InvalidPayloadError(action, entity, details)


@dataclass(frozen=True)
class EntityDefinition:
    name: str
    table: str
    key_field: str
    validate: Validator
    build: RecordBuilder


class EntityPipeline:
    def __init__(
        self,
        store: DocumentStore,
        entity: EntityDefinition,
        *,
        id_factory: Callable[[], str] = new_identifier,
        precision: int = DEFAULT_PRECISION,
    ) -> None:
        self._store = store
        self._entity = entity
        self._id_factory = id_factory
        self._precision = precision

    @property
    def entity(self) -> EntityDefinition:
        return self._entity

    def new_id(self) -> str:
        return self._id_factory()

    async def list_all(self) -> list[dict[str, Any]]:
        with store_span("scan", self._entity.table, **{"ast.entity": self._entity.name}):
            items = await self._store.scan(self._entity.table)
        return [with_position(item) for item in items]

    async def get(self, item_id: str) -> list[dict[str, Any]]:
        with store_span("query", self._entity.table, **{"ast.entity": self._entity.name}):
            items = await self._store.query(self._entity.table, self._entity.key_field, item_id)
        return [with_position(item) for item in items]

    async def create(self, details: Mapping[str, Any]) -> dict[str, Any]:
        require_valid(self._entity.validate, "add", self._entity.name, details)
        record = self._entity.build(self.new_id(), details, self._precision)
        with store_span("put", self._entity.table, **{"ast.entity": self._entity.name}):
            stored = await self._store.put(self._entity.table, record)
        self._log("record_created", stored)
        return with_position(stored)

    async def replace(self, item_id: str, details: Mapping[str, Any]) -> dict[str, Any]:
        """Overwrite an existing record; the store rejects unknown ids."""
        require_valid(self._entity.validate, "update", self._entity.name, details)
        record = self._entity.build(item_id, details, self._precision)
        with store_span("put", self._entity.table, **{"ast.entity": self._entity.name}):
            stored = await self._store.put(
                self._entity.table,
                record,
                condition_expression=f"attribute_exists({self._entity.key_field})",
            )
        self._log("record_replaced", stored)
        return with_position(stored)

    async def merge_fields(
        self,
        item_id: str,
        details: Mapping[str, Any],
        select: FieldSelector,
    ) -> dict[str, Any]:
        """Overwrite only the fields ``select`` picks from the built record."""
        require_valid(self._entity.validate, "update", self._entity.name, details)
        record = self._entity.build(item_id, details, self._precision)
        expression, names, values = build_set_expression(select(record))
        with store_span("update", self._entity.table, **{"ast.entity": self._entity.name}):
            updated = await self._store.update(
                self._entity.table,
                {self._entity.key_field: item_id},
                expression,
                attribute_names=names,
                attribute_values=values,
                condition_expression=f"attribute_exists({self._entity.key_field})",
            )
        self._log("record_updated", updated)
        return with_position(updated)

    async def set_entry(
        self,
        item_id: str,
        attribute: str,
        entry_id: str,
        value: Mapping[str, Any],
        *,
        must_exist: bool,
    ) -> dict[str, Any]:
        """Write one entry of a nested map, leaving its siblings untouched."""
        if must_exist:
            condition = f"attribute_exists({attribute}.#entry)"
        else:
            condition = f"attribute_exists({self._entity.key_field}) AND attribute_not_exists({attribute}.#entry)"
        with store_span("update", self._entity.table, **{"ast.entity": self._entity.name}):
            updated = await self._store.update(
                self._entity.table,
                {self._entity.key_field: item_id},
                f"SET {attribute}.#entry = :entry",
                attribute_names={"#entry": entry_id},
                attribute_values={":entry": dict(value)},
                condition_expression=condition,
            )
        return with_position(updated)

    def _log(self, event: str, item: Mapping[str, Any]) -> None:
        logger.info(
            event,
            extra={
                "component": "ast_service",
                "entity": self._entity.name,
                "table": self._entity.table,
                "item_id": item.get(self._entity.key_field),
            },
        )
