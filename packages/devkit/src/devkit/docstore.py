from __future__ import annotations

import asyncio
import copy
import logging
import weakref
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, TypeVar

from sqlalchemy import JSON, Integer, String, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm.exc import StaleDataError

from devkit.db import AsyncDatabaseManager, Base, create_all_tables, normalize_postgres_dsn
from devkit.errors import ConditionalCheckFailedError, DocumentStoreError, TableNotFoundError
from devkit.expressions import apply_set_actions, evaluate_condition, parse_update_expression

T = TypeVar("T")

logger = logging.getLogger(__name__)

Item = dict[str, Any]


class DocumentStore(Protocol):
    async def scan(self, table: str) -> list[Item]: ...

    async def query(self, table: str, field: str, value: Any) -> list[Item]: ...

    async def put(
        self,
        table: str,
        item: Mapping[str, Any],
        *,
        condition_expression: str | None = None,
        attribute_names: Mapping[str, str] | None = None,
    ) -> Item: ...

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        update_expression: str,
        *,
        attribute_names: Mapping[str, str] | None = None,
        attribute_values: Mapping[str, Any] | None = None,
        condition_expression: str | None = None,
    ) -> Item: ...

    async def close(self) -> None: ...


def prepare_put(
    existing: Mapping[str, Any] | None,
    item: Mapping[str, Any],
    *,
    condition_expression: str | None,
    attribute_names: Mapping[str, str] | None,
) -> Item:
    if not evaluate_condition(existing, condition_expression, attribute_names):
        raise ConditionalCheckFailedError("the conditional request failed")
    return copy.deepcopy(dict(item))


def prepare_update(
    existing: Mapping[str, Any] | None,
    key: Mapping[str, Any],
    update_expression: str,
    *,
    attribute_names: Mapping[str, str] | None,
    attribute_values: Mapping[str, Any] | None,
    condition_expression: str | None,
) -> Item:
    actions = parse_update_expression(update_expression, attribute_names, attribute_values)
    if not evaluate_condition(existing, condition_expression, attribute_names):
        raise ConditionalCheckFailedError("the conditional request failed")
    base = existing if existing is not None else dict(key)
    return apply_set_actions(base, actions, key_fields=key.keys())


class _TableRegistry:
    def __init__(self, tables: Mapping[str, str]) -> None:
        self._key_fields = dict(tables)

    def key_field(self, table: str) -> str:
        try:
            return self._key_fields[table]
        except KeyError as exc:
            raise TableNotFoundError(f"table {table!r} is not registered") from exc

    def item_key(self, table: str, item: Mapping[str, Any]) -> str:
        key_field = self.key_field(table)
        value = item.get(key_field)
        if value is None or value == "":
            raise DocumentStoreError(f"item is missing key attribute {key_field!r}")
        return str(value)

    def check_key(self, table: str, key: Mapping[str, Any]) -> str:
        key_field = self.key_field(table)
        if set(key) != {key_field}:
            raise DocumentStoreError(f"key for table {table!r} must contain only {key_field!r}")
        return self.item_key(table, key)


class InMemoryDocumentStore:
    def __init__(self, tables: Mapping[str, str]) -> None:
        self._registry = _TableRegistry(tables)
        self._items: dict[str, dict[str, Item]] = {table: {} for table in tables}

    async def close(self) -> None:
        return None

    async def scan(self, table: str) -> list[Item]:
        self._registry.key_field(table)
        return [copy.deepcopy(item) for item in self._items[table].values()]

    async def query(self, table: str, field: str, value: Any) -> list[Item]:
        if field == self._registry.key_field(table):
            item = self._items[table].get(str(value))
            return [copy.deepcopy(item)] if item is not None else []
        return [copy.deepcopy(item) for item in self._items[table].values() if item.get(field) == value]

    async def put(
        self,
        table: str,
        item: Mapping[str, Any],
        *,
        condition_expression: str | None = None,
        attribute_names: Mapping[str, str] | None = None,
    ) -> Item:
        item_key = self._registry.item_key(table, item)
        stored = prepare_put(
            self._items[table].get(item_key),
            item,
            condition_expression=condition_expression,
            attribute_names=attribute_names,
        )
        self._items[table][item_key] = stored
        return copy.deepcopy(stored)

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        update_expression: str,
        *,
        attribute_names: Mapping[str, str] | None = None,
        attribute_values: Mapping[str, Any] | None = None,
        condition_expression: str | None = None,
    ) -> Item:
        item_key = self._registry.check_key(table, key)
        stored = prepare_update(
            self._items[table].get(item_key),
            key,
            update_expression,
            attribute_names=attribute_names,
            attribute_values=attribute_values,
            condition_expression=condition_expression,
        )
        self._items[table][item_key] = stored
        return copy.deepcopy(stored)


class DocumentORM(Base):
    __tablename__ = "documents"

    table_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    item_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    body: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # UPDATE ... WHERE version = :v; a miss raises StaleDataError.
    __mapper_args__ = {"version_id_col": version}


class _WriteConflict(Exception):
    """Another writer changed or created the item between read and write."""


class SqlDocumentStore:
    """Documents stored as JSON rows keyed by (table, item key).

    Each write reads, checks its condition and writes back one row. Writers of
    the same item are serialised in-process, the row is locked with
    ``FOR UPDATE`` where the database supports it, and the version column
    catches writers from other processes, in which case the write is retried.
    SQLite allows a single writer, so all writes share one lock there.
    """

    def __init__(
        self,
        database_url: str,
        tables: Mapping[str, str],
        *,
        max_conflict_retries: int = 5,
    ) -> None:
        self._registry = _TableRegistry(tables)
        self._db = AsyncDatabaseManager(database_url)
        self._orm_ready = False
        self._max_conflict_retries = max_conflict_retries
        self._single_writer = make_url(normalize_postgres_dsn(database_url)).get_backend_name() == "sqlite"
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = weakref.WeakValueDictionary()

    async def close(self) -> None:
        await self._db.disconnect()

    async def scan(self, table: str) -> list[Item]:
        self._registry.key_field(table)

        async def _run(session: AsyncSession) -> list[Item]:
            stmt = select(DocumentORM).where(DocumentORM.table_name == table).order_by(DocumentORM.item_key)
            rows = (await session.scalars(stmt)).all()
            return [copy.deepcopy(row.body) for row in rows]

        return await self._run(_run)

    async def query(self, table: str, field: str, value: Any) -> list[Item]:
        if field != self._registry.key_field(table):
            return [item for item in await self.scan(table) if item.get(field) == value]

        async def _run(session: AsyncSession) -> list[Item]:
            row = await session.get(DocumentORM, (table, str(value)))
            return [copy.deepcopy(row.body)] if row is not None else []

        return await self._run(_run)

    async def put(
        self,
        table: str,
        item: Mapping[str, Any],
        *,
        condition_expression: str | None = None,
        attribute_names: Mapping[str, str] | None = None,
    ) -> Item:
        item_key = self._registry.item_key(table, item)
        return await self._write_item(
            table,
            item_key,
            lambda existing: prepare_put(
                existing,
                item,
                condition_expression=condition_expression,
                attribute_names=attribute_names,
            ),
        )

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        update_expression: str,
        *,
        attribute_names: Mapping[str, str] | None = None,
        attribute_values: Mapping[str, Any] | None = None,
        condition_expression: str | None = None,
    ) -> Item:
        item_key = self._registry.check_key(table, key)
        return await self._write_item(
            table,
            item_key,
            lambda existing: prepare_update(
                existing,
                key,
                update_expression,
                attribute_names=attribute_names,
                attribute_values=attribute_values,
                condition_expression=condition_expression,
            ),
        )

    async def _write_item(
        self,
        table: str,
        item_key: str,
        build: Callable[[Item | None], Item],
    ) -> Item:
        async def _run(session: AsyncSession) -> Item:
            stmt = (
                select(DocumentORM)
                .where(DocumentORM.table_name == table, DocumentORM.item_key == item_key)
                .with_for_update()
            )
            row = await session.scalar(stmt)
            stored = build(copy.deepcopy(row.body) if row is not None else None)
            if row is None:
                session.add(DocumentORM(table_name=table, item_key=item_key, body=stored))
            else:
                row.body = stored
            try:
                await session.flush()
            except (IntegrityError, StaleDataError) as exc:
                raise _WriteConflict(str(exc)) from exc
            return copy.deepcopy(stored)

        async with self._lock_for(table, item_key):
            for attempt in range(1, self._max_conflict_retries + 1):
                try:
                    return await self._run(_run)
                except _WriteConflict:
                    logger.warning(
                        "docstore_write_conflict",
                        extra={"component": "devkit", "table": table, "item_key": item_key, "attempt": attempt},
                    )
        raise DocumentStoreError(f"item {item_key!r} in table {table!r} kept changing during the write")

    def _lock_for(self, table: str, item_key: str) -> asyncio.Lock:
        lock_key = ("", "") if self._single_writer else (table, item_key)
        lock = self._locks.get(lock_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[lock_key] = lock
        return lock

    async def _run(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            await self._ensure_orm_ready()
            return await self._db.run_with_session(fn)
        except SQLAlchemyError as exc:
            logger.error("docstore_sql_failure", extra={"component": "devkit", "error": str(exc)})
            raise DocumentStoreError(str(exc)) from exc

    async def _ensure_orm_ready(self) -> None:
        if self._orm_ready:
            return
        await self._db.connect()
        await create_all_tables(self._db.engine, Base.metadata)
        self._orm_ready = True


def create_document_store(database_url: str | None, tables: Mapping[str, str]) -> DocumentStore:
    if not database_url:
        return InMemoryDocumentStore(tables)
    return SqlDocumentStore(database_url, tables)
