"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import ServiceSettings, load_settings
from devkit.db import (
    AsyncDatabaseManager,
    Base,
    create_all_tables,
    create_async_engine,
    create_session_factory,
    is_transient_db_error,
    normalize_postgres_dsn,
)
from devkit.docstore import DocumentStore, InMemoryDocumentStore, SqlDocumentStore, create_document_store
from devkit.errors import (
    ConditionalCheckFailedError,
    DocumentStoreError,
    ExpressionError,
    TableNotFoundError,
)
from devkit.expressions import build_set_expression
from devkit.observability import configure_otel, configure_probe_access_log_filter, store_span

__all__ = [
    "AsyncDatabaseManager",
    "Base",
    "ConditionalCheckFailedError",
    "DocumentStore",
    "DocumentStoreError",
    "ExpressionError",
    "InMemoryDocumentStore",
    "ServiceSettings",
    "SqlDocumentStore",
    "TableNotFoundError",
    "build_set_expression",
    "configure_otel",
    "configure_probe_access_log_filter",
    "create_all_tables",
    "create_async_engine",
    "create_document_store",
    "create_session_factory",
    "is_transient_db_error",
    "load_settings",
    "normalize_postgres_dsn",
    "store_span",
]
