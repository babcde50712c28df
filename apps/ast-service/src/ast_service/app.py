from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from devkit.config import ServiceSettings, load_settings
from devkit.docstore import DocumentStore, create_document_store
from devkit.errors import ConditionalCheckFailedError, DocumentStoreError
from devkit.observability import configure_otel, configure_probe_access_log_filter

from ast_service.config import load_table_names
from ast_service.courses import CourseManager
from ast_service.errors import InvalidPayloadError
from ast_service.middleware import TraceMiddleware
from ast_service.providers import ProviderManager
from ast_service.response import error_response, success_response


def create_app(
    settings: ServiceSettings | None = None,
    store: DocumentStore | None = None,
) -> FastAPI:
    settings = settings or load_settings("ast-service")
    tables = load_table_names(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.store.close()

    app = FastAPI(title="AST Service", version="0.1.0", lifespan=lifespan)
    configure_otel(service_name="ast-service")
    configure_probe_access_log_filter()
    app.add_middleware(TraceMiddleware)

    app.state.store = store or create_document_store(settings.DATABASE_URL, tables.key_fields())
    app.state.providers = ProviderManager(
        app.state.store, tables.providers, precision=settings.GEOHASH_PRECISION
    )
    app.state.courses = CourseManager(app.state.store, tables.courses, precision=settings.GEOHASH_PRECISION)
    providers: ProviderManager = app.state.providers
    courses: CourseManager = app.state.courses

    @app.exception_handler(InvalidPayloadError)
    async def handle_invalid_payload(_: Request, exc: InvalidPayloadError) -> JSONResponse:
        return JSONResponse(status_code=422, content=error_response("INVALID_PAYLOAD", str(exc)))

    @app.exception_handler(ConditionalCheckFailedError)
    async def handle_missing_item(_: Request, exc: ConditionalCheckFailedError) -> JSONResponse:
        return JSONResponse(status_code=404, content=error_response("NOT_FOUND", str(exc)))

    @app.exception_handler(DocumentStoreError)
    async def handle_store_error(_: Request, exc: DocumentStoreError) -> JSONResponse:
        return JSONResponse(status_code=502, content=error_response("STORE_ERROR", str(exc)))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return JSONResponse(status_code=422, content=error_response("VALIDATION_ERROR", message))

    @app.get("/healthz")
    async def healthz() -> dict[str, object]:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict[str, object]:
        return success_response({"status": "ready"}, meta={})

    @app.get("/v1/providers")
    async def list_providers() -> dict[str, object]:
        items = await providers.list_providers()
        return success_response(items, meta={"count": len(items)})

    @app.get("/v1/providers/{provider_id}")
    async def get_provider(provider_id: str) -> dict[str, object]:
        items = await providers.get_provider(provider_id)
        return success_response(items, meta={"count": len(items)})

    @app.post("/v1/providers", status_code=201)
    async def add_provider(details: dict[str, Any] = Body(...)) -> dict[str, object]:
        return success_response(await providers.add_provider(details), meta={})

    @app.put("/v1/providers/{provider_id}")
    async def update_provider(provider_id: str, details: dict[str, Any] = Body(...)) -> dict[str, object]:
        return success_response(await providers.update_provider(provider_id, details), meta={})

    @app.post("/v1/providers/{provider_id}/instructors", status_code=201)
    async def add_instructor(provider_id: str, details: dict[str, Any] = Body(...)) -> dict[str, object]:
        instructor_id = await providers.add_instructor(provider_id, details)
        return success_response({"providerid": provider_id, "instructor_id": instructor_id}, meta={})

    @app.put("/v1/providers/{provider_id}/instructors/{instructor_id}")
    async def update_instructor(
        provider_id: str,
        instructor_id: str,
        details: dict[str, Any] = Body(...),
    ) -> dict[str, object]:
        await providers.update_instructor(provider_id, instructor_id, details)
        return success_response({"providerid": provider_id, "instructor_id": instructor_id}, meta={})

    @app.get("/v1/courses")
    async def list_courses() -> dict[str, object]:
        items = await courses.list_courses()
        return success_response(items, meta={"count": len(items)})

    @app.get("/v1/courses/{course_id}")
    async def get_course(course_id: str) -> dict[str, object]:
        items = await courses.get_course(course_id)
        return success_response(items, meta={"count": len(items)})

    @app.post("/v1/courses", status_code=201)
    async def add_course(details: dict[str, Any] = Body(...)) -> dict[str, object]:
        return success_response(await courses.add_course(details), meta={})

    @app.put("/v1/courses/{course_id}")
    async def update_course(course_id: str, details: dict[str, Any] = Body(...)) -> dict[str, object]:
        return success_response(await courses.update_course(course_id, details), meta={})

    return app
