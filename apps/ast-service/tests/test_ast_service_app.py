import json

from fastapi.testclient import TestClient
import pytest

from devkit.config import ServiceSettings

from ast_service.app import create_app
from ast_service.config import load_table_names
from ast_service.errors import ConfigurationError


def _settings(**overrides) -> ServiceSettings:
    values = {
        "SERVICE_NAME": "ast-service",
        "DATABASE_URL": None,
        "AST_PROVIDER_TABLE": "ast-providers",
        "AST_COURSE_TABLE": "ast-courses",
    }
    values.update(overrides)
    return ServiceSettings(**values)


def _client(store=None) -> TestClient:
    return TestClient(create_app(settings=_settings(), store=store))


def test_missing_table_configuration_is_fatal() -> None:
    with pytest.raises(ConfigurationError, match="AST_COURSE_TABLE"):
        create_app(settings=_settings(AST_COURSE_TABLE=None))
    with pytest.raises(ConfigurationError, match="must differ"):
        load_table_names(_settings(AST_COURSE_TABLE="ast-providers"))


def test_create_app_reads_environment(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("AST_PROVIDER_TABLE", "env-providers")
    monkeypatch.setenv("AST_COURSE_TABLE", "env-courses")

    client = TestClient(create_app())

    assert client.get("/v1/providers").json()["data"] == []


def test_health_probes() -> None:
    client = _client()
    assert client.get("/healthz").json()["data"] == {"status": "ok"}
    assert client.get("/readyz").json()["data"] == {"status": "ready"}


def test_provider_lifecycle(store, provider_details, instructor_details) -> None:
    client = _client(store)

    created = client.post("/v1/providers", json=provider_details)
    assert created.status_code == 201
    provider = created.json()["data"]
    assert provider["geohash"] == "gcpuvr295"
    assert provider["instructors"] == {}

    added = client.post(f"/v1/providers/{provider['providerid']}/instructors", json=instructor_details)
    assert added.status_code == 201
    instructor_id = added.json()["data"]["instructor_id"]

    provider_details["name"] = "Acme Avalanche"
    updated = client.put(f"/v1/providers/{provider['providerid']}", json=provider_details)
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "Acme Avalanche"

    renamed = client.put(
        f"/v1/providers/{provider['providerid']}/instructors/{instructor_id}",
        json=dict(instructor_details, caalevel="Level 3"),
    )
    assert renamed.status_code == 200

    detail = client.get(f"/v1/providers/{provider['providerid']}").json()
    assert detail["meta"] == {"count": 1}
    assert detail["data"][0]["instructors"][instructor_id]["caalevel"] == "Level 3"
    assert "pos" in detail["data"][0]

    listed = client.get("/v1/providers").json()
    assert [item["providerid"] for item in listed["data"]] == [provider["providerid"]]


def test_unknown_provider_is_an_empty_list() -> None:
    body = _client().get("/v1/providers/nonexistent-id").json()
    assert body["success"] is True
    assert body["data"] == []


def test_invalid_payload_maps_to_422(store, provider_details) -> None:
    client = _client(store)
    del provider_details["sponsor"]

    response = client.post("/v1/providers", json=provider_details)

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INVALID_PAYLOAD"
    assert "unable to add provider invalid input" in response.json()["error"]["message"]
    assert store.calls == []


def test_nan_coordinate_in_request_body_is_rejected(store, provider_details) -> None:
    client = _client(store)
    body = json.dumps(provider_details).replace("51.5", "NaN")

    response = client.post("/v1/providers", content=body, headers={"content-type": "application/json"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INVALID_PAYLOAD"
    assert store.calls == []


def test_non_object_body_maps_to_422() -> None:
    response = _client().post("/v1/courses", json=["not", "an", "object"])
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_updates_of_unknown_records_map_to_404(provider_details, course_details, instructor_details) -> None:
    client = _client()

    assert client.put("/v1/providers/missing", json=provider_details).status_code == 404
    assert client.put("/v1/courses/missing", json=course_details).status_code == 404
    response = client.post("/v1/providers/missing/instructors", json=instructor_details)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_course_lifecycle(course_details) -> None:
    client = _client()

    created = client.post("/v1/courses", json=course_details).json()["data"]
    course_details["level"] = "AST2"
    updated = client.put(f"/v1/courses/{created['courseid']}", json=course_details).json()["data"]

    assert updated["level"] == "AST2"
    assert client.get(f"/v1/courses/{created['courseid']}").json()["data"] == [updated]
    assert client.get("/v1/courses").json()["meta"] == {"count": 1}


def test_store_errors_map_to_502(store) -> None:
    from devkit.errors import DocumentStoreError

    async def broken_scan(_table):
        raise DocumentStoreError("throttled")

    store.scan = broken_scan
    response = _client(store).get("/v1/providers")

    assert response.status_code == 502
    assert response.json()["error"] == {"code": "STORE_ERROR", "message": "throttled"}


def test_trace_id_is_propagated() -> None:
    response = _client().get("/healthz", headers={"x-trace-id": "trace-123"})
    assert response.headers["x-trace-id"] == "trace-123"
