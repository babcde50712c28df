import pytest
from pydantic import ValidationError

from devkit.config import load_settings


def test_load_settings_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://example")
    monkeypatch.setenv("AST_PROVIDER_TABLE", "ast-providers")
    monkeypatch.setenv("AST_COURSE_TABLE", "ast-courses")
    settings = load_settings("ast-service")

    assert settings.SERVICE_NAME == "ast-service"
    assert settings.DATABASE_URL == "postgresql://example"
    assert settings.AST_PROVIDER_TABLE == "ast-providers"
    assert settings.AST_COURSE_TABLE == "ast-courses"
    assert settings.GEOHASH_PRECISION == 9


def test_load_settings_defaults_to_unconfigured_tables(monkeypatch) -> None:
    monkeypatch.delenv("AST_PROVIDER_TABLE", raising=False)
    monkeypatch.delenv("AST_COURSE_TABLE", raising=False)
    settings = load_settings("ast-service")

    assert settings.AST_PROVIDER_TABLE is None
    assert settings.AST_COURSE_TABLE is None


def test_geohash_precision_is_bounded(monkeypatch) -> None:
    monkeypatch.setenv("GEOHASH_PRECISION", "0")
    with pytest.raises(ValidationError):
        load_settings("ast-service")
