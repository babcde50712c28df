from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "service"
    DATABASE_URL: str | None = None
    AST_PROVIDER_TABLE: str | None = None
    AST_COURSE_TABLE: str | None = None
    GEOHASH_PRECISION: int = Field(default=9, ge=1, le=12)


def load_settings(service_name: str) -> ServiceSettings:
    return ServiceSettings(SERVICE_NAME=service_name)
