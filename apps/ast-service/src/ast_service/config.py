from __future__ import annotations

from dataclasses import dataclass

from devkit.config import ServiceSettings

from ast_service.errors import ConfigurationError

PROVIDER_KEY = "providerid"
COURSE_KEY = "courseid"


@dataclass(frozen=True)
class TableNames:
    providers: str
    courses: str

    def key_fields(self) -> dict[str, str]:
        return {self.providers: PROVIDER_KEY, self.courses: COURSE_KEY}


def load_table_names(settings: ServiceSettings) -> TableNames:
    providers = settings.AST_PROVIDER_TABLE
    courses = settings.AST_COURSE_TABLE
    if not providers or not courses:
        missing = [name for name, value in (("AST_PROVIDER_TABLE", providers), ("AST_COURSE_TABLE", courses)) if not value]
        raise ConfigurationError(f"missing required table configuration: {', '.join(missing)}")
    if providers == courses:
        raise ConfigurationError("AST_PROVIDER_TABLE and AST_COURSE_TABLE must differ")
    return TableNames(providers=providers, courses=courses)
