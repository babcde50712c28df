"""Provider and course directory for avalanche skills training."""

from ast_service.courses import CourseManager
from ast_service.errors import AstServiceError, ConfigurationError, InvalidPayloadError
from ast_service.providers import ProviderManager

__all__ = [
    "AstServiceError",
    "ConfigurationError",
    "CourseManager",
    "InvalidPayloadError",
    "ProviderManager",
]
