from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any


class AstServiceError(Exception):
    """Base AST service exception."""


class ConfigurationError(AstServiceError):
    """Raised at startup when required settings are missing."""


class InvalidPayloadError(AstServiceError):
    """Raised when a payload is missing required fields.

    The message embeds the rejected payload so callers can see exactly what
    was refused.
    """

    def __init__(self, action: str, entity: str, payload: Mapping[str, Any] | Any) -> None:
        self.action = action
        self.entity = entity
        self.payload = payload
        super().__init__(
            f"unable to {action} {entity} invalid input where {entity} = {_dump(payload)}"
        )


def _dump(payload: Any) -> str:
    return json.dumps(payload, default=str, ensure_ascii=True)
