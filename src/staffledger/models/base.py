"""Shared pydantic base: snake_case attributes, camelCase wire/storage keys."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for every persisted entity and API payload."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "str_strip_whitespace": True,
    }

    def to_wire(self) -> dict:
        """JSON-safe dict keyed by camelCase aliases."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
