"""Translate pydantic validation failures into the typed ValidationError."""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from staffledger.core.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)


def describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def validate(model_cls: type[M], data: Any) -> M:
    """Validate ``data`` (a mapping or an instance) into ``model_cls``."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Données invalides: {describe(exc)}",
            errors=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc
