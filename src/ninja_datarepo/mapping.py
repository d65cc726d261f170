"""Binding parameter sources to statements and rows back onto entities."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


def bind_params(source: Any) -> dict[str, Any]:
    """Flatten a parameter source into a name -> value mapping.

    Accepts ``None``, mappings, pydantic models, dataclass instances and plain
    objects (public instance attributes only).
    """
    if source is None:
        return {}
    if isinstance(source, Mapping):
        return dict(source)
    if isinstance(source, BaseModel):
        return source.model_dump()
    if dataclasses.is_dataclass(source) and not isinstance(source, type):
        return {f.name: getattr(source, f.name) for f in dataclasses.fields(source)}
    try:
        attrs = vars(source)
    except TypeError:
        raise TypeError(f"Cannot bind parameters from {type(source).__name__!r}") from None
    return {k: v for k, v in attrs.items() if not k.startswith("_")}


def materialize(entity_type: type[T], row: Mapping[str, Any]) -> T:
    """Build an *entity_type* instance from a result row."""
    if issubclass(entity_type, BaseModel):
        return entity_type.model_validate(dict(row))
    instance = entity_type()
    for column, value in row.items():
        setattr(instance, column, value)
    return instance
