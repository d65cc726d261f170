"""Entity and field schema descriptors consumed by SQL generators."""

from __future__ import annotations

import datetime
import keyword
import re
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ninja_datarepo.exceptions import IdentityConversionError

# Valid identifier: starts with a letter, alphanumeric + underscores, max 64 chars.
_IDENTIFIER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,63}$")


class FieldType(str, Enum):
    """Column types understood by the SQL generators."""

    STRING = "string"
    TEXT = "text"
    SMALL_INTEGER = "small_integer"
    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    UUID = "uuid"
    BINARY = "binary"


_PYTHON_TYPES: dict[FieldType, type] = {
    FieldType.STRING: str,
    FieldType.TEXT: str,
    FieldType.SMALL_INTEGER: int,
    FieldType.INTEGER: int,
    FieldType.BIG_INTEGER: int,
    FieldType.FLOAT: float,
    FieldType.DECIMAL: Decimal,
    FieldType.BOOLEAN: bool,
    FieldType.DATETIME: datetime.datetime,
    FieldType.DATE: datetime.date,
    FieldType.UUID: uuid.UUID,
    FieldType.BINARY: bytes,
}

# Signed range representable by each integer column type.
INTEGER_RANGES: dict[FieldType, tuple[int, int]] = {
    FieldType.SMALL_INTEGER: (-(2**15), 2**15 - 1),
    FieldType.INTEGER: (-(2**31), 2**31 - 1),
    FieldType.BIG_INTEGER: (-(2**63), 2**63 - 1),
}

_IDENTITY_TYPES = frozenset({*INTEGER_RANGES, FieldType.DECIMAL})


def _check_identifier(kind: str, v: str) -> str:
    if not _IDENTIFIER_RE.match(v):
        raise ValueError(
            f"{kind} name {v!r} is not a valid identifier. "
            "Must start with a letter, contain only alphanumeric characters "
            "and underscores, and be at most 64 characters."
        )
    if keyword.iskeyword(v):
        raise ValueError(f"{kind} name {v!r} is a Python reserved keyword.")
    return v


class FieldSchema(BaseModel):
    """Schema definition for a single column of an entity.

    An identity field doubles as the field descriptor the repository uses to
    write a database-generated key back onto an inserted entity.
    """

    name: str = Field(min_length=1, description="Field (and column) name.")
    field_type: FieldType = Field(description="Column type of the field.")
    nullable: bool = Field(default=False, description="Whether the column accepts NULL.")
    primary_key: bool = Field(default=False, description="Whether this field is part of the primary key.")
    identity: bool = Field(default=False, description="Whether the database generates this key on insert.")

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("name")
    @classmethod
    def validate_field_name(cls, v: str) -> str:
        """Enforce safe identifier pattern on field names."""
        return _check_identifier("Field", v)

    @model_validator(mode="after")
    def validate_field_coherence(self) -> FieldSchema:
        if self.primary_key and self.nullable:
            raise ValueError(f"Primary key field '{self.name}' must not be nullable")
        if self.identity:
            if not self.primary_key:
                raise ValueError(f"Identity field '{self.name}' must be a primary key")
            if self.field_type not in _IDENTITY_TYPES:
                raise ValueError(
                    f"Identity field '{self.name}' must be an integer or decimal type, "
                    f"got field_type={self.field_type.value}"
                )
        return self

    @property
    def python_type(self) -> type:
        """The Python type values of this field are converted to."""
        return _PYTHON_TYPES[self.field_type]


class EntitySchema(BaseModel):
    """Schema definition for an entity stored in one table."""

    name: str = Field(min_length=1, description="Entity name (PascalCase recommended).")
    fields: list[FieldSchema] = Field(min_length=1, description="Fields belonging to this entity.")
    table_name: str | None = Field(
        default=None,
        description="Override for the table name. Defaults to the lower-cased entity name.",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("name")
    @classmethod
    def validate_entity_name(cls, v: str) -> str:
        return _check_identifier("Entity", v)

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _check_identifier("Table", v)

    @model_validator(mode="after")
    def validate_entity_integrity(self) -> EntitySchema:
        """Validate unique field names, a primary key and at most one identity."""
        seen: set[str] = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"Entity '{self.name}' has duplicate field name '{f.name}'")
            seen.add(f.name)

        if not any(f.primary_key for f in self.fields):
            raise ValueError(f"Entity '{self.name}' must have at least one primary key field")

        identities = [f.name for f in self.fields if f.identity]
        if len(identities) > 1:
            raise ValueError(f"Entity '{self.name}' has multiple identity fields: {identities}")
        return self

    @property
    def table(self) -> str:
        return self.table_name or self.name.lower()

    @property
    def key_fields(self) -> list[FieldSchema]:
        return [f for f in self.fields if f.primary_key]

    @property
    def identity_field(self) -> FieldSchema | None:
        return next((f for f in self.fields if f.identity), None)

    @property
    def is_identity(self) -> bool:
        return self.identity_field is not None

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


def convert_identity(value: Any, field: FieldSchema) -> Any:
    """Convert a database-generated key to *field*'s declared type.

    Integer targets accept integral values inside the column's signed range
    and ``DECIMAL`` targets get a :class:`~decimal.Decimal`.  Anything else
    raises :class:`IdentityConversionError`.
    """

    def _fail(detail: str) -> IdentityConversionError:
        return IdentityConversionError(operation="convert_identity", detail=detail)

    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise _fail(f"generated key {value!r} for '{field.name}' is not numeric")

    as_decimal = Decimal(value)
    if not as_decimal.is_finite():
        raise _fail(f"generated key {value!r} for '{field.name}' is not a finite number")

    if field.field_type == FieldType.DECIMAL:
        return as_decimal
    if field.field_type not in INTEGER_RANGES:
        raise _fail(f"cannot store a generated key in {field.field_type.value} field '{field.name}'")

    if as_decimal != as_decimal.to_integral_value():
        raise _fail(f"generated key {value!r} for '{field.name}' is not integral")
    as_int = int(as_decimal)
    low, high = INTEGER_RANGES[field.field_type]
    if not low <= as_int <= high:
        raise _fail(f"generated key {as_int} overflows {field.field_type.value} field '{field.name}'")
    return as_int
