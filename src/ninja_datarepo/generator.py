"""SQL text generation from entity schemas via SQLAlchemy Core.

Statements are compiled against a dialect in ``named`` paramstyle so the text
carries ``:column`` placeholders that any SQLAlchemy connection can bind.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Dialect, Engine, make_url
from sqlalchemy.exc import ArgumentError, CompileError, NoSuchModuleError
from sqlalchemy.ext.asyncio import AsyncEngine

from ninja_datarepo.exceptions import GenerationError
from ninja_datarepo.mapping import bind_params
from ninja_datarepo.schema import EntitySchema, FieldSchema, FieldType

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FIELD_TYPE_MAP: dict[FieldType, type[sa.types.TypeEngine]] = {
    FieldType.STRING: sa.String,
    FieldType.TEXT: sa.Text,
    FieldType.SMALL_INTEGER: sa.SmallInteger,
    FieldType.INTEGER: sa.Integer,
    FieldType.BIG_INTEGER: sa.BigInteger,
    FieldType.FLOAT: sa.Float,
    FieldType.DECIMAL: sa.Numeric,
    FieldType.BOOLEAN: sa.Boolean,
    FieldType.DATETIME: sa.DateTime,
    FieldType.DATE: sa.Date,
    FieldType.UUID: sa.Uuid,
    FieldType.BINARY: sa.LargeBinary,
}


def _column_type(field: FieldSchema) -> sa.types.TypeEngine:
    sa_type = _FIELD_TYPE_MAP[field.field_type]
    if sa_type is sa.String:
        return sa.String(255)
    if field.identity and sa_type in (sa.BigInteger, sa.SmallInteger):
        # SQLite only autoincrements columns declared exactly INTEGER PRIMARY KEY.
        return sa_type().with_variant(sa.Integer(), "sqlite")
    return sa_type()


def _build_table(entity: EntitySchema, metadata: sa.MetaData) -> sa.Table:
    """Build a SQLAlchemy Table from an EntitySchema."""
    columns = [
        sa.Column(
            field.name,
            _column_type(field),
            primary_key=field.primary_key,
            nullable=field.nullable,
            autoincrement=field.identity,
        )
        for field in entity.fields
    ]
    return sa.Table(entity.table, metadata, *columns)


def load_dialect(name: str) -> Dialect:
    """Instantiate the SQLAlchemy dialect *name* (``"sqlite"``, ``"postgresql+asyncpg"``...) in named paramstyle."""
    backend = name.split("+", 1)[0]
    try:
        dialect_cls = make_url(f"{backend}://").get_dialect()
    except (NoSuchModuleError, ArgumentError) as exc:
        raise GenerationError(
            operation="load_dialect",
            detail=f"Unknown SQL dialect {name!r}.",
            cause=exc,
        ) from exc
    return dialect_cls(paramstyle="named")


class TableSqlGenerator(Generic[T]):
    """SQL generator binding for one entity type and one table.

    Fixed statements (select-all, insert, update, delete) are compiled once at
    construction; filtered selects are compiled per call from the filter's
    field names.  Instances are immutable and safe to share.
    """

    def __init__(self, schema: EntitySchema, entity_type: type[T], *, dialect: str = "sqlite") -> None:
        self._schema = schema
        self._entity_type = entity_type
        self._dialect = load_dialect(dialect)
        self._metadata = sa.MetaData()
        self._table = _build_table(schema, self._metadata)

        keys = [self._table.c[f.name] for f in schema.key_fields]
        self._key_clause = [col == sa.bindparam(col.name) for col in keys]
        self._select_all = self._compile(sa.select(self._table))
        self._insert = self._compile_insert()
        self._update = self._compile_update()
        self._delete = self._compile(self._table.delete().where(*self._key_clause))

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def schema(self) -> EntitySchema:
        return self._schema

    @property
    def table(self) -> sa.Table:
        return self._table

    @property
    def dialect_name(self) -> str:
        return self._dialect.name

    @property
    def is_identity(self) -> bool:
        return self._schema.is_identity

    @property
    def identity_field(self) -> FieldSchema | None:
        return self._schema.identity_field

    def get_select_all(self) -> str:
        return self._select_all

    def get_select(self, filters: Any) -> str:
        """Select the rows whose columns equal each public field of *filters*.

        An empty or ``None`` filter selects every row.
        """
        try:
            names = list(bind_params(filters))
        except TypeError as exc:
            raise self._error("get_select", f"Unusable filter object: {exc}") from exc
        unknown = [name for name in names if name not in self._table.c]
        if unknown:
            raise self._error("get_select", f"Unknown filter field(s) {unknown}.")
        stmt = sa.select(self._table)
        if names:
            stmt = stmt.where(*(self._table.c[name] == sa.bindparam(name) for name in names))
        return self._compile(stmt)

    def get_insert(self) -> str:
        return self._insert

    def get_update(self) -> str:
        if self._update is None:
            raise self._error("get_update", "Every column is part of the primary key; nothing to update.")
        return self._update

    def get_delete(self) -> str:
        return self._delete

    def create_table(self, bind: Engine | Connection) -> None:
        """Create the table if it does not exist."""
        self._metadata.create_all(bind, checkfirst=True)

    async def create_table_async(self, engine: AsyncEngine) -> None:
        """Create the table if it does not exist, on an async engine."""
        async with engine.begin() as conn:
            await conn.run_sync(self._metadata.create_all)

    # -- internals ------------------------------------------------------------

    def _compile(self, stmt: sa.ClauseElement, column_keys: list[str] | None = None) -> str:
        try:
            return str(stmt.compile(dialect=self._dialect, column_keys=column_keys))
        except CompileError as exc:
            logger.error("SQL generation failed for %s: %s", self._schema.name, type(exc).__name__)
            raise GenerationError(
                entity_name=self._schema.name,
                operation="compile",
                detail=f"Statement is not supported by the {self._dialect.name} dialect.",
                cause=exc,
            ) from exc

    def _compile_insert(self) -> str:
        identity = self._schema.identity_field
        if identity is None:
            return self._compile(self._table.insert(), self._schema.field_names())
        if not self._dialect.insert_returning:
            raise self._error("get_insert", f"The {self._dialect.name} dialect cannot return generated keys.")
        names = [f.name for f in self._schema.fields if not f.identity]
        stmt = self._table.insert().returning(self._table.c[identity.name])
        return self._compile(stmt, names)

    def _compile_update(self) -> str | None:
        names = [f.name for f in self._schema.fields if not f.primary_key]
        if not names:
            return None
        return self._compile(self._table.update().where(*self._key_clause), names)

    def _error(self, operation: str, detail: str) -> GenerationError:
        logger.error("SQL generation failed for %s: %s", self._schema.name, operation)
        return GenerationError(entity_name=self._schema.name, operation=operation, detail=detail)
