"""Protocols for the collaborators a repository depends on, and for repositories themselves."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from ninja_datarepo.schema import EntitySchema, FieldSchema

T = TypeVar("T")


class ConnectionState(str, Enum):
    """Lifecycle state of a database connection handle."""

    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"


@runtime_checkable
class DbConnection(Protocol):
    """A blocking connection handle and the data-access calls made through it."""

    @property
    def state(self) -> ConnectionState: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def query(self, sql: str, param: Any = None, *, into: type[Any] | None = None) -> list[Any]:
        """Run *sql* and materialize each row as *into* (plain dicts when ``None``)."""
        ...

    def query_scalars(self, sql: str, param: Any = None) -> list[Any]:
        """Run *sql* and return the first column of every row."""
        ...

    def execute(self, sql: str, param: Any = None) -> int:
        """Run *sql* and return the affected row count."""
        ...


@runtime_checkable
class AsyncDbConnection(Protocol):
    """Asyncio counterpart of :class:`DbConnection`."""

    @property
    def state(self) -> ConnectionState: ...

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def query(self, sql: str, param: Any = None, *, into: type[Any] | None = None) -> list[Any]: ...

    async def query_scalars(self, sql: str, param: Any = None) -> list[Any]: ...

    async def execute(self, sql: str, param: Any = None) -> int: ...


@runtime_checkable
class SqlGenerator(Protocol[T]):
    """Per-entity binding that turns an entity schema into SQL text.

    Implementations are read-only once constructed and may be shared across
    repositories and threads.
    """

    @property
    def entity_type(self) -> type[T]: ...

    @property
    def schema(self) -> EntitySchema: ...

    @property
    def is_identity(self) -> bool: ...

    @property
    def identity_field(self) -> FieldSchema | None: ...

    def get_select_all(self) -> str: ...

    def get_select(self, filters: Any) -> str: ...

    def get_insert(self) -> str: ...

    def get_update(self) -> str: ...

    def get_delete(self) -> str: ...


@runtime_checkable
class Repository(Protocol[T]):
    """Blocking CRUD interface shared by every entity repository."""

    def get_all(self) -> list[T]:
        """Return every row of the entity's table."""
        ...

    def get_where(self, filters: Any) -> list[T]:
        """Return the rows whose columns equal the filter's fields."""
        ...

    def get_first(self, filters: Any) -> T | None:
        """Return the first row matching *filters*, or ``None``."""
        ...

    def insert(self, instance: T) -> bool:
        """Insert *instance*; returns True if a row was created."""
        ...

    def update(self, instance: T) -> bool:
        """Update the row keyed by *instance*; returns True if a row changed."""
        ...

    def delete(self, key: Any) -> bool:
        """Delete the row identified by *key*; returns True if a row was removed."""
        ...


@runtime_checkable
class AsyncRepository(Protocol[T]):
    """Asyncio mirror of :class:`Repository` with identical semantics."""

    async def get_all(self) -> list[T]: ...

    async def get_where(self, filters: Any) -> list[T]: ...

    async def get_first(self, filters: Any) -> T | None: ...

    async def insert(self, instance: T) -> bool: ...

    async def update(self, instance: T) -> bool: ...

    async def delete(self, key: Any) -> bool: ...
