"""Generic data repositories: CRUD for any entity over a held connection.

Every operation is written once as a *step routine*: a generator that yields
the data-access request it needs (a query, a scalar query or a command) and
receives the result back.  :class:`DataRepository` answers those requests on
a blocking connection and :class:`AsyncDataRepository` awaits them, so both
forms share one algorithm.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ninja_datarepo.exceptions import CardinalityError
from ninja_datarepo.holder import AsyncConnectionHolder, ConnectionHolder
from ninja_datarepo.protocols import AsyncDbConnection, DbConnection, SqlGenerator
from ninja_datarepo.schema import convert_identity

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Query:
    """Request rows materialized as ``into``."""

    sql: str
    param: Any = None
    into: type[Any] | None = None


@dataclass(frozen=True)
class ScalarQuery:
    """Request the first column of every row."""

    sql: str
    param: Any = None


@dataclass(frozen=True)
class Execute:
    """Request a command's affected row count."""

    sql: str
    param: Any = None


Request = Query | ScalarQuery | Execute
Steps = Generator[Request, Any, R]


class RepositoryCore(Generic[T]):
    """Step routines shared by the blocking and asyncio repositories."""

    def __init__(self, sql_generator: SqlGenerator[T]) -> None:
        self._sql_generator = sql_generator

    @property
    def sql_generator(self) -> SqlGenerator[T]:
        return self._sql_generator

    @property
    def entity_type(self) -> type[T]:
        return self._sql_generator.entity_type

    @property
    def entity_name(self) -> str:
        return self._sql_generator.schema.name

    def _get_all_steps(self) -> Steps[list[T]]:
        sql = self._sql_generator.get_select_all()
        return (yield Query(sql, None, self.entity_type))

    def _get_where_steps(self, filters: Any) -> Steps[list[T]]:
        sql = self._sql_generator.get_select(filters)
        return (yield Query(sql, filters, self.entity_type))

    def _get_first_steps(self, filters: Any) -> Steps[T | None]:
        rows = yield from self._get_where_steps(filters)
        return rows[0] if rows else None

    def _insert_steps(self, instance: T) -> Steps[bool]:
        sql = self._sql_generator.get_insert()
        if not self._sql_generator.is_identity:
            count = yield Execute(sql, instance)
            return count > 0

        keys = yield ScalarQuery(sql, instance)
        if len(keys) != 1:
            logger.error("Identity insert for %s returned %d rows", self.entity_name, len(keys))
            raise CardinalityError(
                entity_name=self.entity_name,
                operation="insert",
                detail=f"Expected exactly one generated key, got {len(keys)} rows.",
            )
        if keys[0] is None:
            return False
        field = self._sql_generator.identity_field
        assert field is not None  # noqa: S101
        new_id = convert_identity(keys[0], field)
        added = new_id > 0
        if added:
            setattr(instance, field.name, new_id)
        return added

    def _update_steps(self, instance: T) -> Steps[bool]:
        sql = self._sql_generator.get_update()
        count = yield Execute(sql, instance)
        return count > 0

    def _delete_steps(self, key: Any) -> Steps[bool]:
        sql = self._sql_generator.get_delete()
        count = yield Execute(sql, key)
        return count > 0


def _dispatch(connection: DbConnection, request: Request) -> Any:
    if isinstance(request, Query):
        return connection.query(request.sql, request.param, into=request.into)
    if isinstance(request, ScalarQuery):
        return connection.query_scalars(request.sql, request.param)
    return connection.execute(request.sql, request.param)


async def _dispatch_async(connection: AsyncDbConnection, request: Request) -> Any:
    if isinstance(request, Query):
        return await connection.query(request.sql, request.param, into=request.into)
    if isinstance(request, ScalarQuery):
        return await connection.query_scalars(request.sql, request.param)
    return await connection.execute(request.sql, request.param)


class DataRepository(ConnectionHolder[DbConnection], RepositoryCore[T]):
    """Blocking repository for one entity type.

    Use directly or subclass per entity::

        class UserRepository(DataRepository[User]):
            ...

        with UserRepository(SqlConnection(engine), TableSqlGenerator(users, User)) as repo:
            repo.insert(user)

    The connection opens on the first operation and closes when the
    repository is released.
    """

    def __init__(self, connection: DbConnection, sql_generator: SqlGenerator[T]) -> None:
        ConnectionHolder.__init__(self, connection)
        RepositoryCore.__init__(self, sql_generator)

    def get_all(self) -> list[T]:
        return self._run(self._get_all_steps())

    def get_where(self, filters: Any) -> list[T]:
        return self._run(self._get_where_steps(filters))

    def get_first(self, filters: Any) -> T | None:
        return self._run(self._get_first_steps(filters))

    def insert(self, instance: T) -> bool:
        return self._run(self._insert_steps(instance))

    def update(self, instance: T) -> bool:
        return self._run(self._update_steps(instance))

    def delete(self, key: Any) -> bool:
        return self._run(self._delete_steps(key))

    def _run(self, steps: Steps[R]) -> R:
        try:
            request = next(steps)
            while True:
                result = _dispatch(self.connection, request)
                request = steps.send(result)
        except StopIteration as done:
            return done.value

    def __enter__(self) -> DataRepository[T]:
        return self


class AsyncDataRepository(AsyncConnectionHolder[AsyncDbConnection], RepositoryCore[T]):
    """Asyncio repository for one entity type; mirrors :class:`DataRepository`.

    The only suspension points are opening the connection on first use and
    the driver call of each operation.
    """

    def __init__(self, connection: AsyncDbConnection, sql_generator: SqlGenerator[T]) -> None:
        AsyncConnectionHolder.__init__(self, connection)
        RepositoryCore.__init__(self, sql_generator)

    async def get_all(self) -> list[T]:
        return await self._run(self._get_all_steps())

    async def get_where(self, filters: Any) -> list[T]:
        return await self._run(self._get_where_steps(filters))

    async def get_first(self, filters: Any) -> T | None:
        return await self._run(self._get_first_steps(filters))

    async def insert(self, instance: T) -> bool:
        return await self._run(self._insert_steps(instance))

    async def update(self, instance: T) -> bool:
        return await self._run(self._update_steps(instance))

    async def delete(self, key: Any) -> bool:
        return await self._run(self._delete_steps(key))

    async def _run(self, steps: Steps[R]) -> R:
        try:
            request = next(steps)
            while True:
                result = await _dispatch_async(await self.get_connection(), request)
                request = steps.send(result)
        except StopIteration as done:
            return done.value

    async def __aenter__(self) -> AsyncDataRepository[T]:
        return self
