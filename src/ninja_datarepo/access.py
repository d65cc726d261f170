"""SQLAlchemy-backed connection handles carrying the data-access calls.

Each handle owns at most one live SQLAlchemy connection drawn from the
engine's pool.  Statements are plain SQL text with ``:name`` placeholders,
bound from a parameter source (see :func:`ninja_datarepo.mapping.bind_params`).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ninja_datarepo.exceptions import ConnectivityError, ExecutionError
from ninja_datarepo.mapping import bind_params, materialize
from ninja_datarepo.protocols import ConnectionState

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_ISOLATION_LEVEL = "AUTOCOMMIT"


def _rows(into: type[Any] | None) -> Callable[[CursorResult[Any]], list[Any]]:
    def fetch(result: CursorResult[Any]) -> list[Any]:
        rows = result.mappings().all()
        if into is None:
            return [dict(row) for row in rows]
        return [materialize(into, row) for row in rows]

    return fetch


def _scalars(result: CursorResult[Any]) -> list[Any]:
    return list(result.scalars().all())


def _rowcount(result: CursorResult[Any]) -> int:
    return result.rowcount


def _connect_failed(exc: Exception) -> ConnectivityError:
    logger.error("Database connection failed: %s", type(exc).__name__)
    return ConnectivityError(
        operation="open",
        detail="Could not establish a database connection.",
        cause=exc,
    )


def _not_open(operation: str) -> ConnectivityError:
    return ConnectivityError(operation=operation, detail="Connection is not open.")


def _execution_failed(operation: str, exc: SQLAlchemyError) -> ExecutionError:
    logger.error("SQL %s failed: %s", operation, type(exc).__name__)
    return ExecutionError(
        operation=operation,
        detail="Statement execution failed.",
        cause=exc,
    )


class SqlConnection:
    """Blocking connection handle over a SQLAlchemy :class:`~sqlalchemy.engine.Engine`.

    Connections open in ``AUTOCOMMIT`` isolation by default so every
    statement commits on its own; pass ``isolation_level=None`` to keep the
    engine's default.
    """

    def __init__(self, engine: Engine, *, isolation_level: str | None = DEFAULT_ISOLATION_LEVEL) -> None:
        self._engine = engine
        self._isolation_level = isolation_level
        self._raw: Connection | None = None
        self._state = ConnectionState.CLOSED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def engine(self) -> Engine:
        return self._engine

    def open(self) -> None:
        if self._state is ConnectionState.OPEN:
            return
        self._state = ConnectionState.CONNECTING
        try:
            raw = self._engine.connect()
            if self._isolation_level is not None:
                raw.execution_options(isolation_level=self._isolation_level)
        except (SQLAlchemyError, OSError) as exc:
            self._state = ConnectionState.CLOSED
            raise _connect_failed(exc) from exc
        self._raw = raw
        self._state = ConnectionState.OPEN
        logger.debug("Opened connection on %s", self._engine.dialect.name)

    def close(self) -> None:
        raw, self._raw = self._raw, None
        self._state = ConnectionState.CLOSED
        if raw is not None:
            raw.close()
            logger.debug("Closed connection on %s", self._engine.dialect.name)

    def query(self, sql: str, param: Any = None, *, into: type[Any] | None = None) -> list[Any]:
        return self._run("query", sql, param, _rows(into))

    def query_scalars(self, sql: str, param: Any = None) -> list[Any]:
        return self._run("query_scalars", sql, param, _scalars)

    def execute(self, sql: str, param: Any = None) -> int:
        return self._run("execute", sql, param, _rowcount)

    def _run(self, operation: str, sql: str, param: Any, fetch: Callable[[CursorResult[Any]], R]) -> R:
        if self._state is not ConnectionState.OPEN or self._raw is None:
            raise _not_open(operation)
        try:
            result = self._raw.execute(sa.text(sql), bind_params(param))
            return fetch(result)
        except SQLAlchemyError as exc:
            raise _execution_failed(operation, exc) from exc


class AsyncSqlConnection:
    """Asyncio connection handle over a SQLAlchemy :class:`~sqlalchemy.ext.asyncio.AsyncEngine`.

    Opening and statement execution are serialized on one lock, so tasks that
    share the handle wait for an in-flight open instead of seeing it half-open.
    """

    def __init__(
        self, engine: AsyncEngine, *, isolation_level: str | None = DEFAULT_ISOLATION_LEVEL
    ) -> None:
        self._engine = engine
        self._isolation_level = isolation_level
        self._raw: AsyncConnection | None = None
        self._state = ConnectionState.CLOSED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def open(self) -> None:
        async with self._lock:
            if self._state is ConnectionState.OPEN:
                return
            self._state = ConnectionState.CONNECTING
            try:
                raw = await self._engine.connect()
                if self._isolation_level is not None:
                    await raw.execution_options(isolation_level=self._isolation_level)
            except (SQLAlchemyError, OSError) as exc:
                self._state = ConnectionState.CLOSED
                raise _connect_failed(exc) from exc
            self._raw = raw
            self._state = ConnectionState.OPEN
        logger.debug("Opened async connection on %s", self._engine.dialect.name)

    async def close(self) -> None:
        raw, self._raw = self._raw, None
        self._state = ConnectionState.CLOSED
        if raw is not None:
            await raw.close()
            logger.debug("Closed async connection on %s", self._engine.dialect.name)

    async def query(self, sql: str, param: Any = None, *, into: type[Any] | None = None) -> list[Any]:
        return await self._run("query", sql, param, _rows(into))

    async def query_scalars(self, sql: str, param: Any = None) -> list[Any]:
        return await self._run("query_scalars", sql, param, _scalars)

    async def execute(self, sql: str, param: Any = None) -> int:
        return await self._run("execute", sql, param, _rowcount)

    async def _run(
        self, operation: str, sql: str, param: Any, fetch: Callable[[CursorResult[Any]], R]
    ) -> R:
        async with self._lock:
            if self._state is not ConnectionState.OPEN or self._raw is None:
                raise _not_open(operation)
            try:
                result = await self._raw.execute(sa.text(sql), bind_params(param))
                return fetch(result)
            except SQLAlchemyError as exc:
                raise _execution_failed(operation, exc) from exc
