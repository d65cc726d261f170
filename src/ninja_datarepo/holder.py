"""Connection holders: lazily open one connection and close it exactly once."""

from __future__ import annotations

from types import TracebackType
from typing import Generic, TypeVar

from ninja_datarepo.exceptions import ConnectivityError
from ninja_datarepo.protocols import AsyncDbConnection, ConnectionState, DbConnection

C = TypeVar("C", bound=DbConnection)
AC = TypeVar("AC", bound=AsyncDbConnection)

_USABLE = (ConnectionState.OPEN, ConnectionState.CONNECTING)


def _released() -> ConnectivityError:
    return ConnectivityError(operation="connection", detail="Connection holder has been released.")


class ConnectionHolder(Generic[C]):
    """Owns a single blocking connection handle.

    The handle is opened on first access to :attr:`connection` and closed by
    :meth:`release`.  Use the holder as a context manager so the release runs
    on every exit path.  Not safe to share between threads.
    """

    def __init__(self, connection: C) -> None:
        self._connection: C | None = connection
        self._released = False

    @property
    def connection(self) -> C:
        if self._released or self._connection is None:
            raise _released()
        if self._connection.state not in _USABLE:
            self._connection.open()
        return self._connection

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Close the held connection if it is not already closed. Idempotent."""
        if self._released:
            return
        self._released = True
        if self._connection is not None and self._connection.state is not ConnectionState.CLOSED:
            self._connection.close()

    def __enter__(self) -> ConnectionHolder[C]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class AsyncConnectionHolder(Generic[AC]):
    """Asyncio counterpart of :class:`ConnectionHolder`.

    Opening is awaited through :meth:`get_connection`; use ``async with`` to
    guarantee :meth:`release`.
    """

    def __init__(self, connection: AC) -> None:
        self._connection: AC | None = connection
        self._released = False

    async def get_connection(self) -> AC:
        if self._released or self._connection is None:
            raise _released()
        if self._connection.state not in _USABLE:
            await self._connection.open()
        return self._connection

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        """Close the held connection if it is not already closed. Idempotent."""
        if self._released:
            return
        self._released = True
        if self._connection is not None and self._connection.state is not ConnectionState.CLOSED:
            await self._connection.close()

    async def __aenter__(self) -> AsyncConnectionHolder[AC]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.release()
