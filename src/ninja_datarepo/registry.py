"""Repository wiring: maps entity schemas to repositories on configured connections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ninja_datarepo.connections import ConnectionManager
from ninja_datarepo.generator import TableSqlGenerator
from ninja_datarepo.repository import AsyncDataRepository, DataRepository
from ninja_datarepo.schema import EntitySchema


@dataclass(frozen=True)
class _Registration:
    schema: EntitySchema
    entity_type: type[Any]
    repository_cls: type[DataRepository[Any]]
    async_repository_cls: type[AsyncDataRepository[Any]]


class RepositoryRegistry:
    """Builds repositories for registered entities.

    Each call to :meth:`open` / :meth:`open_async` returns a repository that
    owns a fresh connection handle from the :class:`ConnectionManager`; the
    caller is responsible for releasing it (``with`` / ``async with``).
    SQL generators are built once per entity and dialect and reused.
    """

    def __init__(self, connection_manager: ConnectionManager) -> None:
        self._connection_manager = connection_manager
        self._registrations: dict[str, _Registration] = {}
        self._generators: dict[tuple[str, str], TableSqlGenerator[Any]] = {}

    def register(
        self,
        schema: EntitySchema,
        entity_type: type[Any],
        *,
        repository_cls: type[DataRepository[Any]] = DataRepository,
        async_repository_cls: type[AsyncDataRepository[Any]] = AsyncDataRepository,
    ) -> None:
        """Register an entity, optionally with custom repository subclasses."""
        self._registrations[schema.name] = _Registration(
            schema=schema,
            entity_type=entity_type,
            repository_cls=repository_cls,
            async_repository_cls=async_repository_cls,
        )

    def open(self, entity_name: str, profile_name: str = "default") -> DataRepository[Any]:
        """Return a blocking repository for *entity_name* on *profile_name*."""
        registration = self._get(entity_name)
        generator = self._generator(registration, profile_name)
        connection = self._connection_manager.connect(profile_name)
        return registration.repository_cls(connection, generator)

    def open_async(self, entity_name: str, profile_name: str = "default") -> AsyncDataRepository[Any]:
        """Return an asyncio repository for *entity_name* on *profile_name*."""
        registration = self._get(entity_name)
        generator = self._generator(registration, profile_name)
        connection = self._connection_manager.connect_async(profile_name)
        return registration.async_repository_cls(connection, generator)

    def _get(self, entity_name: str) -> _Registration:
        if entity_name not in self._registrations:
            raise KeyError(
                f"Entity '{entity_name}' is not registered. Available: {list(self._registrations.keys())}"
            )
        return self._registrations[entity_name]

    def _generator(self, registration: _Registration, profile_name: str) -> TableSqlGenerator[Any]:
        dialect = self._connection_manager.get_profile(profile_name).dialect
        key = (registration.schema.name, dialect)
        if key not in self._generators:
            self._generators[key] = TableSqlGenerator(registration.schema, registration.entity_type, dialect=dialect)
        return self._generators[key]
