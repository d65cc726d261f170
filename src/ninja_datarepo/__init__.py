"""Ninja DataRepo: generic SQL repositories with blocking and asyncio forms."""

from ninja_datarepo.access import AsyncSqlConnection, SqlConnection
from ninja_datarepo.connections import ConnectionManager, ConnectionProfile, InvalidConnectionURL
from ninja_datarepo.exceptions import (
    CardinalityError,
    ConnectivityError,
    DataRepositoryError,
    ExecutionError,
    GenerationError,
    IdentityConversionError,
)
from ninja_datarepo.generator import TableSqlGenerator
from ninja_datarepo.holder import AsyncConnectionHolder, ConnectionHolder
from ninja_datarepo.protocols import (
    AsyncDbConnection,
    AsyncRepository,
    ConnectionState,
    DbConnection,
    Repository,
    SqlGenerator,
)
from ninja_datarepo.registry import RepositoryRegistry
from ninja_datarepo.repository import AsyncDataRepository, DataRepository
from ninja_datarepo.schema import EntitySchema, FieldSchema, FieldType

__all__ = [
    "AsyncConnectionHolder",
    "AsyncDataRepository",
    "AsyncDbConnection",
    "AsyncRepository",
    "AsyncSqlConnection",
    "CardinalityError",
    "ConnectionHolder",
    "ConnectionManager",
    "ConnectionProfile",
    "ConnectionState",
    "ConnectivityError",
    "DataRepository",
    "DataRepositoryError",
    "DbConnection",
    "EntitySchema",
    "ExecutionError",
    "FieldSchema",
    "FieldType",
    "GenerationError",
    "IdentityConversionError",
    "InvalidConnectionURL",
    "Repository",
    "RepositoryRegistry",
    "SqlConnection",
    "SqlGenerator",
    "TableSqlGenerator",
]
