"""Shared fixtures for ninja-datarepo tests."""

from __future__ import annotations

import pytest
import sqlalchemy as sa
from entities import Log, User
from ninja_datarepo.generator import TableSqlGenerator
from ninja_datarepo.schema import EntitySchema, FieldSchema, FieldType
from sqlalchemy.ext.asyncio import create_async_engine


@pytest.fixture
def users_schema() -> EntitySchema:
    return EntitySchema(
        name="User",
        table_name="users",
        fields=[
            FieldSchema(name="id", field_type=FieldType.INTEGER, primary_key=True, identity=True),
            FieldSchema(name="name", field_type=FieldType.STRING),
            FieldSchema(name="email", field_type=FieldType.STRING),
        ],
    )


@pytest.fixture
def logs_schema() -> EntitySchema:
    return EntitySchema(
        name="Log",
        table_name="logs",
        fields=[
            FieldSchema(name="code", field_type=FieldType.STRING, primary_key=True),
            FieldSchema(name="source", field_type=FieldType.STRING, primary_key=True),
            FieldSchema(name="message", field_type=FieldType.TEXT, nullable=True),
        ],
    )


@pytest.fixture
def user_generator(users_schema: EntitySchema) -> TableSqlGenerator[User]:
    return TableSqlGenerator(users_schema, User)


@pytest.fixture
def log_generator(logs_schema: EntitySchema) -> TableSqlGenerator[Log]:
    return TableSqlGenerator(logs_schema, Log)


@pytest.fixture
def engine(tmp_path, user_generator, log_generator):
    """A file-backed SQLite engine with the users and logs tables created."""
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'repo.db'}")
    user_generator.create_table(engine)
    log_generator.create_table(engine)
    yield engine
    engine.dispose()


@pytest.fixture
async def async_engine(tmp_path, user_generator, log_generator):
    """An aiosqlite engine with the users and logs tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'repo_async.db'}")
    await user_generator.create_table_async(engine)
    await log_generator.create_table_async(engine)
    yield engine
    await engine.dispose()
