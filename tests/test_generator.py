"""Tests for TableSqlGenerator SQL text generation."""

import dataclasses

import pytest
import sqlalchemy as sa
from entities import Log, User
from ninja_datarepo.exceptions import GenerationError
from ninja_datarepo.generator import TableSqlGenerator, load_dialect
from ninja_datarepo.protocols import SqlGenerator
from ninja_datarepo.schema import EntitySchema, FieldSchema, FieldType


def test_satisfies_protocol(user_generator):
    assert isinstance(user_generator, SqlGenerator)


def test_exposes_schema_details(user_generator, users_schema):
    assert user_generator.entity_type is User
    assert user_generator.schema is users_schema
    assert user_generator.dialect_name == "sqlite"
    assert user_generator.is_identity is True
    assert user_generator.identity_field.name == "id"
    assert isinstance(user_generator.table, sa.Table)


def test_select_all(user_generator):
    sql = user_generator.get_select_all()
    assert sql.startswith("SELECT")
    assert "FROM users" in sql
    assert "WHERE" not in sql
    for column in ("users.id", "users.name", "users.email"):
        assert column in sql


def test_fixed_statements_are_stable(user_generator):
    assert user_generator.get_insert() is user_generator.get_insert()
    assert user_generator.get_delete() == user_generator.get_delete()


def test_select_with_mapping_filter(user_generator):
    sql = user_generator.get_select({"email": "a@x.com"})
    assert "FROM users" in sql
    assert "WHERE users.email = :email" in sql


def test_select_with_object_filter(user_generator):
    @dataclasses.dataclass
    class ByNameAndEmail:
        name: str
        email: str

    sql = user_generator.get_select(ByNameAndEmail("Ann", "a@x.com"))
    assert "users.name = :name" in sql
    assert "users.email = :email" in sql
    assert " AND " in sql


def test_empty_filter_selects_everything(user_generator):
    assert "WHERE" not in user_generator.get_select({})
    assert "WHERE" not in user_generator.get_select(None)


def test_unknown_filter_field(user_generator):
    with pytest.raises(GenerationError, match="Unknown filter field") as exc_info:
        user_generator.get_select({"nickname": "ann"})
    assert exc_info.value.entity_name == "User"
    assert exc_info.value.operation == "get_select"


def test_unusable_filter_object(user_generator):
    with pytest.raises(GenerationError, match="Unusable filter"):
        user_generator.get_select(5)


def test_identity_insert_skips_identity_and_returns_it(user_generator):
    sql = user_generator.get_insert()
    assert sql.startswith("INSERT INTO users")
    assert ":name" in sql
    assert ":email" in sql
    assert ":id" not in sql
    assert "RETURNING" in sql


def test_plain_insert_binds_every_field(log_generator):
    sql = log_generator.get_insert()
    assert sql.startswith("INSERT INTO logs")
    for name in (":code", ":source", ":message"):
        assert name in sql
    assert "RETURNING" not in sql


def test_update_sets_non_key_columns_by_key(user_generator):
    sql = user_generator.get_update()
    assert sql.startswith("UPDATE users SET")
    assert "name=:name" in sql
    assert "email=:email" in sql
    assert "WHERE users.id = :id" in sql
    assert "id=:id" not in sql.split("WHERE")[0]


def test_composite_key_delete(log_generator):
    sql = log_generator.get_delete()
    assert sql.startswith("DELETE FROM logs")
    assert "logs.code = :code" in sql
    assert "logs.source = :source" in sql


def test_update_without_non_key_columns():
    schema = EntitySchema(
        name="Tag",
        fields=[FieldSchema(name="label", field_type=FieldType.STRING, primary_key=True)],
    )
    generator = TableSqlGenerator(schema, dict)

    with pytest.raises(GenerationError, match="nothing to update"):
        generator.get_update()
    assert "DELETE FROM tag" in generator.get_delete()


def test_postgresql_dialect(users_schema):
    generator = TableSqlGenerator(users_schema, User, dialect="postgresql+asyncpg")
    assert generator.dialect_name == "postgresql"
    assert "RETURNING users.id" in generator.get_insert()


def test_identity_insert_needs_returning_support(users_schema, logs_schema):
    with pytest.raises(GenerationError, match="cannot return generated keys"):
        TableSqlGenerator(users_schema, User, dialect="mysql")
    assert "INSERT INTO logs" in TableSqlGenerator(logs_schema, Log, dialect="mysql").get_insert()


def test_unknown_dialect(users_schema):
    with pytest.raises(GenerationError, match="Unknown SQL dialect"):
        TableSqlGenerator(users_schema, User, dialect="nosuchdb")


def test_load_dialect_uses_named_paramstyle():
    assert load_dialect("sqlite").paramstyle == "named"


def test_create_table_is_idempotent(tmp_path, log_generator):
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'ddl.db'}")
    try:
        log_generator.create_table(engine)
        log_generator.create_table(engine)
        assert sa.inspect(engine).has_table("logs")
    finally:
        engine.dispose()


def test_generator_for_dataclass_entity(log_generator):
    assert log_generator.entity_type is Log
    assert log_generator.is_identity is False
    assert log_generator.identity_field is None
