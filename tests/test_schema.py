"""Tests for entity schemas and identity key conversion."""

from decimal import Decimal

import pytest
from ninja_datarepo.exceptions import IdentityConversionError
from ninja_datarepo.schema import EntitySchema, FieldSchema, FieldType, convert_identity
from pydantic import ValidationError


def _field(name: str = "id", field_type: FieldType = FieldType.INTEGER, **kwargs) -> FieldSchema:
    return FieldSchema(name=name, field_type=field_type, **kwargs)


class TestFieldSchema:
    def test_python_type(self):
        assert _field(field_type=FieldType.DECIMAL).python_type is Decimal
        assert _field(field_type=FieldType.STRING).python_type is str

    def test_invalid_name_rejected(self):
        with pytest.raises(ValidationError, match="not a valid identifier"):
            _field(name="1bad")

    def test_keyword_name_rejected(self):
        with pytest.raises(ValidationError, match="reserved keyword"):
            _field(name="class")

    def test_nullable_primary_key_rejected(self):
        with pytest.raises(ValidationError, match="must not be nullable"):
            _field(primary_key=True, nullable=True)

    def test_identity_requires_primary_key(self):
        with pytest.raises(ValidationError, match="must be a primary key"):
            _field(identity=True)

    def test_identity_requires_numeric_type(self):
        with pytest.raises(ValidationError, match="integer or decimal"):
            _field(field_type=FieldType.STRING, primary_key=True, identity=True)

    def test_frozen(self):
        field = _field()
        with pytest.raises(ValidationError):
            field.name = "other"


class TestEntitySchema:
    def test_table_defaults_to_lowercase_name(self, users_schema):
        assert EntitySchema(name="Order", fields=[_field(primary_key=True)]).table == "order"
        assert users_schema.table == "users"

    def test_key_and_identity_fields(self, users_schema, logs_schema):
        assert [f.name for f in users_schema.key_fields] == ["id"]
        assert users_schema.is_identity
        assert users_schema.identity_field.name == "id"

        assert [f.name for f in logs_schema.key_fields] == ["code", "source"]
        assert not logs_schema.is_identity
        assert logs_schema.identity_field is None

    def test_field_names_keep_declaration_order(self, users_schema):
        assert users_schema.field_names() == ["id", "name", "email"]

    def test_primary_key_required(self):
        with pytest.raises(ValidationError, match="at least one primary key"):
            EntitySchema(name="Note", fields=[_field(name="body", field_type=FieldType.TEXT)])

    def test_duplicate_fields_rejected(self):
        with pytest.raises(ValidationError, match="duplicate field name"):
            EntitySchema(name="Note", fields=[_field(primary_key=True), _field()])

    def test_multiple_identities_rejected(self):
        with pytest.raises(ValidationError, match="multiple identity fields"):
            EntitySchema(
                name="Note",
                fields=[
                    _field(name="a", primary_key=True, identity=True),
                    _field(name="b", primary_key=True, identity=True),
                ],
            )


class TestConvertIdentity:
    @pytest.mark.parametrize(
        ("field_type", "value", "expected"),
        [
            (FieldType.INTEGER, 7, 7),
            (FieldType.INTEGER, Decimal("7"), 7),
            (FieldType.INTEGER, 7.0, 7),
            (FieldType.SMALL_INTEGER, 2**15 - 1, 2**15 - 1),
            (FieldType.BIG_INTEGER, 2**40, 2**40),
        ],
    )
    def test_integer_targets(self, field_type, value, expected):
        result = convert_identity(value, _field(field_type=field_type, primary_key=True, identity=True))
        assert result == expected
        assert type(result) is int

    def test_decimal_target(self):
        field = _field(field_type=FieldType.DECIMAL, primary_key=True, identity=True)
        assert convert_identity(12, field) == Decimal(12)
        assert isinstance(convert_identity(12, field), Decimal)

    @pytest.mark.parametrize(
        ("field_type", "value"),
        [
            (FieldType.INTEGER, 2**31),
            (FieldType.SMALL_INTEGER, 2**15),
            (FieldType.BIG_INTEGER, 2**63),
        ],
    )
    def test_overflow(self, field_type, value):
        field = _field(field_type=field_type, primary_key=True, identity=True)
        with pytest.raises(IdentityConversionError, match="overflows"):
            convert_identity(value, field)

    @pytest.mark.parametrize("value", ["7", None, True, b"\x07"])
    def test_non_numeric(self, value):
        with pytest.raises(IdentityConversionError, match="not numeric"):
            convert_identity(value, _field(primary_key=True, identity=True))

    def test_fractional_value(self):
        with pytest.raises(IdentityConversionError, match="not integral"):
            convert_identity(Decimal("1.5"), _field(primary_key=True, identity=True))

    def test_non_finite_value(self):
        with pytest.raises(IdentityConversionError, match="finite"):
            convert_identity(float("inf"), _field(primary_key=True, identity=True))

    def test_non_numeric_target(self):
        with pytest.raises(IdentityConversionError, match="cannot store"):
            convert_identity(1, _field(field_type=FieldType.FLOAT))
