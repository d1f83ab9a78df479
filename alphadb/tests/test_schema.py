#!/usr/bin/env python3
"""
Tests for column types and schema validation

Run: python -m pytest alphadb/tests/test_schema.py -v
"""

import unittest
from datetime import date, datetime

from alphadb.core.errors import SchemaViolation
from alphadb.core.schema import ColumnDefinition, Schema
from alphadb.core.types import ColumnKind, parse_date, parse_kind


class TestColumnKinds(unittest.TestCase):
    """Type names, strict checks and coercion"""

    def test_parse_kind_aliases(self):
        self.assertIs(parse_kind('INTEGER'), ColumnKind.NUMBER)
        self.assertIs(parse_kind('varchar'), ColumnKind.STRING)
        self.assertIs(parse_kind('Bool'), ColumnKind.BOOLEAN)
        self.assertIs(parse_kind('timestamp'), ColumnKind.DATE)
        self.assertIs(parse_kind('json'), ColumnKind.OBJECT)
        self.assertIs(parse_kind('list'), ColumnKind.ARRAY)

    def test_unknown_type(self):
        with self.assertRaises(SchemaViolation) as ctx:
            parse_kind('blob')
        self.assertEqual(str(ctx.exception), "Unknown column type: blob")

    def test_number_rejects_booleans_and_nan(self):
        self.assertTrue(ColumnKind.NUMBER.accepts(3))
        self.assertTrue(ColumnKind.NUMBER.accepts(3.5))
        self.assertFalse(ColumnKind.NUMBER.accepts(True))
        self.assertFalse(ColumnKind.NUMBER.accepts(float('nan')))
        self.assertFalse(ColumnKind.NUMBER.accepts('3'))

    def test_strict_checks(self):
        self.assertTrue(ColumnKind.STRING.accepts('x'))
        self.assertFalse(ColumnKind.STRING.accepts(1))
        self.assertFalse(ColumnKind.BOOLEAN.accepts(1))
        self.assertTrue(ColumnKind.OBJECT.accepts({'a': 1}))
        self.assertFalse(ColumnKind.OBJECT.accepts([1]))
        self.assertTrue(ColumnKind.ARRAY.accepts((1, 2)))
        self.assertEqual(ColumnKind.ARRAY.coerce((1, 2)), [1, 2])

    def test_date_coercion(self):
        self.assertEqual(ColumnKind.DATE.coerce('2024-01-05'), date(2024, 1, 5))
        self.assertEqual(ColumnKind.DATE.coerce('2024-01-05 10:30:00'),
                         datetime(2024, 1, 5, 10, 30))
        self.assertFalse(ColumnKind.DATE.accepts('yesterday'))
        with self.assertRaises(ValueError):
            parse_date(42)

    def test_lenient_defaults(self):
        self.assertEqual(ColumnKind.NUMBER.coerce_default('18'), 18)
        self.assertEqual(ColumnKind.NUMBER.coerce_default('2.5'), 2.5)
        self.assertIs(ColumnKind.BOOLEAN.coerce_default('true'), True)
        self.assertEqual(ColumnKind.STRING.coerce_default(7), '7')
        with self.assertRaises(ValueError):
            ColumnKind.NUMBER.coerce_default('abc')

    def test_structured_kinds_not_indexable(self):
        self.assertFalse(ColumnKind.OBJECT.indexable)
        self.assertFalse(ColumnKind.ARRAY.indexable)
        self.assertTrue(ColumnKind.DATE.indexable)


class TestSchema(unittest.TestCase):
    """Schema normalization and record validation"""

    def setUp(self):
        self.schema = Schema.normalize({
            'id': {'type': 'number', 'primaryKey': True, 'autoIncrement': True},
            'name': {'type': 'string', 'required': True},
            'age': {'type': 'number', 'defaultValue': '18'},
            'code': {'type': 'string', 'size': 3},
            'email': {'type': 'string', 'unique': True},
        })

    def test_primary_key_implies_required_and_unique(self):
        column = self.schema.get_column('id')
        self.assertTrue(column.required)
        self.assertTrue(column.unique)
        self.assertEqual(self.schema.primary_key, 'id')
        self.assertEqual(self.schema.unique_columns, ['id', 'email'])
        self.assertEqual(self.schema.auto_increment_columns, ['id'])

    def test_default_is_coerced_at_creation(self):
        self.assertEqual(self.schema.get_column('age').default, 18)

    def test_validate_applies_defaults_and_drops_unknown_keys(self):
        record = self.schema.validate({'name': 'Ann', 'extra': True})
        self.assertEqual(record, {'name': 'Ann', 'age': 18})

    def test_null_counts_as_absent(self):
        record = self.schema.validate({'name': 'Ann', 'email': None})
        self.assertNotIn('email', record)

    def test_updating_skips_defaults_and_requires_keys(self):
        record = self.schema.validate({'id': 4, 'name': 'Ann'}, updating=True)
        self.assertEqual(record, {'id': 4, 'name': 'Ann'})

        with self.assertRaises(SchemaViolation) as ctx:
            self.schema.validate({'name': 'Ann'}, updating=True)
        self.assertEqual(ctx.exception.errors, ["Required column 'id' is missing"])

    def test_errors_are_aggregated_in_column_order(self):
        with self.assertRaises(SchemaViolation) as ctx:
            self.schema.validate({'age': 'old', 'code': 'ABCD'})
        self.assertEqual(ctx.exception.errors, [
            "Required column 'name' is missing",
            "Invalid type for 'age': expected number",
            "Value for 'code' exceeds 3 characters",
        ])
        self.assertEqual(str(ctx.exception), ", ".join(ctx.exception.errors))

    def test_duplicate_check_for_unique_columns(self):
        def is_duplicate(column, value):
            return column == 'email' and value == 'taken@example.com'

        with self.assertRaises(SchemaViolation) as ctx:
            self.schema.validate({'name': 'Bo', 'email': 'taken@example.com'}, is_duplicate)
        self.assertEqual(ctx.exception.errors,
                         ["Duplicate value for unique column 'email'"])

    def test_second_primary_key_rejected(self):
        with self.assertRaises(SchemaViolation) as ctx:
            Schema.normalize({
                'a': {'type': 'number', 'primaryKey': True},
                'b': {'type': 'number', 'primaryKey': True},
            })
        self.assertIn("Table already has a primary key", str(ctx.exception))

    def test_empty_schema_rejected(self):
        with self.assertRaises(SchemaViolation):
            Schema.normalize({})

    def test_invalid_column_definitions_are_collected(self):
        with self.assertRaises(SchemaViolation) as ctx:
            Schema.normalize({
                'a': {'type': 'blob'},
                'b': {'type': 'number', 'defaultValue': 'abc'},
                'c': {'type': 'object', 'unique': True},
                'd': {'type': 'string', 'autoIncrement': True},
            })
        self.assertEqual(ctx.exception.errors, [
            "Unknown column type: blob",
            "Invalid default for 'b': 'abc' is not a number",
            "Column 'c' of type object cannot be unique",
            "AUTO_INCREMENT column 'd' must be a number",
        ])

    def test_canonical_dict_round_trip(self):
        data = self.schema.to_dict()
        self.assertEqual(data['id'], {
            'type': 'number', 'required': True, 'primaryKey': True, 'unique': True,
            'autoIncrement': True, 'foreignKey': None,
        })
        self.assertEqual(data['age']['defaultValue'], 18)
        self.assertEqual(data['code']['size'], 3)
        self.assertEqual(Schema.from_dict(data).to_dict(), data)

    def test_column_definition_defaults(self):
        column = ColumnDefinition(name='note')
        self.assertIs(column.kind, ColumnKind.STRING)
        self.assertFalse(column.has_default)


if __name__ == '__main__':
    unittest.main()
