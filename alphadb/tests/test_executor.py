#!/usr/bin/env python3
"""
End-to-end query tests through Database.execute

Run: python -m pytest alphadb/tests/test_executor.py -v
"""

import os
import shutil
import tempfile
import unittest

from alphadb import Database, DatabaseRegistry, QueryResult, execute_query
from alphadb.core.errors import NotFound


class QueryTestCase(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.db = Database('shop', self.test_dir)

    def tearDown(self):
        self.db.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def run_ok(self, sql):
        result = self.db.execute(sql)
        self.assertTrue(result.success, result.error)
        return result


class TestQueryScenario(QueryTestCase):
    """Insert, filter, order, limit, delete and re-insert"""

    def test_scenario(self):
        self.run_ok("CREATE TABLE t (id number PRIMARY KEY AUTO_INCREMENT, "
                    "name string NOT NULL, age number DEFAULT 18)")

        result = self.run_ok("INSERT INTO t (name) VALUES ('Ann')")
        self.assertEqual(result.data, {'id': 1, 'name': 'Ann', 'age': 18})
        self.assertEqual(result.message, "Record inserted with ID: 1")

        self.run_ok("INSERT INTO t (name, age) VALUES ('Bo', 30)")
        result = self.run_ok("SELECT * FROM t WHERE age > 18 ORDER BY age DESC LIMIT 1")
        self.assertEqual(result.data, [{'id': 2, 'name': 'Bo', 'age': 30}])
        self.assertEqual(result.message, "Found 1 record(s)")

        result = self.run_ok("DELETE FROM t WHERE id = 1")
        self.assertEqual(result.message, "Deleted 1 record(s)")
        result = self.run_ok("SELECT * FROM t")
        self.assertEqual(result.data, [{'id': 2, 'name': 'Bo', 'age': 30}])

        result = self.run_ok("INSERT INTO t (name) VALUES ('Cy')")
        self.assertEqual(result.data['id'], 3)


class TestSelect(QueryTestCase):

    def setUp(self):
        super().setUp()
        self.run_ok("CREATE TABLE people (id number PRIMARY KEY AUTO_INCREMENT, "
                    "name string NOT NULL, city string, age number)")
        for name, city, age in (('Cy', 'Oslo', 41), ('Ann', 'Lima', 29), ('Bo', 'Oslo', 35)):
            self.run_ok(f"INSERT INTO people (name, city, age) VALUES ('{name}', '{city}', {age})")

    def names(self, sql):
        return [row['name'] for row in self.run_ok(sql).data]

    def test_projection(self):
        result = self.run_ok("SELECT name, age FROM people WHERE city = 'Lima'")
        self.assertEqual(result.data, [{'name': 'Ann', 'age': 29}])

    def test_projection_skips_missing_columns(self):
        self.run_ok("INSERT INTO people (name) VALUES ('Di')")
        result = self.run_ok("SELECT name, city FROM people WHERE name = 'Di'")
        self.assertEqual(result.data, [{'name': 'Di'}])

    def test_order_by(self):
        self.assertEqual(self.names("SELECT * FROM people ORDER BY name"), ['Ann', 'Bo', 'Cy'])
        self.assertEqual(self.names("SELECT * FROM people ORDER BY age DESC"), ['Cy', 'Bo', 'Ann'])

    def test_order_by_is_stable(self):
        self.assertEqual(self.names("SELECT * FROM people ORDER BY city"), ['Ann', 'Cy', 'Bo'])
        self.assertEqual(self.names("SELECT * FROM people ORDER BY city DESC"), ['Cy', 'Bo', 'Ann'])

    def test_limit(self):
        self.assertEqual(self.names("SELECT * FROM people LIMIT 2"), ['Cy', 'Ann'])
        result = self.run_ok("SELECT * FROM people LIMIT 0")
        self.assertEqual(result.data, [])
        self.assertEqual(result.message, "Found 0 record(s)")

    def test_where_operators(self):
        self.assertEqual(self.names("SELECT * FROM people WHERE age >= 35"), ['Cy', 'Bo'])
        self.assertEqual(self.names("SELECT * FROM people WHERE city != 'Oslo'"), ['Ann'])
        self.assertEqual(self.names("SELECT * FROM people WHERE name LIKE '_o'"), ['Bo'])

    def test_order_by_unselected_column_keeps_scan_order(self):
        result = self.run_ok("SELECT name FROM people ORDER BY age")
        self.assertEqual(result.data, [{'name': 'Cy'}, {'name': 'Ann'}, {'name': 'Bo'}])


class TestStatements(QueryTestCase):

    def setUp(self):
        super().setUp()
        self.run_ok("CREATE TABLE items (sku string PRIMARY KEY, qty number DEFAULT 0, "
                    "active boolean DEFAULT TRUE)")
        self.run_ok("INSERT INTO items (sku, qty) VALUES ('A-1', 5)")
        self.run_ok("INSERT INTO items (sku) VALUES ('B-2')")

    def test_insert_message_uses_primary_key(self):
        result = self.run_ok("INSERT INTO items (sku) VALUES ('C-3')")
        self.assertEqual(result.message, "Record inserted with ID: C-3")
        self.assertEqual(result.data, {'sku': 'C-3', 'qty': 0, 'active': True})

    def test_insert_without_primary_key(self):
        self.run_ok("CREATE TABLE notes (body string)")
        self.assertEqual(self.run_ok("INSERT INTO notes (body) VALUES ('hi')").message,
                         "Record inserted")

    def test_update(self):
        result = self.run_ok("UPDATE items SET qty = 9, active = FALSE WHERE sku = 'B-2'")
        self.assertEqual(result.message, "Updated 1 record(s)")
        row = self.run_ok("SELECT * FROM items WHERE sku = 'B-2'").data[0]
        self.assertEqual(row, {'sku': 'B-2', 'qty': 9, 'active': False})

    def test_update_all(self):
        self.assertEqual(self.run_ok("UPDATE items SET qty = 1").message, "Updated 2 record(s)")

    def test_update_primary_key_conflict(self):
        result = self.db.execute("UPDATE items SET sku = 'A-1' WHERE sku = 'B-2'")
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Duplicate primary key value")

    def test_update_set_null(self):
        result = self.db.execute("UPDATE items SET sku = NULL WHERE sku = 'A-1'")
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Required column 'sku' is missing")

        self.run_ok("UPDATE items SET qty = NULL WHERE sku = 'A-1'")
        self.assertEqual(self.run_ok("SELECT * FROM items WHERE sku = 'A-1'").data,
                         [{'sku': 'A-1', 'active': True}])

    def test_create_index(self):
        result = self.run_ok("CREATE INDEX idx_qty ON items (qty)")
        self.assertEqual(result.message, "Index created on items.qty")
        self.assertIn('qty', self.db.describe('items')['indexes'])
        self.assertEqual([r['sku'] for r in self.run_ok("SELECT * FROM items WHERE qty = 0").data],
                         ['B-2'])

    def test_drop_table(self):
        self.assertEqual(self.run_ok("DROP TABLE items").message, "Table items dropped")
        self.assertEqual(self.db.list_tables(), [])

    def test_use_is_acknowledged(self):
        self.assertEqual(self.run_ok("USE warehouse").message, "Using database warehouse")


class TestErrors(QueryTestCase):

    def assertFails(self, sql, error=None):
        result = self.db.execute(sql)
        self.assertFalse(result.success)
        self.assertIsNone(result.data)
        if error is not None:
            self.assertEqual(result.error, error)
        return result

    def test_unknown_table(self):
        self.assertFails("SELECT * FROM ghosts", "Table 'ghosts' does not exist")

    def test_unknown_command(self):
        self.assertFails("TRUNCATE t", "Unknown command: TRUNCATE")

    def test_parse_error(self):
        self.assertFails("SELECT * FROM")

    def test_schema_violation(self):
        self.db.execute("CREATE TABLE t (a string NOT NULL, b number)")
        self.assertFails("INSERT INTO t (b) VALUES ('x')",
                         "Required column 'a' is missing, Invalid type for 'b': expected number")

    def test_bad_column_type(self):
        self.assertFails("CREATE TABLE t (a blob)", "Unknown column type: blob")
        self.assertEqual(self.db.list_tables(), [])

    def test_envelope(self):
        result = self.assertFails("DROP TABLE nope")
        self.assertEqual(result.to_dict(),
                         {'success': False, 'error': "Table 'nope' does not exist"})


class TestEntryPoints(QueryTestCase):

    def test_result_to_dict_omits_unset_fields(self):
        self.assertEqual(QueryResult(success=True, message='ok').to_dict(),
                         {'success': True, 'message': 'ok'})
        self.assertEqual(QueryResult(success=True, data=[]).to_dict(),
                         {'success': True, 'data': []})

    def test_execute_query(self):
        result = execute_query("CREATE TABLE t (a string)", self.db)
        self.assertTrue(result.success)
        self.assertTrue(self.db.has_table('t'))

    def test_execute_many(self):
        results = self.db.execute_many("""
            CREATE TABLE t (a string);
            INSERT INTO t (a) VALUES ('x;y');
            SELECT * FROM t;
        """)
        self.assertEqual(len(results), 3)
        self.assertEqual(results[2].data, [{'a': 'x;y'}])

    def test_state_survives_reopen(self):
        self.db.execute_many("CREATE TABLE t (id number PRIMARY KEY AUTO_INCREMENT, a string);"
                             "INSERT INTO t (a) VALUES ('x');"
                             "INSERT INTO t (a) VALUES ('y')")
        self.db.close()
        self.db = Database('shop', self.test_dir)
        self.assertEqual(self.run_ok("SELECT * FROM t ORDER BY id DESC").data,
                         [{'id': 2, 'a': 'y'}, {'id': 1, 'a': 'x'}])


class TestRegistry(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.registry = DatabaseRegistry(self.test_dir)

    def tearDown(self):
        self.registry.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_get_opens_once(self):
        db = self.registry.get('alpha')
        self.assertIs(self.registry.get('alpha'), db)
        self.assertTrue(os.path.isdir(os.path.join(self.test_dir, 'alpha')))
        self.assertEqual(self.registry.loaded, ['alpha'])

    def test_get_without_create(self):
        with self.assertRaises(NotFound):
            self.registry.get('missing', create=False)
        self.assertFalse(self.registry.exists('missing'))

    def test_names_include_disk(self):
        os.makedirs(os.path.join(self.test_dir, 'beta'))
        self.registry.get('alpha')
        self.assertEqual(self.registry.names(), ['alpha', 'beta'])

    def test_reload(self):
        self.registry.get('alpha').execute("CREATE TABLE t (a string)")
        os.makedirs(os.path.join(self.test_dir, 'beta'))
        self.assertEqual(self.registry.reload(), ['alpha', 'beta'])
        self.assertEqual(self.registry.get('alpha').list_tables(), ['t'])

    def test_reload_skips_invalid_directories(self):
        os.makedirs(os.path.join(self.test_dir, 'not a name'))
        with self.assertLogs('alphadb.core.registry', level='WARNING'):
            self.assertEqual(self.registry.reload(), [])


if __name__ == '__main__':
    unittest.main()
