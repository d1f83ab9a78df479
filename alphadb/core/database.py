"""
Database - The collection catalog for one namespace

A Database owns every collection stored in one directory. It is an explicit
context object: construct it, use it, close it. Nothing is shared between
instances, so several namespaces (or several tests) can live in one process.
"""

import logging
import os
import re
from typing import Any, Dict, List

from ..parser.lexer import split_statements
from ..storage.engine import TableFiles
from .errors import AlphaDBError, NotFound, SchemaViolation
from .executor import QueryExecutor, QueryResult
from .table import Table

logger = logging.getLogger(__name__)

DEFAULT_DATA_ROOT = os.environ.get('ALPHADB_DATA_ROOT', './data')

_NAME_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def check_name(name: str, kind: str = 'table') -> str:
    """Reject names that are not plain identifiers (they become file names)"""
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise SchemaViolation(f"Invalid {kind} name: '{name}'")
    return name


class Database:
    """
    AlphaDB database instance.

    Usage:
        with Database("shop", data_root="./data") as db:
            db.execute("CREATE TABLE users (id number PRIMARY KEY AUTO_INCREMENT, "
                       "name string NOT NULL)")
            db.execute("INSERT INTO users (name) VALUES ('Alice')")
            result = db.execute("SELECT * FROM users")
            print(result.data)
    """

    def __init__(self, name: str, data_root: str = DEFAULT_DATA_ROOT):
        """
        Open (or create) a namespace.

        Args:
            name: Namespace name, also the directory name under data_root
            data_root: Directory that holds one sub-directory per namespace
        """
        self.name = check_name(name, 'database')
        self.data_root = data_root
        self.data_dir = os.path.join(data_root, name)
        os.makedirs(self.data_dir, exist_ok=True)

        self._tables: Dict[str, Table] = {}
        self.closed = False
        self._load_tables()

    def _load_tables(self) -> None:
        """Load every collection that has a schema file"""
        for table_name in TableFiles.table_names(self.data_dir):
            try:
                self._tables[table_name] = Table.load(table_name, self.data_dir)
            except AlphaDBError as e:
                logger.warning("Skipping table %s in %s: %s", table_name, self.name, e)
        logger.info("Opened database %s (%d tables)", self.name, len(self._tables))

    def _check_open(self) -> None:
        if self.closed:
            raise AlphaDBError(f"Database '{self.name}' is closed")

    def create_table(self, name: str, schema: Any) -> Table:
        """
        Create a collection.

        Args:
            name: Table name
            schema: Column-definition mapping, e.g.
                {"id": {"type": "number", "primaryKey": True}}

        Returns:
            The new, empty Table
        """
        self._check_open()
        check_name(name)
        if name in self._tables:
            raise SchemaViolation(f"Table '{name}' already exists")

        table = Table.create(name, schema, self.data_dir)
        self._tables[name] = table
        logger.info("Created table %s.%s", self.name, name)
        return table

    def get_table(self, name: str) -> Table:
        self._check_open()
        table = self._tables.get(name)
        if table is None:
            raise NotFound(f"Table '{name}' does not exist")
        return table

    def has_table(self, name: str) -> bool:
        return name in self._tables

    def drop_table(self, name: str) -> None:
        table = self.get_table(name)
        table.drop()
        del self._tables[name]
        logger.info("Dropped table %s.%s", self.name, name)

    def list_tables(self) -> List[str]:
        self._check_open()
        return list(self._tables)

    def describe(self, name: str) -> Dict[str, Any]:
        """Canonical schema of a table plus its indexed columns"""
        table = self.get_table(name)
        return {
            'name': table.name,
            'columns': table.schema.to_dict(),
            'primaryKey': table.primary_key,
            'indexes': table.index_manager.columns(),
        }

    def count(self, name: str) -> int:
        return self.get_table(name).count()

    def execute(self, sql: str) -> QueryResult:
        """
        Execute one query.

        Returns:
            QueryResult envelope; errors are reported in it, not raised
        """
        return QueryExecutor(self).execute(sql)

    def execute_many(self, script: str) -> List[QueryResult]:
        """Execute statements separated by semicolons (outside quotes)"""
        return [self.execute(statement) for statement in split_statements(script)]

    def close(self) -> None:
        """Release the loaded collections; every write is already on disk"""
        if not self.closed:
            self._tables.clear()
            self.closed = True
            logger.info("Closed database %s", self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
