"""
Query Executor - Executes parsed commands

Takes command objects from the parser and runs them against a database's
collections, wrapping every outcome in a QueryResult envelope. Errors raised
by the store are caught here and reported in the envelope, never raised to
the caller.
"""

import logging
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Dict, List, Optional

from ..parser.parser import (
    Command, CreateTableCommand, CreateIndexCommand, InsertCommand, SelectCommand,
    UpdateCommand, DeleteCommand, DropTableCommand, UseCommand, parse_query
)
from .errors import AlphaDBError

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Result envelope of a query execution"""
    success: bool
    message: Optional[str] = None
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'success': self.success}
        if self.message is not None:
            result['message'] = self.message
        if self.data is not None:
            result['data'] = self.data
        if self.error is not None:
            result['error'] = self.error
        return result


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison; absent or incomparable values are equal"""
    if a is None or b is None:
        return 0
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except TypeError:
        return 0
    return 0


class QueryExecutor:
    """
    Executes queries against one database.

    The database only needs ``get_table``, ``create_table``, ``drop_table``
    and a ``name`` attribute.
    """

    def __init__(self, database):
        self.database = database

    def execute(self, sql: str) -> QueryResult:
        """Parse and run a query string"""
        try:
            command = parse_query(sql)
            return self.run(command)
        except AlphaDBError as e:
            logger.debug("Query failed: %s (%s)", e, sql)
            return QueryResult(success=False, error=str(e))

    def run(self, command: Command) -> QueryResult:
        """Execute a parsed command"""
        if isinstance(command, SelectCommand):
            return self._execute_select(command)
        elif isinstance(command, InsertCommand):
            return self._execute_insert(command)
        elif isinstance(command, UpdateCommand):
            return self._execute_update(command)
        elif isinstance(command, DeleteCommand):
            return self._execute_delete(command)
        elif isinstance(command, CreateTableCommand):
            return self._execute_create_table(command)
        elif isinstance(command, CreateIndexCommand):
            return self._execute_create_index(command)
        elif isinstance(command, DropTableCommand):
            return self._execute_drop_table(command)
        elif isinstance(command, UseCommand):
            return QueryResult(success=True, message=f"Using database {command.database}")
        else:
            raise TypeError(f"Unknown command type: {type(command)}")

    def _execute_create_table(self, command: CreateTableCommand) -> QueryResult:
        self.database.create_table(command.table, command.columns)
        return QueryResult(success=True, message=f"Table {command.table} created")

    def _execute_create_index(self, command: CreateIndexCommand) -> QueryResult:
        table = self.database.get_table(command.table)
        table.create_index(command.column)
        return QueryResult(success=True,
                           message=f"Index created on {command.table}.{command.column}")

    def _execute_insert(self, command: InsertCommand) -> QueryResult:
        table = self.database.get_table(command.table)
        record = table.insert(command.record())

        key = table.primary_key
        if key is not None and record.get(key) is not None:
            message = f"Record inserted with ID: {record[key]}"
        else:
            message = "Record inserted"
        return QueryResult(success=True, message=message, data=record)

    def _execute_select(self, command: SelectCommand) -> QueryResult:
        table = self.database.get_table(command.table)
        conditions = command.where.to_conditions() if command.where else None
        rows = table.find(conditions)

        if not command.select_all:
            rows = self._project_columns(rows, command.columns)
        if command.order_by:
            rows = self._apply_order_by(rows, command.order_by, command.descending)
        if command.limit is not None:
            rows = rows[:command.limit]

        return QueryResult(success=True, message=f"Found {len(rows)} record(s)", data=rows)

    @staticmethod
    def _project_columns(rows: List[Dict[str, Any]], columns: List[str]) -> List[Dict[str, Any]]:
        """Keep only the listed columns that a row actually has"""
        return [{column: row[column] for column in columns if column in row} for row in rows]

    @staticmethod
    def _apply_order_by(rows: List[Dict[str, Any]], column: str,
                        descending: bool) -> List[Dict[str, Any]]:
        """Stable sort on one column"""
        def compare(a, b):
            result = compare_values(a.get(column), b.get(column))
            return -result if descending else result

        return sorted(rows, key=cmp_to_key(compare))

    def _execute_update(self, command: UpdateCommand) -> QueryResult:
        table = self.database.get_table(command.table)
        conditions = command.where.to_conditions() if command.where else None
        count = table.update(conditions, command.assignments)
        return QueryResult(success=True, message=f"Updated {count} record(s)")

    def _execute_delete(self, command: DeleteCommand) -> QueryResult:
        table = self.database.get_table(command.table)
        conditions = command.where.to_conditions() if command.where else None
        count = table.delete(conditions)
        return QueryResult(success=True, message=f"Deleted {count} record(s)")

    def _execute_drop_table(self, command: DropTableCommand) -> QueryResult:
        self.database.drop_table(command.table)
        return QueryResult(success=True, message=f"Table {command.table} dropped")


def execute_query(sql: str, database) -> QueryResult:
    """Run one query against a database and return its result envelope"""
    return QueryExecutor(database).execute(sql)
