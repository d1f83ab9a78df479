"""
REPL - Interactive query shell for AlphaDB

Provides a command-line interface for executing queries and inspecting the
collections of the current database.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from ..log import configure_logging
from ..parser.parser import UseCommand, parse_query
from .database import DEFAULT_DATA_ROOT
from .errors import AlphaDBError
from .executor import QueryResult
from .registry import DatabaseRegistry

DEFAULT_DATABASE = 'default'


class REPL:
    """
    Interactive REPL (Read-Eval-Print Loop) for AlphaDB.

    Features:
    - Multi-line input (statements ending with ;)
    - Special commands (.tables, .schema, .quit, etc.)
    - USE <name> switches the current database
    - Pretty-printed results
    """

    BANNER = """
AlphaDB - a small schema-checked record store

Type .help for commands, or enter queries.
Statements must end with a semicolon (;).
"""

    HELP = """
Special Commands:
  .help             Show this help message
  .databases        List all databases
  .tables           List all tables
  .schema <table>   Show schema for a table
  .count <table>    Show row count for a table
  .indexes <table>  Show indexed columns of a table
  .quit / .exit     Exit the REPL

Queries:
  CREATE TABLE      Create a new table
  CREATE INDEX      Create an index on a column
  DROP TABLE        Delete a table
  INSERT INTO       Insert a record into a table
  SELECT            Query records (one WHERE condition, ORDER BY, LIMIT)
  UPDATE            Update existing records
  DELETE FROM       Delete records from a table
  USE               Switch to another database

Example:
  CREATE TABLE users (
    id number PRIMARY KEY AUTO_INCREMENT,
    name string NOT NULL,
    email string UNIQUE,
    age number DEFAULT 18
  );

  INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com');

  SELECT * FROM users WHERE name LIKE 'A%' ORDER BY age DESC LIMIT 10;
"""

    def __init__(self, data_root: str = DEFAULT_DATA_ROOT, database: str = DEFAULT_DATABASE):
        """Initialize REPL with a registry rooted at data_root."""
        self.registry = DatabaseRegistry(data_root)
        self.db = self.registry.get(database)
        self.running = False
        self.buffer: List[str] = []

    def run(self) -> None:
        """Start the REPL loop."""
        self.running = True
        print(self.BANNER)

        while self.running:
            try:
                self.process_line(input(self._get_prompt()))
            except KeyboardInterrupt:
                print("\n(Use .quit to exit)")
            except EOFError:
                print()
                self._quit()

    def _get_prompt(self) -> str:
        if self.buffer:
            return "    ...> "
        return "alphadb> "

    def process_line(self, line: str) -> None:
        """Feed one line of input to the shell."""
        line = line.strip()
        if not line:
            return

        # Special commands (only when not in multi-line mode)
        if not self.buffer and line.startswith('.'):
            self._handle_command(line)
            return

        self.buffer.append(line)
        full_statement = ' '.join(self.buffer)
        if full_statement.rstrip().endswith(';'):
            self.buffer = []
            self._execute_statement(full_statement)

    def _handle_command(self, cmd: str) -> None:
        """Handle special dot commands."""
        parts = cmd.split(None, 1)
        command = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else None

        if command in ('.quit', '.exit', '.q'):
            self._quit()
        elif command == '.help':
            print(self.HELP)
        elif command == '.databases':
            self._show_databases()
        elif command == '.tables':
            self._show_tables()
        elif command == '.schema':
            self._show_schema(args)
        elif command == '.count':
            self._show_count(args)
        elif command == '.indexes':
            self._show_indexes(args)
        else:
            print(f"Unknown command: {command}")
            print("Type .help for available commands.")

    def _quit(self) -> None:
        print("Goodbye!")
        self.running = False
        self.registry.close()

    def _show_databases(self) -> None:
        for name in self.registry.names():
            marker = '*' if name == self.db.name else ' '
            print(f"{marker} {name}")

    def _show_tables(self) -> None:
        tables = self.db.list_tables()
        if tables:
            print(f"\nTables in {self.db.name}:")
            for table in tables:
                print(f"  {table} ({self.db.count(table)} rows)")
            print()
        else:
            print("No tables found.")

    def _show_schema(self, table_name: Optional[str]) -> None:
        """Show schema for a table."""
        if not table_name:
            print("Usage: .schema <table_name>")
            return

        try:
            description = self.db.describe(table_name)
        except AlphaDBError as e:
            print(f"Error: {e}")
            return

        print(f"\nTable: {description['name']}")
        print("-" * 60)
        for name, column in description['columns'].items():
            flags = []
            if column.get('primaryKey'):
                flags.append('PRIMARY KEY')
            if column.get('unique') and not column.get('primaryKey'):
                flags.append('UNIQUE')
            if column.get('required') and not column.get('primaryKey'):
                flags.append('NOT NULL')
            if column.get('autoIncrement'):
                flags.append('AUTO_INCREMENT')
            if column.get('defaultValue') is not None:
                flags.append(f"DEFAULT {column['defaultValue']}")
            if column.get('foreignKey'):
                reference = column['foreignKey']
                flags.append(f"REFERENCES {reference.get('table')}({reference.get('column', '')})")

            type_name = column['type']
            if column.get('size'):
                type_name = f"{type_name}({column['size']})"
            print(f"  {name:20} {type_name:15} {' '.join(flags)}")
        print()

    def _show_count(self, table_name: Optional[str]) -> None:
        if not table_name:
            print("Usage: .count <table_name>")
            return

        try:
            print(f"{table_name}: {self.db.count(table_name)} rows")
        except AlphaDBError as e:
            print(f"Error: {e}")

    def _show_indexes(self, table_name: Optional[str]) -> None:
        if not table_name:
            print("Usage: .indexes <table_name>")
            return

        try:
            columns = self.db.describe(table_name)['indexes']
        except AlphaDBError as e:
            print(f"Error: {e}")
            return

        if columns:
            print(f"\nIndexes on {table_name}:")
            for column in columns:
                print(f"  INDEX on {column}")
            print()
        else:
            print(f"No indexes on {table_name}")

    def _execute_statement(self, sql: str) -> None:
        """Execute a statement and display its result."""
        try:
            command = parse_query(sql)
        except AlphaDBError as e:
            print(f"Error: {e}")
            return

        if isinstance(command, UseCommand):
            try:
                self.db = self.registry.get(command.database)
            except AlphaDBError as e:
                print(f"Error: {e}")
                return

        print_result(self.db.execute(sql))


def print_result(result: QueryResult, out=None) -> None:
    """Pretty-print a result envelope."""
    out = out or sys.stdout
    if not result.success:
        print(f"Error: {result.error}", file=out)
        return

    if isinstance(result.data, list):
        _print_rows(result.data, out)
    if result.message:
        print(result.message, file=out)


def _format_value(value: Any) -> str:
    if value is None:
        return 'NULL'
    return str(value)


def _print_rows(rows: List[Dict[str, Any]], out) -> None:
    """Pretty-print records as a table."""
    if not rows:
        print("(0 rows)", file=out)
        return

    # Records are sparse: the header is every column seen, in first-seen order
    columns: List[str] = []
    for row in rows:
        for column in row:
            if column not in columns:
                columns.append(column)

    widths = {col: len(col) for col in columns}
    for row in rows:
        for col in columns:
            widths[col] = max(widths[col], len(_format_value(row.get(col))))

    # Limit column width for readability
    max_width = 40
    widths = {col: min(w, max_width) for col, w in widths.items()}

    header = " | ".join(col.ljust(widths[col])[:widths[col]] for col in columns)
    separator = "-+-".join("-" * widths[col] for col in columns)

    print(file=out)
    print(header, file=out)
    print(separator, file=out)
    for row in rows:
        values = [_format_value(row.get(col)).ljust(widths[col])[:widths[col]] for col in columns]
        print(" | ".join(values), file=out)
    print(file=out)


def main(argv=None):
    """Entry point for the REPL."""
    parser = argparse.ArgumentParser(
        description="AlphaDB - a small schema-checked record store"
    )
    parser.add_argument(
        '-d', '--data-root',
        default=DEFAULT_DATA_ROOT,
        help=f'Directory holding one sub-directory per database (default: {DEFAULT_DATA_ROOT})'
    )
    parser.add_argument(
        '-D', '--database',
        default=DEFAULT_DATABASE,
        help=f'Database to open (default: {DEFAULT_DATABASE})'
    )
    parser.add_argument(
        '-e', '--execute',
        help='Execute a query and exit'
    )
    parser.add_argument(
        '-f', '--file',
        help='Execute queries from a file and exit'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log debug output to stderr'
    )

    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    # Execute a single statement or a script file
    if args.execute or args.file:
        with DatabaseRegistry(args.data_root) as registry:
            try:
                db = registry.get(args.database)
                if args.execute:
                    results = [db.execute(args.execute)]
                else:
                    with open(args.file, 'r', encoding='utf-8') as f:
                        results = db.execute_many(f.read())
            except (AlphaDBError, OSError) as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1

            for result in results:
                print_result(result)
            return 0 if all(result.success for result in results) else 1

    # Start interactive REPL
    repl = REPL(args.data_root, args.database)
    repl.run()
    return 0


if __name__ == '__main__':
    sys.exit(main())
