"""Core module - Database, Table, Schema, Types, Executor, REPL"""

from .database import Database
from .errors import (
    AlphaDBError, SchemaViolation, NotFound, ConstraintViolation, ParseError, StorageError
)
from .executor import QueryExecutor, QueryResult, execute_query
from .registry import DatabaseRegistry
from .repl import REPL
from .schema import Schema, ColumnDefinition
from .table import Table
from .types import ColumnKind

__all__ = [
    'Database', 'DatabaseRegistry', 'REPL', 'Table',
    'Schema', 'ColumnDefinition', 'ColumnKind',
    'QueryExecutor', 'QueryResult', 'execute_query',
    'AlphaDBError', 'SchemaViolation', 'NotFound', 'ConstraintViolation',
    'ParseError', 'StorageError',
]
