"""
AlphaDB - A small schema-checked record store with a SQL-like query language

Collections are validated against a declared schema, indexed for equality
lookups and persisted as JSON snapshots, one directory per database.
"""

__version__ = "1.0.0"

from .core.database import Database
from .core.executor import QueryResult, execute_query
from .core.registry import DatabaseRegistry
from .core.repl import REPL

__all__ = ["Database", "DatabaseRegistry", "QueryResult", "execute_query", "REPL"]
