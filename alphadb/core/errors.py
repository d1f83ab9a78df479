"""
Errors raised by AlphaDB.

Every error the store raises derives from AlphaDBError, so callers that render
results (the query executor, the REPL, the web front end) catch one type.
"""

from typing import List, Optional


class AlphaDBError(Exception):
    """Base class for all AlphaDB errors."""


class SchemaViolation(AlphaDBError):
    """
    A record or schema does not satisfy its declaration.

    Validation collects every problem before raising, so one instance may
    carry several messages. ``str(error)`` joins them with ", ".
    """

    def __init__(self, errors, message: Optional[str] = None):
        if isinstance(errors, str):
            errors = [errors]
        self.errors: List[str] = list(errors)
        super().__init__(message or ", ".join(self.errors))


class NotFound(AlphaDBError):
    """A table or database does not exist."""


class ConstraintViolation(AlphaDBError):
    """A write would break a key constraint."""


class ParseError(AlphaDBError):
    """A query string does not match the grammar."""


class StorageError(AlphaDBError):
    """A persisted snapshot could not be read."""

