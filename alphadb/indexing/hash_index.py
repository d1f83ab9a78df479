"""
Hash Index Implementation

Maps the values of one column to the set of row ids holding them, giving
O(1) equality lookups. Row ids are stable surrogate keys, so deleting a row
only touches that row's bucket and never forces a rebuild.

This implementation supports:
- Duplicate values (non-unique indexes)
- Incremental maintenance on insert, update and delete
- Full rebuilds from the live records
- Snapshot serialization for the index file
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..core.errors import ConstraintViolation, SchemaViolation
from ..core.schema import Schema

logger = logging.getLogger(__name__)


class HashIndex:
    """Equality index over a single column"""

    def __init__(self, column: str):
        self.column = column
        self.buckets: Dict[Any, Set[int]] = {}

    def add(self, value: Any, row_id: int) -> None:
        if value is None:
            return
        self.buckets.setdefault(value, set()).add(row_id)

    def remove(self, value: Any, row_id: int) -> bool:
        """Remove row_id from the bucket for value"""
        if value is None:
            return False
        bucket = self.buckets.get(value)
        if bucket is None or row_id not in bucket:
            return False
        bucket.discard(row_id)
        if not bucket:
            del self.buckets[value]
        return True

    def lookup(self, value: Any) -> List[int]:
        """Row ids holding value, in insertion order"""
        return sorted(self.buckets.get(value, ()))

    def build(self, rows: Iterable[Tuple[int, Mapping[str, Any]]]) -> None:
        """Recompute every bucket from scratch"""
        buckets: Dict[Any, Set[int]] = {}
        for row_id, record in rows:
            value = record.get(self.column)
            if value is not None:
                buckets.setdefault(value, set()).add(row_id)
        self.buckets = buckets

    def __len__(self) -> int:
        return len(self.buckets)

    def to_list(self) -> list:
        return [[value, sorted(row_ids)] for value, row_ids in self.buckets.items()]


class IndexManager:
    """Manages all indexes for one collection"""

    def __init__(self, schema: Schema):
        self.schema = schema
        self.indexes: Dict[str, HashIndex] = {}

    @property
    def required_columns(self) -> List[str]:
        """Columns whose index backs a key or uniqueness constraint"""
        return self.schema.unique_columns

    def _check_indexable(self, column: str) -> None:
        definition = self.schema.get_column(column)
        if definition is None:
            raise SchemaViolation(f"Column '{column}' does not exist")
        if not definition.kind.indexable:
            raise SchemaViolation(
                f"Cannot index column '{column}' of type {definition.kind.value}")

    def create_index(self, column: str, rows: Iterable[Tuple[int, Mapping[str, Any]]]) -> HashIndex:
        """Create (or rebuild) the index on column from a full scan"""
        self._check_indexable(column)
        index = HashIndex(column)
        index.build(rows)
        self.indexes[column] = index
        logger.debug("Built index on %s (%d keys)", column, len(index))
        return index

    def rebuild_index(self, column: str, rows: Iterable[Tuple[int, Mapping[str, Any]]]) -> None:
        index = self.indexes.get(column)
        if index is None:
            raise SchemaViolation(f"No index on column '{column}'")
        index.build(rows)

    def drop_index(self, column: str) -> None:
        if column in self.required_columns:
            raise ConstraintViolation(
                f"Index on '{column}' enforces a key constraint and cannot be dropped")
        if column not in self.indexes:
            raise SchemaViolation(f"No index on column '{column}'")
        del self.indexes[column]

    def get_index(self, column: str) -> Optional[HashIndex]:
        return self.indexes.get(column)

    def has_index(self, column: str) -> bool:
        return column in self.indexes

    def columns(self) -> List[str]:
        return list(self.indexes)

    def add_row(self, row_id: int, record: Mapping[str, Any]) -> None:
        for column, index in self.indexes.items():
            index.add(record.get(column), row_id)

    def remove_row(self, row_id: int, record: Mapping[str, Any]) -> None:
        for column, index in self.indexes.items():
            index.remove(record.get(column), row_id)

    def to_dict(self) -> dict:
        return {column: index.to_list() for column, index in self.indexes.items()}
