"""
Table - The record store for one collection

Holds the ordered records of a collection keyed by stable row ids, validates
writes against the schema, keeps the indexes in step with the data and
rewrites the collection's snapshot files after every mutation.
"""

import logging
import re
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..indexing.hash_index import IndexManager
from ..storage.engine import TableFiles
from .errors import ConstraintViolation, NotFound, SchemaViolation, StorageError
from .schema import Schema
from .types import ColumnKind, parse_date

logger = logging.getLogger(__name__)

OPERATORS = ('=', '!=', '<>', '>', '<', '>=', '<=', 'LIKE')


@lru_cache(maxsize=128)
def like_pattern(pattern: str) -> 're.Pattern':
    """Translate SQL wildcards (% and _) into an anchored regular expression"""
    parts = []
    for char in pattern:
        if char == '%':
            parts.append('.*')
        elif char == '_':
            parts.append('.')
        else:
            parts.append(re.escape(char))
    return re.compile(''.join(parts), re.DOTALL)


def compare(value: Any, operator: str, operand: Any) -> bool:
    """
    Evaluate ``value <operator> operand``.

    An absent value is None: it is unequal to every concrete value and fails
    every relational comparison. Values of incomparable types never match.
    """
    if operator == '=':
        return value == operand
    if operator in ('!=', '<>'):
        return value != operand
    if value is None or operand is None:
        return False
    if operator == 'LIKE':
        return like_pattern(str(operand)).fullmatch(str(value)) is not None

    try:
        if operator == '>':
            return value > operand
        if operator == '<':
            return value < operand
        if operator == '>=':
            return value >= operand
        if operator == '<=':
            return value <= operand
    except TypeError:
        return False
    raise SchemaViolation(f"Unknown operator: {operator}")


def split_condition(condition: Any) -> List[Tuple[str, Any]]:
    """Expand one condition into (operator, operand) pairs"""
    if isinstance(condition, Mapping) and condition and \
            all(isinstance(op, str) and op.upper() in OPERATORS for op in condition):
        return [(op.upper(), operand) for op, operand in condition.items()]
    return [('=', condition)]


class Table:
    """
    Record store for a single collection.

    Usage:
        table = Table.create("users", {"id": {"type": "number", "primaryKey": True,
                                              "autoIncrement": True},
                                       "name": {"type": "string", "required": True}},
                             "./data/demo")
        table.insert({"name": "Ann"})
        table.find({"name": "Ann"})
    """

    def __init__(self, name: str, schema: Schema, files: TableFiles):
        self.name = name
        self.schema = schema
        self.files = files
        self.rows: Dict[int, Dict[str, Any]] = {}
        self.next_row_id = 1
        self.index_manager = IndexManager(schema)
        self._lock = Lock()

    @classmethod
    def create(cls, name: str, schema: Any, data_dir: str) -> 'Table':
        """Create an empty collection and persist its schema"""
        table = cls(name, Schema.normalize(schema), TableFiles(name, data_dir))
        table._ensure_key_indexes()
        table.files.save_schema(table.schema.to_dict())
        table._save()
        return table

    @classmethod
    def load(cls, name: str, data_dir: str) -> 'Table':
        """Rebuild a collection from its snapshot files"""
        files = TableFiles(name, data_dir)
        schema_data = files.load_schema()
        if schema_data is None:
            raise NotFound(f"Table '{name}' does not exist")

        table = cls(name, Schema.from_dict(schema_data), files)
        table._load_rows(files.load_data())

        # The index file names the indexed columns; contents are rebuilt
        # from the data so a crash between the two writes cannot leave
        # them out of step.
        try:
            indexed = files.load_indexes() or {}
        except StorageError as e:
            logger.warning("Unreadable index file for %s, keeping key indexes only: %s", name, e)
            indexed = {}
        for column in indexed:
            if column in table.schema:
                table.index_manager.create_index(column, table.rows.items())
            else:
                logger.warning("Ignoring index on unknown column %s.%s", name, column)
        table._ensure_key_indexes()
        return table

    def _load_rows(self, data: Any) -> None:
        if not data:
            return
        if isinstance(data, list):
            # Plain record list: number the rows in order
            self.rows = {row_id: record for row_id, record in enumerate(data, start=1)}
        else:
            self.rows = {int(k): v for k, v in data.get('rows', {}).items()}
        last = max(self.rows, default=0)
        stored = data.get('next_row_id', 1) if isinstance(data, dict) else 1
        self.next_row_id = max(stored, last + 1)

    def _ensure_key_indexes(self) -> None:
        for column in self.schema.unique_columns:
            if not self.index_manager.has_index(column):
                self.index_manager.create_index(column, self.rows.items())

    def _save(self) -> None:
        """Persist data and indexes"""
        self.files.save_data({
            'next_row_id': self.next_row_id,
            'rows': self.rows,
        })
        self.files.save_indexes(self.index_manager.to_dict())

    @property
    def primary_key(self) -> Optional[str]:
        return self.schema.primary_key

    def _duplicate_checker(self, exclude: Iterable[int] = ()) -> Callable[[str, Any], bool]:
        excluded = set(exclude)

        def is_duplicate(column: str, value: Any) -> bool:
            index = self.index_manager.get_index(column)
            if index is None:
                return False
            return any(row_id not in excluded for row_id in index.lookup(value))

        return is_duplicate

    def _next_auto_value(self, column: str):
        """Current maximum of the column plus one; a freed maximum is reissued"""
        values = [record[column] for record in self.rows.values()
                  if isinstance(record.get(column), (int, float))
                  and not isinstance(record.get(column), bool)]
        return max(values, default=0) + 1

    def _normalize_operand(self, column: str, operand: Any) -> Any:
        definition = self.schema.get_column(column)
        if definition is not None and definition.kind is ColumnKind.DATE \
                and isinstance(operand, str):
            try:
                return parse_date(operand)
            except ValueError:
                return operand
        return operand

    def _match(self, conditions: Optional[Mapping[str, Any]]) -> List[int]:
        """Row ids satisfying every condition, in insertion order"""
        if not conditions:
            return list(self.rows)

        predicates = []
        for column, condition in conditions.items():
            for operator, operand in split_condition(condition):
                predicates.append((column, operator, self._normalize_operand(column, operand)))

        if len(predicates) == 1:
            column, operator, operand = predicates[0]
            index = self.index_manager.get_index(column)
            if operator == '=' and operand is not None and index is not None:
                try:
                    return index.lookup(operand)
                except TypeError:
                    pass  # unhashable operand: fall back to a scan

        return [
            row_id for row_id, record in self.rows.items()
            if all(compare(record.get(column), operator, operand)
                   for column, operator, operand in predicates)
        ]

    def insert(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate and append a record; returns a copy of what was stored"""
        with self._lock:
            validated = self.schema.validate(record, self._duplicate_checker())

            if any(column not in validated for column in self.schema.auto_increment_columns):
                for column in self.schema.auto_increment_columns:
                    validated.setdefault(column, self._next_auto_value(column))
                validated = {column: validated[column] for column in
                             self.schema.get_column_names() if column in validated}

            row_id = self.next_row_id
            self.next_row_id += 1
            self.rows[row_id] = validated
            self.index_manager.add_row(row_id, validated)
            self._save()

            logger.debug("Inserted row %d into %s", row_id, self.name)
            return dict(validated)

    def find(self, conditions: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Records matching ``conditions``.

        ``conditions`` maps a column to a literal (equality) or to a mapping
        of operator to operand, e.g. ``{"age": {">": 18}}``. Supported
        operators are =, !=, <>, >, <, >=, <= and LIKE. Returns copies.
        """
        return [dict(self.rows[row_id]) for row_id in self._match(conditions)]

    def find_one(self, conditions: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        row_ids = self._match(conditions)
        if not row_ids:
            return None
        return dict(self.rows[row_ids[0]])

    def find_all(self) -> List[Dict[str, Any]]:
        return self.find({})

    def get(self, row_id: int) -> Optional[Dict[str, Any]]:
        record = self.rows.get(row_id)
        return dict(record) if record is not None else None

    def scan(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        """Iterate over (row id, record copy) pairs"""
        for row_id, record in list(self.rows.items()):
            yield row_id, dict(record)

    def count(self) -> int:
        return len(self.rows)

    def update(self, conditions: Optional[Mapping[str, Any]], patch: Mapping[str, Any]) -> int:
        """
        Merge ``patch`` into every matching record.

        All merged records are validated before any is written, so a failure
        leaves the collection untouched. A None in the patch clears the
        column. Returns the number of updated rows.
        """
        with self._lock:
            unknown = [column for column in patch if column not in self.schema]
            if unknown:
                raise SchemaViolation([f"Unknown column '{column}'" for column in unknown])

            targets = self._match(conditions)
            if not targets:
                return 0
            target_set = set(targets)

            self._check_primary_key_change(patch, target_set)

            is_duplicate = self._duplicate_checker(exclude=target_set)
            staged = []
            for row_id in targets:
                merged = dict(self.rows[row_id])
                for column, value in patch.items():
                    if value is None:
                        merged.pop(column, None)
                    else:
                        merged[column] = value
                staged.append((row_id, self.schema.validate(merged, is_duplicate, updating=True)))

            for column in self.schema.unique_columns:
                if column not in patch:
                    continue
                seen = set()
                for _, record in staged:
                    value = record.get(column)
                    if value is None:
                        continue
                    if value in seen:
                        raise SchemaViolation(f"Duplicate value for unique column '{column}'")
                    seen.add(value)

            for row_id, record in staged:
                self.index_manager.remove_row(row_id, self.rows[row_id])
                self.rows[row_id] = record
                self.index_manager.add_row(row_id, record)

            self._save()
            logger.debug("Updated %d row(s) in %s", len(staged), self.name)
            return len(staged)

    def _check_primary_key_change(self, patch: Mapping[str, Any], targets: set) -> None:
        key = self.primary_key
        if key is None or patch.get(key) is None:
            return

        definition = self.schema.get_column(key)
        new_value = patch[key]
        if definition.kind.accepts(new_value):
            new_value = definition.kind.coerce(new_value)

        holders = [row_id for row_id in self._match({key: new_value}) if row_id not in targets]
        if holders or len(targets) > 1:
            raise ConstraintViolation("Duplicate primary key value")

    def delete(self, conditions: Optional[Mapping[str, Any]] = None) -> int:
        """Remove every matching record; returns the number removed"""
        with self._lock:
            targets = self._match(conditions)
            for row_id in targets:
                record = self.rows.pop(row_id)
                self.index_manager.remove_row(row_id, record)

            if targets:
                self._save()
                logger.debug("Deleted %d row(s) from %s", len(targets), self.name)
            return len(targets)

    def create_index(self, column: str) -> None:
        """Build an index on column from a full scan and persist it"""
        with self._lock:
            self.index_manager.create_index(column, list(self.rows.items()))
            self.files.save_indexes(self.index_manager.to_dict())
        logger.info("Created index on %s.%s", self.name, column)

    def rebuild_index(self, column: str) -> None:
        with self._lock:
            self.index_manager.rebuild_index(column, list(self.rows.items()))
            self.files.save_indexes(self.index_manager.to_dict())

    def drop_index(self, column: str) -> None:
        with self._lock:
            self.index_manager.drop_index(column)
            self.files.save_indexes(self.index_manager.to_dict())

    def drop(self) -> None:
        """Remove the persisted files; failures are logged, not raised"""
        if not self.files.remove():
            logger.error("Table %s was dropped but some files remain", self.name)
        self.rows = {}
        self.index_manager.indexes.clear()
