"""
Schema Module - Defines collection structure, columns, and constraints

Supports:
- Column definitions with a closed set of types
- PRIMARY KEY constraint (implies required and unique)
- UNIQUE constraint
- Required (NOT NULL) columns and default values
- AUTO_INCREMENT columns
- Foreign key references (recorded, not enforced)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from .errors import SchemaViolation
from .types import ColumnKind, parse_kind


@dataclass
class ColumnDefinition:
    """Canonical metadata for one column"""
    name: str
    kind: ColumnKind = ColumnKind.STRING
    required: bool = False
    primary_key: bool = False
    unique: bool = False
    auto_increment: bool = False
    default: Any = None
    foreign_key: Optional[Dict[str, str]] = None
    size: Optional[int] = None  # For VARCHAR(n)

    def __post_init__(self):
        # Primary keys are implicitly required and unique
        if self.primary_key:
            self.required = True
            self.unique = True

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def to_dict(self) -> dict:
        data = {
            'type': self.kind.value,
            'required': self.required,
            'primaryKey': self.primary_key,
            'unique': self.unique,
            'autoIncrement': self.auto_increment,
            'foreignKey': self.foreign_key,
        }
        if self.has_default:
            data['defaultValue'] = self.default
        if self.size is not None:
            data['size'] = self.size
        return data

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> 'ColumnDefinition':
        """Normalize a loosely specified column mapping"""
        column = cls(
            name=name,
            kind=parse_kind(data.get('type', 'string')),
            required=bool(data.get('required', False)),
            primary_key=bool(data.get('primaryKey', False)),
            unique=bool(data.get('unique', False)),
            auto_increment=bool(data.get('autoIncrement', False)),
            foreign_key=data.get('foreignKey') or None,
            size=data.get('size'),
        )

        if column.size is not None and (not isinstance(column.size, int) or column.size < 1):
            raise SchemaViolation(f"Invalid size for '{name}': {column.size}")

        default = data.get('defaultValue')
        if default is not None:
            try:
                column.default = column.kind.coerce_default(default)
            except ValueError as e:
                raise SchemaViolation(f"Invalid default for '{name}': {e}")

        if (column.unique or column.primary_key) and not column.kind.indexable:
            raise SchemaViolation(
                f"Column '{name}' of type {column.kind.value} cannot be unique")
        if column.auto_increment and column.kind is not ColumnKind.NUMBER:
            raise SchemaViolation(f"AUTO_INCREMENT column '{name}' must be a number")
        return column


class Schema:
    """
    Ordered mapping of column name to column definition.

    A schema is fixed once its collection exists; there is no ALTER.
    """

    def __init__(self, columns: Optional[List[ColumnDefinition]] = None):
        self._columns: Dict[str, ColumnDefinition] = {}
        self.primary_key: Optional[str] = None

        for column in columns or []:
            self.add_column(column)

    def add_column(self, column: ColumnDefinition) -> None:
        if column.name in self._columns:
            raise SchemaViolation(f"Column '{column.name}' already exists")
        if column.primary_key:
            if self.primary_key:
                raise SchemaViolation("Table already has a primary key")
            self.primary_key = column.name
        self._columns[column.name] = column

    @classmethod
    def normalize(cls, definition: Union['Schema', Mapping[str, Any]]) -> 'Schema':
        """Build a schema from a column-definition mapping"""
        if isinstance(definition, Schema):
            return definition
        if not definition:
            raise SchemaViolation("A table needs at least one column")

        errors = []
        schema = cls()
        for name, column_data in definition.items():
            try:
                if isinstance(column_data, ColumnDefinition):
                    schema.add_column(column_data)
                else:
                    schema.add_column(ColumnDefinition.from_dict(name, column_data or {}))
            except SchemaViolation as e:
                errors.extend(e.errors)
        if errors:
            raise SchemaViolation(errors)
        return schema

    def __contains__(self, name: str) -> bool:
        return name in self._columns

    def __iter__(self) -> Iterator[ColumnDefinition]:
        return iter(self._columns.values())

    def __len__(self) -> int:
        return len(self._columns)

    def get_column(self, name: str) -> Optional[ColumnDefinition]:
        return self._columns.get(name)

    def get_column_names(self) -> List[str]:
        return list(self._columns)

    @property
    def unique_columns(self) -> List[str]:
        return [c.name for c in self if c.unique]

    @property
    def auto_increment_columns(self) -> List[str]:
        return [c.name for c in self if c.auto_increment]

    def validate(self, record: Mapping[str, Any],
                 is_duplicate: Optional[Callable[[str, Any], bool]] = None,
                 updating: bool = False) -> Dict[str, Any]:
        """
        Validate and coerce a record.

        Columns are checked in schema order and every problem is collected
        before raising one SchemaViolation. Unknown keys are dropped and
        absent optional columns stay absent. ``is_duplicate(column, value)``
        is consulted for unique columns.

        With ``updating`` the record is a stored row merged with a patch:
        absent columns get no default and auto-increment columns must be
        present, since nothing fills them in afterwards.
        """
        errors = []
        validated = {}

        for column in self:
            value = record.get(column.name)
            has_value = value is not None

            if column.auto_increment and not has_value and not updating:
                continue

            if not has_value:
                if column.required or (updating and column.auto_increment):
                    errors.append(f"Required column '{column.name}' is missing")
                elif column.has_default and not updating:
                    validated[column.name] = column.default
                continue

            if not column.kind.accepts(value):
                errors.append(
                    f"Invalid type for '{column.name}': expected {column.kind.value}")
                continue

            value = column.kind.coerce(value)
            if column.size is not None and isinstance(value, str) and len(value) > column.size:
                errors.append(
                    f"Value for '{column.name}' exceeds {column.size} characters")
                continue

            validated[column.name] = value

            if column.unique and is_duplicate is not None and is_duplicate(column.name, value):
                errors.append(f"Duplicate value for unique column '{column.name}'")

        if errors:
            raise SchemaViolation(errors)
        return validated

    def to_dict(self) -> dict:
        """Serialize to the canonical column-definition mapping"""
        return {column.name: column.to_dict() for column in self}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Schema':
        return cls.normalize(data)
