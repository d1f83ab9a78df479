"""
Storage Engine - Handles persistence of collection state to disk

Features:
- File-per-collection storage model (schema, data and index snapshots)
- JSON-based serialization with tagged dates
- Whole-file rewrite on every save

Save and remove failures are logged and swallowed: the in-memory state stays
authoritative for the call that triggered the write. Read failures raise
StorageError so a corrupt snapshot is never silently replaced.
"""

import json
import logging
import os
from datetime import date, datetime
from typing import Any, Optional

from ..core.errors import StorageError

logger = logging.getLogger(__name__)


class DateTimeEncoder(json.JSONEncoder):
    """Custom JSON encoder for datetime objects"""
    def default(self, obj):
        if isinstance(obj, datetime):
            return {'__datetime__': obj.strftime('%Y-%m-%d %H:%M:%S')}
        if isinstance(obj, date):
            return {'__date__': obj.strftime('%Y-%m-%d')}
        return super().default(obj)


def datetime_decoder(dct):
    """Custom JSON decoder for datetime objects"""
    if '__datetime__' in dct:
        return datetime.strptime(dct['__datetime__'], '%Y-%m-%d %H:%M:%S')
    if '__date__' in dct:
        return datetime.strptime(dct['__date__'], '%Y-%m-%d').date()
    return dct


def read_json(path: str) -> Optional[Any]:
    """Load a JSON snapshot, or None when the file does not exist"""
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f, object_hook=datetime_decoder)
    except (OSError, ValueError) as e:
        raise StorageError(f"Cannot read '{path}': {e}") from e


def write_json(path: str, data: Any) -> bool:
    """Rewrite a JSON snapshot. Returns False if the write failed."""
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, cls=DateTimeEncoder, indent=2)
    except (OSError, TypeError, ValueError):
        logger.exception("Error saving %s", path)
        return False
    logger.debug("Saved %s", path)
    return True


def remove_file(path: str) -> bool:
    """Best-effort delete. Returns False if the file could not be removed."""
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        logger.exception("Error removing %s", path)
        return False
    return True


class TableFiles:
    """
    The three snapshot files that back one collection.

    Layout inside the namespace directory:
        <name>_schema.json  canonical column definitions
        <name>.json         {"next_row_id": n, "rows": {"<row id>": record}}
        <name>_index.json   {"<column>": [[value, [row ids]], ...]}
    """

    SCHEMA_SUFFIX = '_schema.json'

    def __init__(self, name: str, data_dir: str):
        self.name = name
        self.data_dir = data_dir
        self.schema_file = os.path.join(data_dir, f"{name}{self.SCHEMA_SUFFIX}")
        self.data_file = os.path.join(data_dir, f"{name}.json")
        self.index_file = os.path.join(data_dir, f"{name}_index.json")

    def load_schema(self) -> Optional[dict]:
        return read_json(self.schema_file)

    def save_schema(self, schema: dict) -> bool:
        return write_json(self.schema_file, schema)

    def load_data(self) -> Optional[dict]:
        return read_json(self.data_file)

    def save_data(self, data: dict) -> bool:
        return write_json(self.data_file, data)

    def load_indexes(self) -> Optional[dict]:
        return read_json(self.index_file)

    def save_indexes(self, indexes: dict) -> bool:
        return write_json(self.index_file, indexes)

    def remove(self) -> bool:
        """Delete every file; keeps going past individual failures"""
        results = [remove_file(path) for path in
                   (self.data_file, self.index_file, self.schema_file)]
        return all(results)

    @classmethod
    def table_names(cls, data_dir: str) -> list:
        """Names of the collections that have a schema file in ``data_dir``"""
        if not os.path.isdir(data_dir):
            return []
        names = []
        for entry in sorted(os.listdir(data_dir)):
            if entry.endswith(cls.SCHEMA_SUFFIX):
                names.append(entry[:-len(cls.SCHEMA_SUFFIX)])
        return names
