"""
Database Registry - Opens and tracks namespaces under one data root

An explicit context object: the REPL and the web front end each construct
one at startup and close it at shutdown.
"""

import logging
import os
from typing import Dict, List

from .database import DEFAULT_DATA_ROOT, Database, check_name
from .errors import AlphaDBError, NotFound

logger = logging.getLogger(__name__)


class DatabaseRegistry:
    """
    Namespaces living under a data root, opened on demand.

    Usage:
        with DatabaseRegistry("./data") as registry:
            db = registry.get("shop")
            db.execute("SELECT * FROM users")
    """

    def __init__(self, data_root: str = DEFAULT_DATA_ROOT):
        self.data_root = data_root
        os.makedirs(data_root, exist_ok=True)
        self._databases: Dict[str, Database] = {}

    def get(self, name: str, create: bool = True) -> Database:
        """Return the namespace, opening it (and creating its directory) if needed"""
        database = self._databases.get(name)
        if database is not None:
            return database

        check_name(name, 'database')
        if not create and not os.path.isdir(os.path.join(self.data_root, name)):
            raise NotFound(f"Database '{name}' does not exist")

        database = Database(name, self.data_root)
        self._databases[name] = database
        return database

    def exists(self, name: str) -> bool:
        return name in self._databases or os.path.isdir(os.path.join(self.data_root, name))

    def names(self) -> List[str]:
        """Loaded namespaces plus every namespace directory on disk"""
        names = set(self._databases)
        for entry in os.listdir(self.data_root):
            if os.path.isdir(os.path.join(self.data_root, entry)):
                names.add(entry)
        return sorted(names)

    @property
    def loaded(self) -> List[str]:
        """Names of the namespaces currently open"""
        return sorted(self._databases)

    def reload(self) -> List[str]:
        """Drop every loaded namespace and reopen all of them from disk"""
        self.close()
        for name in self.names():
            try:
                self.get(name)
            except AlphaDBError as e:
                logger.warning("Skipping database %s: %s", name, e)
        logger.info("Reloaded %d database(s) from %s", len(self._databases), self.data_root)
        return self.loaded

    def close(self) -> None:
        for database in self._databases.values():
            database.close()
        self._databases.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
