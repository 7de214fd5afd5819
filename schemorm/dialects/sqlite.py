"""SQLite dialect."""

import logging
import sqlite3
import urllib.parse
from typing import Any, ClassVar

from .base import Dialect

logger = logging.getLogger("schemorm")


class SqliteDialect(Dialect):
    """Dialect for SQLite (scheme sqlite)."""

    SUPPORTED_SCHEMA: ClassVar[tuple[str, ...]] = ("sqlite",)

    F: ClassVar[dict[str, callable]] = {
        "placeholder": lambda name: f":{name}",
    }

    COLUMNS_SQL: ClassVar[str] = (
        "SELECT m.name, p.name\n"
        "FROM sqlite_master AS m\n"
        "JOIN pragma_table_info(m.name) AS p\n"
        "WHERE m.type = 'table' AND m.name NOT LIKE 'sqlite_%'\n"
        "ORDER BY m.name, p.cid"
    )

    # "to" is NULL when the key references the parent's primary key implicitly
    FOREIGN_KEYS_SQL: ClassVar[str] = (
        'SELECT m.name, f."from", f."table", f."to"\n'
        "FROM sqlite_master AS m\n"
        "JOIN pragma_foreign_key_list(m.name) AS f\n"
        "WHERE m.type = 'table'"
    )

    def connect(self, url: str):
        parsed = urllib.parse.urlparse(url)
        path = (parsed.path or "")[1:] or parsed.hostname
        logger.debug("Opening SQLite database %s", path)
        # statements are serialized by Connection's lock
        conn = sqlite3.connect(path, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def columns_query(self, database: str) -> tuple[str, dict[str, Any]]:
        return self.COLUMNS_SQL, {}

    def foreign_keys_query(self, database: str) -> tuple[str, dict[str, Any]]:
        return self.FOREIGN_KEYS_SQL, {}
