"""MySQL dialect."""

import urllib.parse
from typing import ClassVar

from .base import Dialect


class MysqlDialect(Dialect):
    """Dialect for MySQL (scheme mysql)."""

    SUPPORTED_SCHEMA: ClassVar[tuple[str, ...]] = ("mysql", "mariadb")

    F: ClassVar[dict[str, callable]] = {
        "placeholder": lambda name: f"%({name})s",
    }

    COLUMNS_SQL: ClassVar[str] = (
        "SELECT TABLE_NAME, COLUMN_NAME\n"
        "FROM information_schema.COLUMNS\n"
        "WHERE TABLE_SCHEMA = %(database)s\n"
        "ORDER BY TABLE_NAME, ORDINAL_POSITION"
    )

    FOREIGN_KEYS_SQL: ClassVar[str] = (
        "SELECT TABLE_NAME, COLUMN_NAME, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME\n"
        "FROM information_schema.KEY_COLUMN_USAGE\n"
        "WHERE TABLE_SCHEMA = %(database)s\n"
        "AND REFERENCED_TABLE_NAME IS NOT NULL"
    )

    def connect(self, url: str):
        import pymysql  # pylint: disable=import-outside-toplevel,import-error
        parsed = urllib.parse.urlparse(url)
        return pymysql.connect(
            host=parsed.hostname,
            user=urllib.parse.unquote(parsed.username or ""),
            password=urllib.parse.unquote(parsed.password or ""),
            database=(parsed.path or "")[1:] or None,
            port=parsed.port or 3306,
        )
