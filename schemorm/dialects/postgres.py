"""PostgreSQL dialect."""

import urllib.parse
from typing import ClassVar

from .base import Dialect


class PostgresDialect(Dialect):
    """Dialect for PostgreSQL (schemes postgresql, postgres)."""

    SUPPORTED_SCHEMA: ClassVar[tuple[str, ...]] = ("postgresql", "postgres")

    F: ClassVar[dict[str, callable]] = {
        "placeholder": lambda name: f"%({name})s",
    }

    INSERT_RETURNING: ClassVar[bool] = True

    COLUMNS_SQL: ClassVar[str] = (
        "SELECT table_name, column_name\n"
        "FROM information_schema.columns\n"
        "WHERE table_catalog = %(database)s AND table_schema = current_schema()\n"
        "ORDER BY table_name, ordinal_position"
    )

    FOREIGN_KEYS_SQL: ClassVar[str] = (
        "SELECT kcu.table_name, kcu.column_name, ccu.table_name, ccu.column_name\n"
        "FROM information_schema.table_constraints AS tc\n"
        "JOIN information_schema.key_column_usage AS kcu\n"
        "  ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema\n"
        "JOIN information_schema.constraint_column_usage AS ccu\n"
        "  ON tc.constraint_name = ccu.constraint_name AND tc.table_schema = ccu.table_schema\n"
        "WHERE tc.constraint_type = 'FOREIGN KEY'\n"
        "AND tc.table_catalog = %(database)s AND tc.table_schema = current_schema()"
    )

    def connect(self, url: str):
        import psycopg2  # pylint: disable=import-outside-toplevel,import-error
        parsed = urllib.parse.urlparse(url)
        return psycopg2.connect(
            host=parsed.hostname,
            user=urllib.parse.unquote(parsed.username or ""),
            password=urllib.parse.unquote(parsed.password or ""),
            database=(parsed.path or "")[1:] or None,
            port=parsed.port,
        )
