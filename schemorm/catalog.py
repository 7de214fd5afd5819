"""Schema catalog: cached tables, columns and foreign-key links discovered at runtime.

The catalog is populated from the database's own metadata the first time it
is consulted, at most once even under concurrent first access, and stays
unchanged until ``refresh()`` is called explicitly. Table names are looked up
case-insensitively; the original casing is preserved for SQL generation.
"""

import logging
import threading
from typing import Optional

from pydantic import BaseModel, Field as PydanticField

from .connection import get_connection
from .errors import NoAssociation, NotLinked, UnknownEntity, UnknownField

logger = logging.getLogger("schemorm")

IDENTITY_COLUMN = "Id"
"""Primary key column shared by every entity table (matched case-insensitively)."""


class TableInfo(BaseModel):
    """Cached metadata for one table."""

    name: str
    """Table name in its original casing."""
    fields: list[str] = PydanticField(default_factory=list)
    """Column names, in ordinal order."""
    links: dict[str, str] = PydanticField(default_factory=dict)
    """Linked table name -> column of this table used by the link."""

    def resolve_field(self, field: str) -> Optional[str]:
        """Return the column matching ``field`` in its original casing, or None."""
        lowered = field.lower()
        for name in self.fields:
            if name.lower() == lowered:
                return name
        return None

    def link_column(self, table: str) -> Optional[str]:
        """Return the local column linking to ``table``, or None when not linked."""
        lowered = table.lower()
        for name, column in self.links.items():
            if name.lower() == lowered:
                return column
        return None

    @property
    def has_identity(self) -> bool:
        """True when the table has an identity column."""
        return self.resolve_field(IDENTITY_COLUMN) is not None

    @property
    def is_association(self) -> bool:
        """Many-to-many heuristic: two columns, two links, no identity column."""
        return len(self.fields) == 2 and len(self.links) == 2 and not self.has_identity


class SchemaCatalog:
    """Introspected schema of one named connection."""

    def __init__(self, connection_name: str = "default"):
        self.connection_name = connection_name
        self._tables: Optional[dict[str, TableInfo]] = None
        self._lock = threading.Lock()

    # loading

    def _query_metadata(self) -> tuple[list[tuple], list[tuple]]:
        """Run the dialect's column and foreign-key catalog queries."""
        connection = get_connection(self.connection_name)
        dialect = connection.dialect
        database = connection.database_name
        columns = connection.execute(*dialect.columns_query(database))
        foreign_keys = connection.execute(*dialect.foreign_keys_query(database))
        return columns, foreign_keys

    def _build(self) -> dict[str, TableInfo]:
        columns, foreign_keys = self._query_metadata()
        tables: dict[str, TableInfo] = {}
        for table, column in columns:
            tables.setdefault(table.lower(), TableInfo(name=table)).fields.append(column)
        for table, column, referenced_table, referenced_column in foreign_keys:
            source = tables.setdefault(table.lower(), TableInfo(name=table))
            target = tables.setdefault(referenced_table.lower(), TableInfo(name=referenced_table))
            if referenced_column is None:
                referenced_column = target.resolve_field(IDENTITY_COLUMN) or IDENTITY_COLUMN
            source.links[target.name] = column
            target.links[source.name] = referenced_column
        logger.info("Schema catalog `%s`: %d tables, %d foreign keys",
                    self.connection_name, len(tables), len(foreign_keys))
        return tables

    def refresh(self) -> None:
        """Re-read the catalog from the database, replacing the cached metadata."""
        with self._lock:
            self._tables = self._build()

    def _get_tables(self) -> dict[str, TableInfo]:
        tables = self._tables
        if tables is None:
            with self._lock:
                if self._tables is None:
                    self._tables = self._build()
                tables = self._tables
        return tables

    def _get_table(self, table: str) -> TableInfo:
        try:
            return self._get_tables()[table.lower()]
        except KeyError as error:
            raise UnknownEntity(f"Entity `{table}` does not exist") from error

    # tables and fields

    def table_exists(self, table: str) -> bool:
        """Return True if ``table`` exists (case-insensitive)."""
        return table.lower() in self._get_tables()

    def tables(self) -> list[str]:
        """Return every table name."""
        return [info.name for info in self._get_tables().values()]

    def get_table(self, table: str) -> TableInfo:
        """Return the cached metadata for ``table``."""
        return self._get_table(table)

    def resolve_table(self, table: str) -> str:
        """Return the original casing of ``table``."""
        return self._get_table(table).name

    def fields(self, table: str) -> list[str]:
        """Return the column names of ``table`` in ordinal order."""
        return list(self._get_table(table).fields)

    def has_field(self, table: str, field: str) -> bool:
        """Return True if ``table`` has a column named ``field`` (case-insensitive)."""
        return self._get_table(table).resolve_field(field) is not None

    def resolve_field(self, table: str, field: str) -> str:
        """Return the original casing of ``field`` on ``table``."""
        resolved = self._get_table(table).resolve_field(field)
        if resolved is None:
            raise UnknownField(f"The entity `{table}` does not have a field `{field}`")
        return resolved

    def identity_column(self, table: str) -> str:
        """Return the identity column of ``table`` in its original casing."""
        return self.resolve_field(table, IDENTITY_COLUMN)

    # links

    def links(self, table: str) -> dict[str, str]:
        """Return linked table -> local column for ``table``."""
        return dict(self._get_table(table).links)

    def is_linked(self, table: str, origin: str) -> bool:
        """Return True if a foreign key directly connects ``origin`` and ``table``."""
        self._get_table(table)
        return self._get_table(origin).link_column(table) is not None

    def get_link(self, table: str, origin: str) -> dict[str, str]:
        """Return ``{table: column}`` where column is the field of ``origin`` linking to ``table``."""
        column = self._get_table(origin).link_column(table)
        if column is None:
            raise NotLinked(f"Entity `{origin}` and entity `{table}` are not linked")
        return {self.resolve_table(table): column}

    def association_tables(self) -> dict[str, TableInfo]:
        """Return the tables that look like many-to-many join tables."""
        return {
            info.name: info
            for info in self._get_tables().values()
            if info.is_association
        }

    def find_association(self, table: str, origin: str) -> TableInfo:
        """Return the association table linking ``origin`` to ``table``."""
        self._get_table(table)
        self._get_table(origin)
        for info in self.association_tables().values():
            if info.link_column(table) is not None and info.link_column(origin) is not None:
                return info
        raise NoAssociation(f"`{origin}` and `{table}` are not linked by an association table")


_catalogs: dict[str, SchemaCatalog] = {}
_catalogs_lock = threading.Lock()


def get_catalog(connection_name: str = "default") -> SchemaCatalog:
    """Return the process-wide catalog of ``connection_name``."""
    with _catalogs_lock:
        catalog = _catalogs.get(connection_name)
        if catalog is None:
            catalog = _catalogs[connection_name] = SchemaCatalog(connection_name)
        return catalog


def reset_catalogs() -> None:
    """Forget every cached catalog; the next lookup re-reads the database."""
    with _catalogs_lock:
        _catalogs.clear()
