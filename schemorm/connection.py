"""Named database connections: URL registration, lazy handles, statement execution.

One raw driver connection is shared per name. It is opened on first use,
never pooled, and dropped whenever the connection is reconfigured.
"""

import logging
import threading
import urllib.parse
from typing import Any, Callable, Optional

from .dialects import Dialect, get_dialect_for_scheme
from .errors import DatabaseUnreachable

logger = logging.getLogger("schemorm")


class Connection:
    """A lazily established, lock-guarded database handle."""

    def __init__(self, database_url: str | Callable[[], str], name: str = "default"):
        self.name = name
        self._database_url = database_url
        self._raw = None
        self._lock = threading.RLock()

    @property
    def url(self) -> str:
        """The database URL, resolving a URL factory if one was registered."""
        if callable(self._database_url):
            return self._database_url()
        return self._database_url

    @property
    def dialect(self) -> Dialect:
        """Dialect matching the URL scheme."""
        return get_dialect_for_scheme(urllib.parse.urlparse(self.url).scheme)

    @property
    def database_name(self) -> str:
        """Name of the active database (file path for SQLite)."""
        parsed = urllib.parse.urlparse(self.url)
        return (parsed.path or "")[1:] or (parsed.hostname or "")

    def reconfigure(self, database_url: str | Callable[[], str]) -> None:
        """Point this connection at a new URL; the cached handle is dropped."""
        with self._lock:
            self.close()
            self._database_url = database_url

    def close(self) -> None:
        """Close the cached raw connection, if any."""
        with self._lock:
            if self._raw is not None:
                self._raw.close()
                self._raw = None

    def raw(self):
        """Return the raw driver connection, opening it on first use."""
        with self._lock:
            if self._raw is None:
                url = self.url
                try:
                    self._raw = self.dialect.connect(url)
                except Exception as error:
                    raise DatabaseUnreachable(
                        f"Cannot connect to database `{self.name}`: {error}"
                    ) from error
                logger.info("Connection `%s` established", self.name)
            return self._raw

    def execute(
        self,
        sql: str,
        parameters: Optional[dict[str, Any]] = None,
        rows_as_dicts: bool = False,
    ) -> list:
        """Run one statement in its own transaction and return its rows (empty for writes).

        The transaction is committed on success, including for reads, and rolled
        back if the statement fails.

        Args:
            sql: Full SQL statement with named placeholders.
            parameters: Bound values keyed by placeholder name.
            rows_as_dicts: If True, return dicts keyed by column name instead of tuples.
        """
        if parameters is None:
            parameters = {}
        with self._lock:
            raw = self.raw()
            logger.debug("%s %r", sql, parameters)
            cursor = raw.cursor()
            try:
                cursor.execute(sql, parameters)
                description = cursor.description
                rows = [] if description is None else cursor.fetchall()
                raw.commit()
            except Exception:
                raw.rollback()
                raise
            finally:
                cursor.close()
        if description is None:
            return []
        if rows_as_dicts:
            names = [column[0] for column in description]
            return [dict(zip(names, row)) for row in rows]
        return [tuple(row) for row in rows]

    def insert(
        self,
        sql: str,
        parameters: Optional[dict[str, Any]] = None,
        returning: bool = False,
    ) -> int:
        """Run an INSERT, commit it (or roll it back on failure), and return the generated identity.

        With ``returning``, the statement ends with ``RETURNING <identity>`` and the
        value is read from the result; otherwise the cursor's ``lastrowid`` is used.
        """
        if parameters is None:
            parameters = {}
        with self._lock:
            raw = self.raw()
            logger.debug("%s %r", sql, parameters)
            cursor = raw.cursor()
            try:
                cursor.execute(sql, parameters)
                identity = cursor.fetchone()[0] if returning else cursor.lastrowid
                raw.commit()
                return identity
            except Exception:
                raw.rollback()
                raise
            finally:
                cursor.close()


_connections: dict[str, Connection] = {}
_connections_lock = threading.Lock()
_settings: dict[str, dict[str, Any]] = {}


def connect(database_url: str | Callable[[], str], name: str = "default") -> Connection:
    """Register ``database_url`` under ``name``; an existing connection is reconfigured."""
    if not isinstance(database_url, str) and not callable(database_url):
        raise ValueError("`database_url` should be either a `str`, or a method returning a `str`")
    with _connections_lock:
        connection = _connections.get(name)
        if connection is None:
            connection = _connections[name] = Connection(database_url, name=name)
        else:
            connection.reconfigure(database_url)
    return connection


def configure(host: Optional[str] = None,
              database: Optional[str] = None,
              user: Optional[str] = None,
              password: Optional[str] = None,
              port: Optional[int] = None,
              scheme: Optional[str] = None,
              name: str = "default") -> Connection:
    """Set individual connection parameters; changing any of them drops the cached handle."""
    settings = _settings.setdefault(name, {"scheme": "mysql", "host": "localhost", "port": None,
                                           "database": "", "user": "", "password": ""})
    changes = {"host": host, "database": database, "user": user,
               "password": password, "port": port, "scheme": scheme}
    changes = {key: value for key, value in changes.items() if value is not None}
    changed = any(settings.get(key) != value for key, value in changes.items())
    settings.update(changes)
    if not changed and name in _connections:
        return _connections[name]
    credentials = urllib.parse.quote(settings["user"], safe="")
    if settings["password"]:
        credentials += ":" + urllib.parse.quote(settings["password"], safe="")
    netloc = settings["host"]
    if settings["port"]:
        netloc += f":{settings['port']}"
    if credentials:
        netloc = f"{credentials}@{netloc}"
    return connect(f"{settings['scheme']}://{netloc}/{settings['database']}", name=name)


def get_connection(name: str = "default") -> Connection:
    """Return the connection registered under ``name``."""
    try:
        return _connections[name]
    except KeyError as error:
        raise ValueError(f"No connection configured with name=`{name}`") from error
