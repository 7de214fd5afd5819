"""Table name -> entity class registry, filled as entity classes are defined."""

import logging
import threading
from typing import Optional

from .errors import UnknownEntity

logger = logging.getLogger("schemorm")

_entities: dict[str, type] = {}
_lock = threading.Lock()


def register(table: str, cls: type) -> None:
    """Map ``table`` (case-insensitive) to the entity class ``cls``."""
    key = table.lower()
    with _lock:
        previous = _entities.get(key)
        if previous is not None and previous is not cls:
            logger.debug("Entity `%s` now maps to %s (was %s)", table, cls.__qualname__, previous.__qualname__)
        _entities[key] = cls


def get_entity_class(name: str) -> type:
    """Return the entity class registered for the table ``name``."""
    try:
        return _entities[name.lower()]
    except KeyError as error:
        raise UnknownEntity(f"No entity class is registered for `{name}`") from error


def resolve_entity_class(target) -> type:
    """Accept an entity class or a table name, and return the entity class."""
    if isinstance(target, str):
        return get_entity_class(target)
    return target


def get_entity(name: str, id: Optional[int] = None):
    """Instantiate the entity registered for ``name``, loading row ``id`` when given."""
    return get_entity_class(name)(id)


def get_repository(name: str, connection_name: Optional[str] = None):
    """Return a repository for the table ``name``.

    A registered entity lends its connection; otherwise ``connection_name``
    (default "default") is used and the table only has to exist in the catalog.
    """
    from .catalog import get_catalog
    from .repository import Repository
    if connection_name is None:
        cls = _entities.get(name.lower())
        connection_name = cls._CONNECTION_NAME if cls is not None else "default"
    table = get_catalog(connection_name).resolve_table(name)
    return Repository(table=table, connection_name=connection_name)
