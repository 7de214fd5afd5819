"""Collection relations: one-to-many through a foreign key, many-to-many through an association table.

Declared on an entity class, ``OneToMany(Post)`` and ``ManyToMany(Role)``
give each instance a relation object, created on first access and cached,
which lists related entities as unloaded proxies.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .catalog import IDENTITY_COLUMN, SchemaCatalog, TableInfo, get_catalog
from .entity.columns import Declaration, FieldDescriptor
from .errors import NoAssociation, NotFound, NotLinked, NotPersisted, TypeMismatch
from .expressions import Where
from .registry import resolve_entity_class
from .repository import Repository

logger = logging.getLogger("schemorm")


class Relation:
    """Related entities of one owner; ``get()`` results are cached until reloaded."""

    def __init__(self, owner, target: type | str):
        self.owner = owner
        self._target = target
        self._items: Optional[list] = None

    @property
    def target_class(self) -> type:
        return resolve_entity_class(self._target)

    @property
    def _catalog(self) -> SchemaCatalog:
        return get_catalog(self.owner._CONNECTION_NAME)

    @property
    def _connection_name(self) -> str:
        return self.owner._CONNECTION_NAME

    def _query_ids(self) -> list[int]:
        raise NotImplementedError

    def get(self, reload: bool = False) -> list:
        """Return the related entities as unloaded proxies; empty for a new owner."""
        if self.owner.is_new:
            return []
        if self._items is None or reload:
            target = self.target_class
            self._items = [target.proxy(id) for id in self._query_ids()]
        return self._items

    def get_loaded(self, reload: bool = False) -> list:
        """Like get(), with every related entity's fields populated."""
        items = self.get(reload)
        if not items:
            return items
        target = self.target_class
        if len(target._segments) > 1:
            for item in items:
                item.load()
            return items
        table = target._segments[0].table
        repository = Repository(table=table, connection_name=target._CONNECTION_NAME)
        identity = get_catalog(target._CONNECTION_NAME).identity_column(table)
        rows = repository.select_all(conditions=Where(
            table=table, field=identity, value=[item.id for item in items],
            connection_name=target._CONNECTION_NAME,
        ))
        by_id = {row[identity]: row for row in rows}
        for item in items:
            item.import_(by_id.get(item.id, {}))
        return items

    def __iter__(self):
        return iter(self.get())

    def __len__(self) -> int:
        return len(self.get())


class OneToManyRelation(Relation):
    """Entities whose foreign key points at the owner."""

    def _link(self) -> tuple[str, str]:
        """Return (related table, its column referencing the owner)."""
        for owner_segment in self.owner._segments:
            for segment in self.target_class._segments:
                if self._catalog.is_linked(owner_segment.table, segment.table):
                    link = self._catalog.get_link(owner_segment.table, segment.table)
                    return segment.table, next(iter(link.values()))
        raise NotLinked(f"{type(self.owner).__name__} and {self.target_class.__name__} are not linked")

    def _query_ids(self) -> list[int]:
        table, column = self._link()
        repository = Repository(table=table, connection_name=self._connection_name)
        rows = repository.select(
            {table: [IDENTITY_COLUMN]},
            conditions=Where(table=table, field=column, value=self.owner.id,
                             connection_name=self._connection_name),
        )
        return [next(iter(row.values())) for row in rows]


class ManyToManyRelation(Relation):
    """Entities tied to the owner through an association table."""

    def _association(self) -> tuple[TableInfo, str, str]:
        """Return (association table, column for the owner, column for the related entity)."""
        for owner_segment in self.owner._segments:
            for segment in self.target_class._segments:
                try:
                    info = self._catalog.find_association(segment.table, owner_segment.table)
                except NoAssociation:
                    continue
                return info, info.link_column(owner_segment.table), info.link_column(segment.table)
        raise NoAssociation(
            f"{type(self.owner).__name__} and {self.target_class.__name__} have no association table"
        )

    def _query_ids(self) -> list[int]:
        info, owner_column, related_column = self._association()
        repository = Repository(table=info.name, connection_name=self._connection_name)
        rows = repository.select(
            {info.name: [related_column]},
            conditions=Where(table=info.name, field=owner_column, value=self.owner.id,
                             connection_name=self._connection_name),
        )
        return [next(iter(row.values())) for row in rows]

    def add(self, entity: Any) -> None:
        """Associate a persisted entity (or the identity of one) with the owner.

        The entity is appended to the cached list, if the list was already fetched.
        """
        if self.owner.is_new:
            raise NotPersisted(f"Save the {type(self.owner).__name__} before adding relations")
        target = self.target_class
        if isinstance(entity, int) and not isinstance(entity, bool):
            entity = target(entity)
        elif not isinstance(entity, target):
            raise TypeMismatch(f"Expected {target.__name__}, got {type(entity).__name__}")
        elif entity.is_new:
            raise NotPersisted(f"Save the {target.__name__} before adding it")
        elif not entity.exists():
            raise NotFound(f"{target.__name__} with {IDENTITY_COLUMN}={entity.id} does not exist")
        info, owner_column, related_column = self._association()
        Repository(table=info.name, connection_name=self._connection_name).insert(
            {owner_column: self.owner.id, related_column: entity.id}
        )
        logger.debug("Associated %r with %r through `%s`", self.owner, entity, info.name)
        if self._items is not None:
            self._items.append(entity)


class _RelationDeclaration(Declaration):
    relation_class: type[Relation] = Relation

    def __init__(self, target: type | str):
        self.target = target

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        relation = instance._relations.get(self.name)
        if relation is None:
            relation = instance._relations[self.name] = self.relation_class(instance, self.target)
        return relation

    def describe(self) -> FieldDescriptor:
        return FieldDescriptor(name=self.name, kind=self.relation_class, is_relation=True)


class OneToMany(_RelationDeclaration):
    """Declare the entities whose foreign key references this entity's table."""

    relation_class = OneToManyRelation


class ManyToMany(_RelationDeclaration):
    """Declare the entities linked to this one through an association table."""

    relation_class = ManyToManyRelation
