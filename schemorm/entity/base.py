"""Entity base class: lifecycle (new -> persisted), persistence and serialization."""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional

from ..catalog import IDENTITY_COLUMN
from ..errors import (
    NonNullableFieldMissing,
    NotFound,
    NotPersisted,
    StaleId,
    TypeMismatch,
    UnknownField,
)
from ..expressions import Where
from ..field import Field, IdentityField
from ..repository import Repository
from .columns import FieldDescriptor
from .meta import EntityMeta, TableSegment

logger = logging.getLogger("schemorm")


class Entity(metaclass=EntityMeta, abstract=True):
    """Base class for persistent domain objects backed by one or more tables.

    A subclass maps to one table; subclassing a concrete entity adds a table
    sharing the parent's identity, so every instance spans one row per level.

    Example:
        >>> class User(Entity, table="user"):
        ...     name = Column(StringField)
        ...     age = Column(IntField, nullable=True)
        >>> user = User(name="Ann")
        >>> user.save()
        >>> User(user.id).name
        'Ann'
    """

    _segments: ClassVar[tuple[TableSegment, ...]] = ()
    _declarations: ClassVar[dict[str, Any]] = {}
    _pending: ClassVar[dict[str, Any]] = {}
    _CONNECTION_NAME: ClassVar[str] = "default"

    def __init__(self, id: Optional[int] = None, **values):
        """Create a new entity, or bind to the persisted row ``id``.

        Raises:
            NotFound: if ``id`` is given and no such row exists.
        """
        self._setup()
        if id is not None:
            self._attach(id)
            if not self.exists():
                raise NotFound(f"{type(self).__name__} with {IDENTITY_COLUMN}={id} does not exist")
        for name, value in values.items():
            self.field(name).set(value)

    @classmethod
    def proxy(cls, id: int) -> "Entity":
        """Return a persisted instance bound to ``id`` without checking the row exists."""
        instance = cls()
        instance._attach(id)
        return instance

    def _setup(self) -> None:
        self._is_new = True
        self._identity = IdentityField(self)
        self._fields: dict[str, Field] = {}
        self._relations: dict[str, Any] = {}
        self._repositories = [
            Repository(table=segment.table, connection_name=self._CONNECTION_NAME)
            for segment in self._segments
        ]
        for segment in self._segments:
            for descriptor in segment.columns:
                declaration = self._declarations[descriptor.name]
                self._fields[descriptor.name] = declaration.make_field(
                    loader=self._column_loader(segment, descriptor)
                )

    def _attach(self, id: int) -> None:
        self._is_new = False
        self._identity.set(id)

    def _column_loader(self, segment: TableSegment, descriptor: FieldDescriptor):
        """Return a loader fetching only ``descriptor``'s column of this entity's row."""
        def load():
            if self._is_new:
                return None
            logger.debug("Lazy loading %s.%s for %r", segment.table, descriptor.column, self)
            rows = self._repository_for(segment).select(
                {segment.table: [descriptor.column]},
                conditions=self._identity_condition(segment),
            )
            if not rows:
                raise NotFound(f"{segment.table} with {IDENTITY_COLUMN}={self.id} does not exist")
            return next(iter(rows[0].values()))
        return load

    def _repository_for(self, segment: TableSegment) -> Repository:
        return self._repositories[self._segments.index(segment)]

    def _identity_condition(self, segment: TableSegment) -> Where:
        return Where(table=segment.table, field=IDENTITY_COLUMN, value=self.id,
                     connection_name=self._CONNECTION_NAME)

    def _require_persisted(self, action: str) -> None:
        if self._is_new:
            raise NotPersisted(f"Can't {action} a new {type(self).__name__}; save it first")

    # state

    @property
    def id(self) -> Optional[int]:
        """Identity value, None while the entity is new."""
        return self._identity.get()

    @property
    def identity(self) -> IdentityField:
        return self._identity

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def is_inheritor(self) -> bool:
        """True when the entity spans more than one table."""
        return len(self._segments) > 1

    @property
    def repository(self) -> Repository:
        """Repository of this class's own table."""
        return self._repositories[-1]

    def field(self, name: str) -> Field:
        """Return the value container of the declared property ``name``."""
        if name.lower() in ("id", IDENTITY_COLUMN.lower()):
            return self._identity
        try:
            return self._fields[name]
        except KeyError as error:
            raise UnknownField(f"{type(self).__name__} has no field `{name}`") from error

    def exists(self) -> bool:
        """Return True if the identity currently matches a row; always queries."""
        if self._is_new:
            return False
        segment = self._segments[-1]
        rows = self.repository.select({segment.table: [IDENTITY_COLUMN]},
                                      conditions=self._identity_condition(segment))
        return len(rows) > 0

    # persistence

    def _collect_values(self) -> list[dict[str, Any]]:
        """Return one ``{column: value}`` dict per segment, after checking non-nullable fields."""
        load = not self._is_new
        collected = []
        for segment in self._segments:
            values = {}
            for descriptor in segment.columns:
                value = self._fields[descriptor.name].serialize(load=load)
                if value is None and not descriptor.nullable:
                    raise NonNullableFieldMissing(
                        f"Field `{descriptor.name}` of {type(self).__name__} can't be null"
                    )
                values[descriptor.column] = value
            collected.append(values)
        return collected

    def save(self) -> None:
        """Insert the entity if new, otherwise update it, one table at a time, root first.

        Raises:
            NonNullableFieldMissing: before any statement, if a required field is empty.
            StaleId: if the entity is persisted but its row no longer exists.
        """
        collected = self._collect_values()
        if not self._is_new and not self.exists():
            raise StaleId(f"{type(self).__name__} with {IDENTITY_COLUMN}={self.id} no longer exists")
        inserting = self._is_new
        levels = list(zip(self._segments, self._repositories, collected))
        root_segment, root_repository, root_values = levels[0]
        if inserting:
            self._attach(root_repository.insert(root_values))
        else:
            root_repository.update(root_values, self._identity_condition(root_segment))
        try:
            for segment, repository, values in levels[1:]:
                if inserting:
                    repository.insert({IDENTITY_COLUMN: self.id, **values})
                else:
                    repository.update(values, self._identity_condition(segment))
        except Exception:
            logger.warning("Saving %r failed after its `%s` row was written; earlier rows are kept",
                           self, root_segment.table)
            raise

    def load(self) -> None:
        """Read every table of the entity and import the values.

        Raises:
            NotPersisted: if the entity is new.
            NotFound: if a row is missing.
        """
        self._require_persisted("load")
        data: dict[str, Any] = {}
        for segment, repository in zip(self._segments, self._repositories):
            rows = repository.select_all(conditions=self._identity_condition(segment))
            if not rows:
                raise NotFound(f"{segment.table} with {IDENTITY_COLUMN}={self.id} does not exist")
            data.update(rows[0])
        self.import_(data)

    def delete(self) -> None:
        """Delete the entity's rows, leaf table first. The instance stays persisted."""
        self._require_persisted("delete")
        if not self.exists():
            raise NotFound(f"{type(self).__name__} with {IDENTITY_COLUMN}={self.id} does not exist")
        for segment, repository in reversed(list(zip(self._segments, self._repositories))):
            repository.delete(self._identity_condition(segment))

    # serialization

    def _export(self, serialize: bool) -> dict[str, Any]:
        load = not self._is_new
        data: dict[str, Any] = {IDENTITY_COLUMN: self.id}
        for segment in self._segments:
            for descriptor in segment.columns:
                field = self._fields[descriptor.name]
                if serialize or descriptor.is_relation:
                    value = field.serialize(load=load)
                else:
                    value = field.get(load=load)
                if value is None and not descriptor.nullable:
                    raise NonNullableFieldMissing(
                        f"Field `{descriptor.name}` of {type(self).__name__} can't be null"
                    )
                data[descriptor.column] = value
        return data

    def export(self) -> dict[str, Any]:
        """Return ``{column: value}`` for every persisted property; references give their identity."""
        return self._export(serialize=False)

    def import_(self, data: dict[str, Any]) -> None:
        """Assign the non-null values of ``data`` whose keys match a column (case-insensitive).

        The identity is never assigned; absent or null entries leave fields untouched.
        """
        lowered = {str(key).lower(): value for key, value in data.items()}
        for segment in self._segments:
            for descriptor in segment.columns:
                value = lowered.get(descriptor.column.lower())
                if value is not None:
                    self._fields[descriptor.name].set(value)

    def clone(self, other: "Entity | int") -> None:
        """Copy every property of ``other`` (an entity of the same root type, or its identity)."""
        root = self._segments[0].entity
        if isinstance(other, int) and not isinstance(other, bool):
            other = root(other)
            other.load()
        elif not isinstance(other, root):
            raise TypeMismatch(f"Can't clone {type(other).__name__} into {type(self).__name__}")
        self.import_(other.export())

    def to_json(self) -> dict[str, Any]:
        """JSON-ready form: the serialized values plus entity metadata."""
        return {
            "data": self._export(serialize=True),
            "meta": {
                "type": type(self).__name__,
                "is_persisted": not self._is_new,
                "is_inheritor": self.is_inheritor,
            },
        }

    def __repr__(self) -> str:
        if self._is_new:
            return f"<{type(self).__name__} (new)>"
        return f"<{type(self).__name__} {IDENTITY_COLUMN}={self.id}>"
