"""Declarations placed on Entity classes: persisted columns and many-to-one references.

Each declaration describes itself as a frozen ``FieldDescriptor`` once, when the
class is created, and makes a fresh ``Field`` container for every entity
instance. Attribute access on an instance goes through that container.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from ..field import EntityField, Field, StringField
from ..registry import resolve_entity_class


class FieldDescriptor(BaseModel):
    """Static description of one declared property of an entity class."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    """Python attribute name."""
    column: Optional[str] = None
    """Backing column; None for collections, which have no column of their own."""
    kind: type
    """Container class holding the value (a Field subclass, or a relation class)."""
    nullable: bool = True
    is_identity: bool = False
    is_relation: bool = False


class Declaration:
    """Base of everything an entity class collects into its table segment."""

    name: str

    def __set_name__(self, owner: type, name: str):
        self.name = name

    def describe(self) -> FieldDescriptor:
        raise NotImplementedError


class Column(Declaration):
    """A persisted column, holding values through a ``kind`` Field.

    Example:
        >>> class User(Entity, table="user"):
        ...     name = Column(StringField)
        ...     age = Column(IntField, nullable=True)
    """

    def __init__(self, kind: type[Field] = StringField, column: Optional[str] = None, nullable: bool = False):
        self.kind = kind
        self.column = column
        self.nullable = nullable

    def __set_name__(self, owner: type, name: str):
        super().__set_name__(owner, name)
        if self.column is None:
            self.column = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.field(self.name).get(load=not instance.is_new)

    def __set__(self, instance, value):
        instance.field(self.name).set(value)

    def describe(self) -> FieldDescriptor:
        return FieldDescriptor(name=self.name, column=self.column, kind=self.kind, nullable=self.nullable)

    def make_field(self, loader: Optional[Callable[[], Any]] = None) -> Field:
        return self.kind(loader=loader, nullable=self.nullable)


class Reference(Column):
    """Many-to-one reference to another entity, stored as its identity.

    ``target`` is the entity class, or its table name when the class is
    defined later.
    """

    def __init__(self, target: type | str, column: Optional[str] = None, nullable: bool = False):
        super().__init__(kind=EntityField, column=column, nullable=nullable)
        self.target = target

    def describe(self) -> FieldDescriptor:
        return FieldDescriptor(name=self.name, column=self.column, kind=self.kind,
                               nullable=self.nullable, is_relation=True)

    def make_field(self, loader: Optional[Callable[[], Any]] = None) -> EntityField:
        return EntityField(resolve_entity_class(self.target), loader=loader, nullable=self.nullable)
