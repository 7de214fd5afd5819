"""Entity classes and their declarative columns."""

from .base import Entity
from .columns import Column, Declaration, FieldDescriptor, Reference
from .meta import EntityMeta, TableSegment

__all__ = [
    "Entity",
    "EntityMeta",
    "TableSegment",
    "Column",
    "Declaration",
    "FieldDescriptor",
    "Reference",
]
