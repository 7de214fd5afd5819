"""Metaclass for Entity: builds the table segments and registers the class."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ..catalog import IDENTITY_COLUMN
from ..field import IdentityField
from ..registry import register
from .columns import Declaration, FieldDescriptor


class TableSegment(BaseModel):
    """One level of an entity's inheritance chain: a table and the properties it declares."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    table: str
    entity: Any
    """Entity class declaring this segment."""
    descriptors: tuple[FieldDescriptor, ...] = ()

    @property
    def columns(self) -> list[FieldDescriptor]:
        """Persisted, non-identity descriptors, in declaration order."""
        return [d for d in self.descriptors if d.column is not None and not d.is_identity]


class EntityMeta(type):
    """Collects declarations into a ``TableSegment`` appended to the parent's segments.

    Class keywords:
        table: backing table name (defaults to the class name).
        connection_name: named connection (inherited when omitted).
        abstract: if True, the class has no table and is not registered.
    """

    def __new__(mcs, name, bases, namespace,
                table: Optional[str] = None,
                connection_name: Optional[str] = None,
                abstract: bool = False,
                **kwargs):
        result = super().__new__(mcs, name, bases, namespace, **kwargs)
        if not connection_name:
            for base in bases:
                cn = getattr(base, "_CONNECTION_NAME", None)
                if cn:
                    connection_name = cn
        result._CONNECTION_NAME = connection_name or "default"
        parent = next((base for base in bases if isinstance(base, EntityMeta)), None)
        parent_segments = parent._segments if parent is not None else ()
        declarations = dict(parent._declarations) if parent is not None else {}
        # declared on abstract ancestors, not yet part of any segment
        pending = dict(parent._pending) if parent is not None else {}
        own = {key: value for key, value in namespace.items() if isinstance(value, Declaration)}
        declarations.update(own)
        pending.update(own)
        result._declarations = declarations
        if abstract:
            result._segments = parent_segments
            result._pending = pending
            return result
        identity = FieldDescriptor(name="id", column=IDENTITY_COLUMN, kind=IdentityField,
                                   nullable=False, is_identity=True)
        segment = TableSegment(
            table=table or name,
            entity=result,
            descriptors=(identity, *(declaration.describe() for declaration in pending.values())),
        )
        result._segments = parent_segments + (segment,)
        result._pending = {}
        register(segment.table, result)
        return result
