"""Base expression type for SQL fragments built against the schema catalog."""

from typing import Any

from pydantic import BaseModel

from ..catalog import SchemaCatalog, get_catalog
from ..connection import get_connection
from ..dialects import Dialect


class Expression(BaseModel):
    """Base type for SQL fragment builders.

    Subclasses must implement the ``sql`` property. The default ``values``
    is an empty dict; expressions that bind literals override it to return
    the bound values keyed by the placeholder names used in ``sql``.
    """

    model_config = {"arbitrary_types_allowed": True}

    connection_name: str = "default"
    """Connection whose catalog and dialect the expression is resolved against."""

    @property
    def sql(self) -> str:
        """SQL fragment for this expression, with named placeholders for bound values."""
        raise NotImplementedError("Subclasses must implement `sql` property")

    @property
    def values(self) -> dict[str, Any]:
        """Bound values keyed by placeholder name."""
        return {}

    def bind_into(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """Add this expression's bound values to ``parameters`` and return it."""
        parameters.update(self.values)
        return parameters

    @property
    def _catalog(self) -> SchemaCatalog:
        return get_catalog(self.connection_name)

    @property
    def _dialect(self) -> Dialect:
        return get_connection(self.connection_name).dialect
