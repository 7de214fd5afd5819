"""SQL fragment builders for WHERE conditions and JOIN clauses.

Both resolve table and column names against the schema catalog of their
connection, expose a ``.sql`` fragment with named placeholders, and bind
their values with ``.bind_into(parameters)``.
"""

from ._bases import Expression
from .join import Join
from .where import Where

__all__ = [
    "Expression",
    "Join",
    "Where",
]
