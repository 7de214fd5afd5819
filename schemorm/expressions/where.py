"""WHERE condition on a single column."""

import secrets
from typing import Any, Optional

from pydantic import Field as PydanticField, model_validator

from ..errors import IncompleteCondition
from ._bases import Expression


def _make_salt() -> str:
    return secrets.token_hex(16)


class Where(Expression):
    """Condition ``table.field <op> value`` with bound parameters.

    A list value means membership (``IN``/``NOT IN``, one parameter per
    element); otherwise ``like`` selects substring matching (``LIKE``/``NOT
    LIKE``, wildcards added to the bound value) and the default is ``=``/``!=``.
    ``equal=False`` negates the operator.

    Example:
        >>> Where(table="user", field="name", value="Ann").sql
        'user.name = :name5f0c...'
    """

    table: Optional[str] = None
    """Target table; must exist in the catalog. Stored in its original casing."""
    field: Optional[str] = None
    """Target column; must exist on the table. Stored in its original casing."""
    value: Any = None
    """Scalar, or list for membership."""
    equal: bool = True
    like: bool = False
    salt: str = PydanticField(default_factory=_make_salt)
    """Random suffix keeping placeholder names unique across conditions."""
    prefix: Optional[str] = None
    """Stem of the parameter names; the field name when unset."""

    @model_validator(mode="after")
    def _resolve_names(self) -> "Where":
        if self.table is not None:
            self.table = self._catalog.resolve_table(self.table)
        if self.field is not None:
            if self.table is None:
                raise IncompleteCondition("The table must be set before the field")
            self.field = self._catalog.resolve_field(self.table, self.field)
        return self

    # builder

    def with_table(self, table: str) -> "Where":
        """Return a fresh condition on ``table`` (field and value are reset)."""
        return Where(table=table, connection_name=self.connection_name)

    def with_field(self, field: str) -> "Where":
        """Return a copy targeting ``field``."""
        return Where(**{**self._state(), "field": field})

    def with_value(self, value: Any) -> "Where":
        """Return a copy comparing against ``value``."""
        return Where(**{**self._state(), "value": value})

    def _state(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "field": self.field,
            "value": self.value,
            "equal": self.equal,
            "like": self.like,
            "connection_name": self.connection_name,
        }

    def invert_equal(self) -> bool:
        """Toggle negation; return the new ``equal`` flag."""
        self.equal = not self.equal
        return self.equal

    def invert_like(self) -> bool:
        """Toggle substring matching; return the new ``like`` flag."""
        self.like = not self.like
        return self.like

    # rendering

    @property
    def is_list(self) -> bool:
        return isinstance(self.value, (list, tuple, set))

    @property
    def is_complete(self) -> bool:
        """True once table, field and a non-empty value are set."""
        if self.table is None or self.field is None or self.value is None:
            return False
        return not (self.is_list and len(self.value) == 0)

    def _ensure_complete(self) -> None:
        if not self.is_complete:
            raise IncompleteCondition(
                "All the values needed by the condition have not been set "
                f"(table={self.table!r}, field={self.field!r}, value={self.value!r})"
            )

    def _parameter_names(self) -> list[str]:
        stem = self.prefix or self.field
        if self.is_list:
            return [f"{stem}{index}" for index in range(len(self.value))]
        return [f"{stem}{self.salt}"]

    @property
    def sql(self) -> str:
        self._ensure_complete()
        placeholder = self._dialect.f.placeholder
        names = self._parameter_names()
        column = f"{self.table}.{self.field}"
        if self.is_list:
            operator = "IN" if self.equal else "NOT IN"
            return f"{column} {operator} (" + ", ".join(map(placeholder, names)) + ")"
        if self.like:
            operator = "LIKE" if self.equal else "NOT LIKE"
        else:
            operator = "=" if self.equal else "!="
        return f"{column} {operator} {placeholder(names[0])}"

    @property
    def values(self) -> dict[str, Any]:
        self._ensure_complete()
        names = self._parameter_names()
        if self.is_list:
            return dict(zip(names, self.value))
        if self.like:
            return {names[0]: f"%{self.value}%"}
        return {names[0]: self.value}
