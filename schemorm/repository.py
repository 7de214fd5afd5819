"""Data-access gateway for one table: INSERT, UPDATE, DELETE and SELECT with JOIN/WHERE.

Table and column names are validated against the schema catalog and then
interpolated; every value goes through a bound parameter.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import BaseModel

from .catalog import SchemaCatalog, get_catalog
from .connection import Connection, get_connection
from .errors import IncompleteCondition, TableNotAvailable, UnknownField
from .expressions import Join, Where

logger = logging.getLogger("schemorm")


def _as_list(items: Join | Where | Iterable | None) -> list:
    if items is None:
        return []
    if isinstance(items, (Join, Where)):
        return [items]
    return list(items)


class Repository(BaseModel):
    """Gateway to a single table of a named connection.

    Example:
        >>> users = Repository(table="user")
        >>> user_id = users.insert({"name": "Ann"})
        >>> users.select({"user": ["name"]}, conditions=Where(table="user", field="Id", value=user_id))
        [{'name': 'Ann'}]
    """

    model_config = {"arbitrary_types_allowed": True}

    table: str
    """Table this repository reads and writes."""
    connection_name: str = "default"

    @property
    def _catalog(self) -> SchemaCatalog:
        return get_catalog(self.connection_name)

    @property
    def _connection(self) -> Connection:
        return get_connection(self.connection_name)

    @property
    def name(self) -> str:
        """Table name in its original casing."""
        return self._catalog.resolve_table(self.table)

    def has_field(self, field: str) -> bool:
        """Return True if the table has a column named ``field``."""
        return self._catalog.has_field(self.table, field)

    # verifiers

    def _verify_values(self, values: dict[str, Any]) -> dict[str, Any]:
        """Return ``values`` keyed by canonical column names; raise on unknown columns."""
        verified = {}
        for field, value in values.items():
            if not self.has_field(field):
                raise UnknownField(f"Field `{field}` does not exist in entity `{self.name}`")
            verified[self._catalog.resolve_field(self.table, field)] = value
        return verified

    def _verify_joins(self, joins: list[Join], available: list[str]) -> None:
        for join in joins:
            join.resolve(available)

    def _verify_fields(self, fields: dict[str, list[str]], available: list[str]) -> dict[str, list[str]]:
        """Return ``fields`` with canonical names; every table must be available."""
        lowered = [table.lower() for table in available]
        verified = {}
        for table, columns in fields.items():
            name = self._catalog.resolve_table(table)
            if name.lower() not in lowered:
                raise TableNotAvailable(f"Entity `{name}` is not available in the current context")
            verified[name] = [self._catalog.resolve_field(name, column) for column in columns]
        return verified

    # query makers

    def _placeholder(self, name: str) -> str:
        return self._connection.dialect.f.placeholder(name)

    def _sql_where(self, conditions: list[Where], parameters: dict[str, Any]) -> str:
        if not conditions:
            return ""
        fragments = []
        for condition in conditions:
            condition = self._rename_colliding(condition, parameters)
            condition.bind_into(parameters)
            fragments.append(condition.sql)
        return "\nWHERE " + " AND ".join(fragments)

    def _rename_colliding(self, condition: Where, parameters: dict[str, Any]) -> Where:
        """Return ``condition``, or a copy with a new parameter stem if a name is already bound."""
        index = 1
        while any(name in parameters for name in condition.values):
            condition = condition.model_copy(update={"prefix": f"{condition.field}_{index}_"})
            index += 1
        return condition

    def _sql_join(self, joins: list[Join]) -> str:
        return "".join(f"\n{join.sql}" for join in joins)

    def _sql_select(self, fields: dict[str, list[str]]) -> str:
        columns = [f"{table}.{column}" for table, names in fields.items() for column in names]
        return f"SELECT {', '.join(columns)}\nFROM {self.name}"

    # queries

    def insert(self, values: dict[str, Any]) -> int:
        """Insert one row and return its generated identity (0 for tables without one)."""
        values = self._verify_values(values)
        if not values:
            raise ValueError(f"No values given to insert into `{self.name}`")
        info = self._catalog.get_table(self.table)
        dialect = self._connection.dialect
        sql = (
            f"INSERT INTO {self.name} ({', '.join(values)})\n"
            f"VALUES ({', '.join(map(self._placeholder, values))})"
        )
        returning = dialect.INSERT_RETURNING and info.has_identity
        if returning:
            sql += f"\nRETURNING {self._catalog.identity_column(self.table)}"
        identity = self._connection.insert(sql, dict(values), returning=returning)
        return identity if info.has_identity else 0

    def update(self, values: dict[str, Any], conditions: Where | list[Where]) -> None:
        """Update the rows matching every condition; at least one condition is required."""
        values = self._verify_values(values)
        conditions = _as_list(conditions)
        if not conditions:
            raise IncompleteCondition(f"Refusing to update `{self.name}` without a condition")
        if not values:
            return
        parameters = dict(values)
        sql = f"UPDATE {self.name}\nSET " + ", ".join(
            f"{field} = {self._placeholder(field)}" for field in values
        )
        sql += self._sql_where(conditions, parameters)
        self._connection.execute(sql, parameters)

    def delete(self, conditions: Where | list[Where]) -> None:
        """Delete the rows matching every condition; at least one condition is required."""
        conditions = _as_list(conditions)
        if not conditions:
            raise IncompleteCondition(f"Refusing to delete from `{self.name}` without a condition")
        parameters: dict[str, Any] = {}
        sql = f"DELETE FROM {self.name}" + self._sql_where(conditions, parameters)
        self._connection.execute(sql, parameters)

    def select(
        self,
        fields: dict[str, list[str]],
        joins: Join | list[Join] | None = None,
        conditions: Where | list[Where] | None = None,
    ) -> list[dict[str, Any]]:
        """Select columns grouped by table, e.g. ``{"user": ["Id", "name"], "post": ["title"]}``.

        Args:
            fields: Table -> columns to return; each table must be this repository's
                table or one introduced by ``joins``.
            joins: Optional JOIN clauses, resolved in order.
            conditions: Optional WHERE conditions, AND-combined.

        Returns:
            One dict per row, keyed by column name.
        """
        joins = _as_list(joins)
        conditions = _as_list(conditions)
        available = [self.name]
        self._verify_joins(joins, available)
        fields = self._verify_fields(fields, available)
        return self._run_select(fields, joins, conditions)

    def select_all(
        self,
        joins: Join | list[Join] | None = None,
        conditions: Where | list[Where] | None = None,
    ) -> list[dict[str, Any]]:
        """Like select(), with every column of every available table."""
        joins = _as_list(joins)
        conditions = _as_list(conditions)
        available = [self.name]
        self._verify_joins(joins, available)
        fields = {table: self._catalog.fields(table) for table in available}
        return self._run_select(fields, joins, conditions)

    def _run_select(self, fields, joins, conditions) -> list[dict[str, Any]]:
        if not any(fields.values()):
            raise ValueError(f"No fields selected from `{self.name}`")
        parameters: dict[str, Any] = {}
        sql = self._sql_select(fields) + self._sql_join(joins) + self._sql_where(conditions, parameters)
        return self._connection.execute(sql, parameters, rows_as_dicts=True)


__all__ = ["Repository"]
