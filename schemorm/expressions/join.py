"""INNER JOIN between two linked tables."""

from typing import Optional

from pydantic import model_validator

from ..errors import MissingJoinTarget, NotLinked, SourceNotAvailable, UnreachableTable
from ._bases import Expression


class Join(Expression):
    """``INNER JOIN target ON source.x = target.y`` resolved through catalog links.

    When ``source`` is not given, ``resolve()`` adopts the first table already
    available in the query that is linked to ``target``.
    """

    target: Optional[str] = None
    """Table to join; stored in its original casing."""
    source: Optional[str] = None
    """Table joined from; must be linked to ``target``."""

    @model_validator(mode="after")
    def _resolve_names(self) -> "Join":
        if self.target is not None:
            self.target = self._catalog.resolve_table(self.target)
        if self.source is not None:
            if self.target is None:
                raise MissingJoinTarget("The table to join has not been set")
            source = self._catalog.resolve_table(self.source)
            if not self._catalog.is_linked(source, self.target):
                raise NotLinked(f"The table `{source}` is not linked to the table `{self.target}`")
            self.source = source
        return self

    def resolve(self, available: list[str]) -> None:
        """Check the join against the tables ``available`` so far, then append the target to them."""
        if self.target is None:
            raise MissingJoinTarget("The table to join has not been set")
        lowered = [table.lower() for table in available]
        if self.source is not None:
            if self.source.lower() not in lowered:
                raise SourceNotAvailable(f"The source table `{self.source}` is not available")
        else:
            for table in available:
                if self._catalog.is_linked(table, self.target):
                    self.source = self._catalog.resolve_table(table)
                    break
            else:
                raise UnreachableTable(f"The table `{self.target}` is unreachable")
        available.append(self.target)

    @property
    def sql(self) -> str:
        if self.target is None:
            raise MissingJoinTarget("The table to join has not been set")
        if self.source is None:
            raise UnreachableTable(f"The join to `{self.target}` has not been resolved")
        source_column = self._catalog.get_link(self.target, self.source)[self.target]
        target_column = self._catalog.get_link(self.source, self.target)[self.source]
        return (f"INNER JOIN {self.target} ON {self.source}.{source_column}"
                f" = {self.target}.{target_column}")
