"""Exceptions raised by schemorm.

There is no common base class: each error derives from the closest builtin,
and callers branch on the concrete kind.
"""


# invalid schema references

class UnknownEntity(LookupError):
    """A table name does not exist in the schema catalog."""


class UnknownField(LookupError):
    """A column name does not exist on the given table."""


# graph resolution

class NotLinked(LookupError):
    """No foreign key directly connects two tables."""


class NoAssociation(LookupError):
    """No association (join) table connects two tables."""


class UnreachableTable(LookupError):
    """A join target is not linked to any table available in the query."""


class SourceNotAvailable(LookupError):
    """A join source table has not been made available by the query yet."""


class TableNotAvailable(LookupError):
    """A selected table is neither the repository's table nor a joined one."""


# builder misuse

class IncompleteCondition(RuntimeError):
    """A WHERE condition was used before its table, field and value were set."""


class MissingJoinTarget(RuntimeError):
    """A join was used before its target table was set."""


# field validation

class TypeMismatch(TypeError):
    """A value was rejected by a field's type validator."""


class InvalidFormat(ValueError):
    """A string could not be parsed into the field's type."""


class NonNullableFieldMissing(ValueError):
    """A non-nullable field holds no value."""


# entity lifecycle

class NotFound(LookupError):
    """No row exists for the given identity."""


class NotPersisted(RuntimeError):
    """The operation requires a persisted entity."""


class StaleId(LookupError):
    """The identity of a persisted entity no longer matches a row."""


class ImmutableIdentity(RuntimeError):
    """An identity field cannot be reassigned."""


# storage

class DatabaseUnreachable(ConnectionError):
    """The database could not be reached."""
