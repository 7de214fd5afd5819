"""Typed, validated, lazily-loaded value containers backing entity columns.

A Field holds at most one value. Reading an unset field may invoke its loader
to fetch the value from storage; a failing loader leaves the field unset
instead of raising. Setting a value the validator rejects raises
``TypeMismatch`` and leaves the previous value untouched.
"""

from __future__ import annotations

import datetime
import decimal
import logging
from typing import Any, Callable, ClassVar, Generic, Optional, TypeVar

from .errors import ImmutableIdentity, InvalidFormat, NotPersisted, TypeMismatch

logger = logging.getLogger("schemorm")

T = TypeVar("T")

_UNSET = object()


class Field(Generic[T]):
    """Base value container; subclasses define ``validate`` and optionally ``convert``."""

    error_message: ClassVar[str] = "Wrong type of value"

    def __init__(self,
                 loader: Optional[Callable[[], Any]] = None,
                 nullable: bool = True,
                 error_message: Optional[str] = None):
        self.nullable = nullable
        self._loader = loader
        self._value: Any = _UNSET
        if error_message is not None:
            self.error_message = error_message

    def __repr__(self) -> str:
        value = "<unset>" if self._value is _UNSET else repr(self._value)
        return f"{type(self).__name__}({value})"

    @property
    def is_set(self) -> bool:
        """True once a value (possibly an explicit NULL) has been stored."""
        return self._value is not _UNSET

    def validate(self, value: Any) -> bool:
        """Return True if ``value`` (never None) is acceptable."""
        return True

    def convert(self, value: Any) -> T:
        """Turn a validated value into the stored representation."""
        return value

    def set(self, value: Any) -> None:
        """Validate and store ``value``; None stores NULL on nullable fields."""
        if value is None:
            if not self.nullable:
                raise TypeMismatch(self.error_message)
            self._value = None
            return
        if not self.validate(value):
            raise TypeMismatch(self.error_message)
        self._value = self.convert(value)

    def get(self, load: bool = True) -> Optional[T]:
        """Return the stored value, lazily loading it first when unset and ``load`` is True."""
        if self._value is _UNSET and load and self._loader is not None:
            try:
                value = self._loader()
                if value is None:
                    self._value = None
                else:
                    self.set(value)
            except Exception:  # pylint: disable=broad-except
                logger.debug("Lazy load failed for %r", self, exc_info=True)
        if self._value is _UNSET:
            return None
        return self._value

    def serialize(self, load: bool = True) -> Any:
        """Return the value in the form written to the database."""
        return self.get(load=load)


class StringField(Field[str]):
    error_message = "Value must be str"

    def validate(self, value: Any) -> bool:
        return isinstance(value, str)


class IntField(Field[int]):
    error_message = "Value must be int"

    def validate(self, value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)


class FloatField(Field[float]):
    error_message = "Value must be float"

    def validate(self, value: Any) -> bool:
        return isinstance(value, (int, float, decimal.Decimal)) and not isinstance(value, bool)

    def convert(self, value: Any) -> float:
        return float(value)


class BoolField(Field[bool]):
    """Boolean field; the integers 0 and 1 are accepted as stored by SQL engines."""

    error_message = "Value must be bool"

    def validate(self, value: Any) -> bool:
        return isinstance(value, bool) or (isinstance(value, int) and value in (0, 1))

    def convert(self, value: Any) -> bool:
        return bool(value)


class DateField(Field[datetime.datetime]):
    """Date/time field accepting ``datetime``, ``date`` or an ISO-8601 string."""

    error_message = "Value must be datetime or valid date string"

    def validate(self, value: Any) -> bool:
        return isinstance(value, (datetime.datetime, datetime.date, str))

    def convert(self, value: Any) -> datetime.datetime:
        if isinstance(value, datetime.datetime):
            return value
        if isinstance(value, datetime.date):
            return datetime.datetime.combine(value, datetime.time())
        try:
            return datetime.datetime.fromisoformat(value.strip())
        except ValueError as error:
            raise InvalidFormat(f"Invalid date string: {value!r}") from error

    def serialize(self, load: bool = True) -> Optional[str]:
        value = self.get(load=load)
        if value is None:
            return None
        return value.isoformat(sep=" ")


class IdentityField(Field[int]):
    """Integer primary key: assigned once, and only on a persisted owner."""

    error_message = "An identity must be an int"

    def __init__(self, owner: Any):
        super().__init__(loader=None, nullable=True)
        self._owner = owner

    def validate(self, value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    def set(self, value: Any) -> None:
        if self._owner.is_new:
            raise NotPersisted("Can't set the identity of a new entity")
        if self.is_set:
            raise ImmutableIdentity("An identity can't be reassigned")
        if value is None or not self.validate(value):
            raise TypeMismatch(self.error_message)
        self._value = value


class EntityField(Field[Any]):
    """Many-to-one reference holding a persisted entity, or just its identity.

    An integer is stored as is and turned into an unloaded proxy of the target
    entity class the first time the value is read.
    """

    error_message = "Wrong type of Entity or unsaved Entity"

    def __init__(self,
                 target: type,
                 loader: Optional[Callable[[], Any]] = None,
                 nullable: bool = True,
                 error_message: Optional[str] = None):
        super().__init__(loader=loader, nullable=nullable, error_message=error_message)
        self.target = target

    def validate(self, value: Any) -> bool:
        if isinstance(value, self.target):
            return not value.is_new
        return isinstance(value, int) and not isinstance(value, bool)

    def get(self, load: bool = True) -> Any:
        value = super().get(load=load)
        if isinstance(value, int):
            value = self._value = self.target.proxy(value)
        return value

    def id(self, load: bool = True) -> Optional[int]:
        """Return the referenced identity without loading the referenced entity."""
        value = super().get(load=load)
        if value is None or isinstance(value, int):
            return value
        return value.id

    def load(self) -> None:
        """Load the referenced entity's fields, if a reference is set; failures are ignored."""
        entity = self.get(load=False)
        if entity is None:
            return
        try:
            entity.load()
        except Exception:  # pylint: disable=broad-except
            logger.debug("Could not load referenced %r", entity, exc_info=True)

    def serialize(self, load: bool = True) -> Optional[int]:
        return self.id(load=load)


__all__ = [
    "Field",
    "StringField",
    "IntField",
    "FloatField",
    "BoolField",
    "DateField",
    "IdentityField",
    "EntityField",
]
