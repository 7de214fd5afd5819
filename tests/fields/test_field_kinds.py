"""Tests for schemorm.field: validation, conversion, NULL handling and lazy loading."""

import datetime
import decimal

import pytest

from schemorm.errors import ImmutableIdentity, InvalidFormat, NotPersisted, TypeMismatch
from schemorm.field import (
    BoolField,
    DateField,
    EntityField,
    FloatField,
    IdentityField,
    IntField,
    StringField,
)


def test_unset_field_reads_none():
    field = StringField()
    assert field.get() is None
    assert not field.is_set


def test_rejected_value_leaves_previous_value():
    field = IntField()
    with pytest.raises(TypeMismatch):
        field.set("12")
    assert not field.is_set
    field.set(12)
    with pytest.raises(TypeMismatch):
        field.set(1.5)
    assert field.get() == 12


def test_int_rejects_bool():
    with pytest.raises(TypeMismatch):
        IntField().set(True)


def test_null_handling():
    field = StringField(nullable=True)
    field.set("x")
    field.set(None)
    assert field.is_set
    assert field.get() is None
    required = StringField(nullable=False)
    required.set("x")
    with pytest.raises(TypeMismatch):
        required.set(None)
    assert required.get() == "x"


def test_custom_error_message():
    field = StringField(error_message="A name is required")
    with pytest.raises(TypeMismatch, match="A name is required"):
        field.set(3)


def test_float_accepts_int():
    field = FloatField()
    field.set(3)
    assert field.get() == 3.0
    assert isinstance(field.get(), float)


def test_float_accepts_decimal():
    field = FloatField()
    field.set(decimal.Decimal("12.50"))
    assert field.get() == 12.5
    assert isinstance(field.get(), float)
    loaded = FloatField(loader=lambda: decimal.Decimal("3.25"))
    assert loaded.get() == 3.25


def test_bool_accepts_stored_integers():
    field = BoolField()
    field.set(1)
    assert field.get() is True
    field.set(0)
    assert field.get() is False
    with pytest.raises(TypeMismatch):
        field.set(2)


def test_date_field():
    field = DateField()
    field.set("2020-01-02 03:04:05")
    assert field.get() == datetime.datetime(2020, 1, 2, 3, 4, 5)
    assert field.serialize() == "2020-01-02 03:04:05"
    field.set(datetime.date(2021, 5, 6))
    assert field.get() == datetime.datetime(2021, 5, 6)
    with pytest.raises(InvalidFormat):
        field.set("yesterday")
    assert field.get() == datetime.datetime(2021, 5, 6)
    with pytest.raises(TypeMismatch):
        field.set(20200102)


def test_lazy_loader_runs_once():
    calls = []

    def loader():
        calls.append(1)
        return "loaded"

    field = StringField(loader=loader)
    assert field.get(load=False) is None
    assert calls == []
    assert field.get() == "loaded"
    assert field.get() == "loaded"
    assert calls == [1]


def test_null_from_loader_is_kept():
    calls = []

    def loader():
        calls.append(1)
        return None

    field = IntField(loader=loader)
    assert field.get() is None
    assert field.get() is None
    assert field.is_set
    assert calls == [1]


def test_lazy_loader_failure_is_swallowed():
    def loader():
        raise RuntimeError("database is gone")

    field = IntField(loader=loader)
    assert field.get() is None
    assert not field.is_set


def test_set_value_wins_over_loader():
    field = StringField(loader=lambda: "stored")
    field.set("mine")
    assert field.get() == "mine"


class _Owner:
    def __init__(self, is_new):
        self.is_new = is_new


def test_identity_requires_persisted_owner():
    with pytest.raises(NotPersisted):
        IdentityField(_Owner(is_new=True)).set(1)


def test_identity_is_set_once():
    identity = IdentityField(_Owner(is_new=False))
    identity.set(7)
    with pytest.raises(ImmutableIdentity):
        identity.set(8)
    assert identity.get() == 7


def test_identity_must_be_int():
    with pytest.raises(TypeMismatch):
        IdentityField(_Owner(is_new=False)).set("7")


class _Target:
    def __init__(self, id=None, is_new=False):
        self.id = id
        self.is_new = is_new
        self.loaded = False

    @classmethod
    def proxy(cls, id):
        return cls(id)

    def load(self):
        if self.id is None:
            raise LookupError("no row")
        self.loaded = True


def test_entity_field_with_identity():
    field = EntityField(_Target)
    field.set(4)
    assert field.id() == 4
    assert field.serialize() == 4
    target = field.get()
    assert isinstance(target, _Target)
    assert target.id == 4
    field.load()
    assert target.loaded


def test_entity_field_rejects_unsaved_entity():
    field = EntityField(_Target)
    with pytest.raises(TypeMismatch, match="Wrong type of Entity or unsaved Entity"):
        field.set(_Target(is_new=True))
    with pytest.raises(TypeMismatch):
        field.set("4")
    assert field.id() is None


def test_entity_field_load_is_best_effort():
    field = EntityField(_Target)
    field.set(_Target(id=None))
    field.load()
    assert not field.get().loaded
