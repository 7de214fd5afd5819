"""Tests for entities spanning several tables through class inheritance."""

from unittest.mock import patch

import pytest

from schemorm import Column, Entity, IntField, StringField
from schemorm.errors import NonNullableFieldMissing, NotFound
from schemorm.repository import Repository
from tests.models import Employee, Person


def test_segments():
    assert [segment.table for segment in Employee._segments] == ["person", "employee"]
    assert [d.name for d in Employee._segments[1].columns] == ["salary"]
    assert Employee._segments[0].descriptors[0].is_identity
    assert Employee._CONNECTION_NAME == "default"
    assert Employee().is_inheritor
    assert not Person().is_inheritor


def test_save_inserts_root_first(setup_db):
    employee = Employee(first_name="Ann", salary=1000)
    employee.save()
    assert employee.id == 1
    assert setup_db.execute("SELECT Id, first_name, nickname FROM person") == [(1, "Ann", None)]
    assert setup_db.execute("SELECT Id, salary FROM employee") == [(1, 1000.0)]


def test_update_every_level(setup_db):
    employee = Employee(first_name="Ann", salary=1000)
    employee.save()
    employee.nickname = "Annie"
    employee.salary = 1200
    employee.save()
    assert setup_db.execute("SELECT first_name, nickname FROM person") == [("Ann", "Annie")]
    assert setup_db.execute("SELECT salary FROM employee") == [(1200.0,)]


def test_non_nullable_check_precedes_any_write(setup_db):
    employee = Employee(first_name="Ann")
    with pytest.raises(NonNullableFieldMissing, match="salary"):
        employee.save()
    assert setup_db.execute("SELECT COUNT(*) FROM person") == [(0,)]


def test_failure_after_root_write_is_not_rolled_back(setup_db, caplog):
    employee = Employee(first_name="Ann", salary=1000)
    with patch.object(Repository, "insert", autospec=True, side_effect=[1, RuntimeError("disk full")]):
        with pytest.raises(RuntimeError, match="disk full"):
            employee.save()
    assert not employee.is_new
    assert "failed after its `person` row was written" in caplog.text


def test_load_merges_levels(setup_db):
    Employee(first_name="Ann", nickname="Annie", salary=1000).save()
    employee = Employee.proxy(1)
    employee.load()
    assert employee.export() == {"Id": 1, "first_name": "Ann", "nickname": "Annie", "salary": 1000.0}
    assert employee.to_json()["meta"] == {"type": "Employee", "is_persisted": True, "is_inheritor": True}


def test_lazy_loading_reads_the_right_table(setup_db):
    Employee(first_name="Ann", salary=1000).save()
    employee = Employee(1)
    assert employee.salary == 1000.0
    assert employee.first_name == "Ann"


def test_construct_requires_the_leaf_row(setup_db):
    Person(first_name="Bob").save()
    assert Person(1).first_name == "Bob"
    with pytest.raises(NotFound):
        Employee(1)


def test_delete_every_level(setup_db):
    employee = Employee(first_name="Ann", salary=1000)
    employee.save()
    employee.delete()
    assert setup_db.execute("SELECT COUNT(*) FROM employee") == [(0,)]
    assert setup_db.execute("SELECT COUNT(*) FROM person") == [(0,)]


def test_clone_from_root_type(setup_db):
    Person(first_name="Bob", nickname="Bobby").save()
    employee = Employee(salary=10)
    employee.clone(1)
    assert employee.first_name == "Bob"
    assert employee.nickname == "Bobby"
    employee.save()
    assert employee.id == 2


def test_abstract_parent_declarations_join_the_first_table(setup_db):
    setup_db.execute("CREATE TABLE badge (Id INTEGER PRIMARY KEY AUTOINCREMENT, "
                     "label TEXT NOT NULL, level INTEGER)")

    class Labelled(Entity, abstract=True):
        label = Column(StringField)

    class Badge(Labelled, table="badge"):
        level = Column(IntField, nullable=True)

    assert [segment.table for segment in Badge._segments] == ["badge"]
    assert [d.name for d in Badge._segments[0].columns] == ["label", "level"]
    badge = Badge(label="gold", level=3)
    badge.save()
    assert setup_db.execute("SELECT label, level FROM badge") == [("gold", 3)]
    assert Badge(badge.id).label == "gold"
