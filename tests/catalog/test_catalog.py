"""Tests for schemorm.catalog: table/column lookup, links, associations, single-flight loading."""

import threading
import time
from unittest.mock import patch

import pytest

from schemorm.catalog import SchemaCatalog, TableInfo, get_catalog, reset_catalogs
from schemorm.errors import NoAssociation, NotLinked, UnknownEntity, UnknownField


def test_tables_and_fields(setup_db):
    catalog = get_catalog()
    assert sorted(catalog.tables()) == ["employee", "person", "post", "role", "user", "user_role"]
    assert catalog.fields("user") == ["Id", "name", "age", "score", "active", "birthday"]
    assert catalog.fields("post") == ["Id", "title", "user_id"]


def test_lookups_are_case_insensitive(setup_db):
    catalog = get_catalog()
    assert catalog.table_exists("USER")
    assert not catalog.table_exists("comment")
    for _ in range(3):
        assert catalog.has_field("User", "NAME")
        assert catalog.has_field("user", "id")
        assert not catalog.has_field("user", "email")
    assert catalog.resolve_table("POST") == "post"
    assert catalog.resolve_field("user", "ID") == "Id"
    assert catalog.identity_column("role") == "Id"


def test_unknown_names(setup_db):
    catalog = get_catalog()
    with pytest.raises(UnknownEntity):
        catalog.fields("comment")
    with pytest.raises(UnknownEntity):
        catalog.has_field("comment", "Id")
    with pytest.raises(UnknownField, match="email"):
        catalog.resolve_field("user", "email")


def test_links_are_symmetric(setup_db):
    catalog = get_catalog()
    assert catalog.is_linked("user", "post")
    assert catalog.is_linked("post", "user")
    assert catalog.get_link("user", "post") == {"user": "user_id"}
    assert catalog.get_link("post", "user") == {"post": "Id"}
    assert catalog.links("post") == {"user": "user_id"}


def test_implicit_primary_key_reference(setup_db):
    # employee.Id REFERENCES person(Id); the inheritance link goes through identities
    catalog = get_catalog()
    assert catalog.get_link("person", "employee") == {"person": "Id"}
    assert catalog.get_link("employee", "person") == {"employee": "Id"}


def test_not_linked(setup_db):
    catalog = get_catalog()
    assert not catalog.is_linked("role", "post")
    with pytest.raises(NotLinked):
        catalog.get_link("role", "post")


def test_association_tables(setup_db):
    catalog = get_catalog()
    assert list(catalog.association_tables()) == ["user_role"]
    info = catalog.find_association("role", "user")
    assert info.name == "user_role"
    assert info.link_column("user") == "user_id"
    assert info.link_column("ROLE") == "role_id"
    with pytest.raises(NoAssociation):
        catalog.find_association("post", "user")


def test_table_info_heuristic():
    info = TableInfo(name="a_b", fields=["a_id", "b_id"], links={"a": "a_id", "b": "b_id"})
    assert info.is_association
    assert not info.has_identity
    info = TableInfo(name="a_b", fields=["Id", "a_id"], links={"a": "a_id", "b": "Id"})
    assert not info.is_association


def test_cache_is_kept_until_refresh(setup_db):
    catalog = get_catalog()
    assert not catalog.table_exists("comment")
    setup_db.execute("CREATE TABLE comment (Id INTEGER PRIMARY KEY, body TEXT)")
    assert not catalog.table_exists("comment")
    catalog.refresh()
    assert catalog.table_exists("comment")
    assert catalog.fields("comment") == ["Id", "body"]


def test_reset_catalogs(setup_db):
    first = get_catalog()
    assert get_catalog() is first
    reset_catalogs()
    assert get_catalog() is not first


def test_first_load_is_single_flight():
    catalog = SchemaCatalog("single-flight")
    calls = []

    def slow_fake():
        calls.append(1)
        time.sleep(0.05)
        return [("user", "Id"), ("user", "name")], []

    results = []
    with patch.object(catalog, "_query_metadata", side_effect=slow_fake):
        threads = [
            threading.Thread(target=lambda: results.append(catalog.fields("user")))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    assert len(calls) == 1
    assert results == [["Id", "name"]] * 8
