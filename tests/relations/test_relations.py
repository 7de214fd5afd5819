"""Tests for schemorm.relations: one-to-many and many-to-many collections."""

from unittest.mock import patch

import pytest

from schemorm.errors import NotFound, NotPersisted, TypeMismatch
from schemorm.relations import ManyToManyRelation, OneToManyRelation
from schemorm.repository import Repository
from tests.models import Post, Role, User


def _user_with_posts(*titles):
    user = User(name="Ann")
    user.save()
    for title in titles:
        Post(title=title, author=user).save()
    return user


def test_one_to_many(setup_db):
    user = _user_with_posts("Hello", "World")
    other = _user_with_posts("Elsewhere")
    assert isinstance(user.posts, OneToManyRelation)
    assert user.posts is user.posts
    posts = user.posts.get()
    assert [post.id for post in posts] == [1, 2]
    assert all(isinstance(post, Post) for post in posts)
    assert posts[0].field("title").get(load=False) is None
    assert [post.title for post in posts] == ["Hello", "World"]
    assert [post.id for post in other.posts] == [3]


def test_one_to_many_is_cached_until_reload(setup_db):
    user = _user_with_posts("Hello")
    assert len(user.posts.get()) == 1
    Post(title="World", author=user).save()
    assert len(user.posts.get()) == 1
    assert len(user.posts.get(reload=True)) == 2


def test_new_owner_has_no_relations():
    assert User().posts.get() == []
    assert User().roles.get() == []


def test_get_loaded(setup_db):
    user = _user_with_posts("Hello", "World")
    posts = user.posts.get_loaded()
    assert [post.field("title").get(load=False) for post in posts] == ["Hello", "World"]
    assert posts[0].field("author").id(load=False) == user.id


def _roles(*labels):
    roles = []
    for label in labels:
        role = Role(label=label)
        role.save()
        roles.append(role)
    return roles


def test_many_to_many(setup_db):
    user = User(name="Ann")
    user.save()
    admin, editor = _roles("admin", "editor")
    assert isinstance(user.roles, ManyToManyRelation)
    assert user.roles.get() == []
    user.roles.add(admin)
    user.roles.add(editor.id)
    assert setup_db.execute("SELECT user_id, role_id FROM user_role") == [(1, 1), (1, 2)]
    roles = user.roles.get(reload=True)
    assert [role.id for role in roles] == [1, 2]
    assert [role.label for role in user.roles.get_loaded()] == ["admin", "editor"]


def test_add_appends_without_querying(setup_db):
    user = User(name="Ann")
    user.save()
    admin, editor = _roles("admin", "editor")
    user.roles.add(admin)
    cached = user.roles.get()
    assert [role.id for role in cached] == [1]
    with patch.object(ManyToManyRelation, "_query_ids") as query_ids:
        user.roles.add(editor)
        roles = user.roles.get()
    query_ids.assert_not_called()
    assert roles[-1] is editor
    assert [role.id for role in roles] == [1, 2]


def test_add_validates_candidate(setup_db):
    user = User(name="Ann")
    with pytest.raises(NotPersisted):
        user.roles.add(1)
    user.save()
    with pytest.raises(NotPersisted):
        user.roles.add(Role(label="admin"))
    with pytest.raises(TypeMismatch):
        user.roles.add(user)
    with pytest.raises(NotFound):
        user.roles.add(7)
    with pytest.raises(NotFound):
        user.roles.add(Role.proxy(7))
    assert Repository(table="user_role").select_all() == []
