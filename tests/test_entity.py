"""Unit tests for the Entity base, naming helpers and the MockDriver."""

from __future__ import annotations

import re

import pytest

from mortar import Entity, relation
from mortar.contracts import EntityLike
from mortar.support.naming import (
    default_foreign_key,
    default_table_name,
    pivot_table_name,
    singularize,
    snake_case,
)
from mortar.testing import MockDriver
from tests.fixtures import Post, User


@pytest.mark.parametrize(
    "name, table",
    [("User", "users"), ("BlogPost", "blog_posts"), ("Category", "categories"), ("Box", "boxes")],
)
def test_default_table_name(name: str, table: str):
    assert default_table_name(name) == table


def test_key_and_pivot_naming():
    assert snake_case("HTTPRequest") == "http_request"
    assert default_foreign_key("BlogPost") == "blog_post_id"
    assert singularize("categories") == "category"
    assert pivot_table_name("users", "roles") == "role_user"
    assert pivot_table_name("roles", "users") == "role_user"


def test_attribute_access():
    user = User({"id": 1, "name": "Ada"}, email="ada@example.com")
    assert user.name == "Ada"
    assert user.get_attribute("email") == "ada@example.com"
    assert user.get_attribute("missing") is None
    with pytest.raises(AttributeError):
        user.missing  # noqa: B018

    user.set_attribute("name", "Grace")
    assert user.attributes == {"id": 1, "name": "Grace", "email": "ada@example.com"}
    assert user.get_key() == 1


def test_to_dict_includes_loaded_relations():
    user = User({"id": 1})
    post = Post({"id": 10})
    post.set_relation("author", None)
    user.set_relation("posts", [post])
    user.set_relation("profile", None)
    assert user.to_dict() == {
        "id": 1,
        "posts": [{"id": 10, "author": None}],
        "profile": None,
    }
    assert not user.relation_loaded("roles")


def test_entities_satisfy_relation_protocol():
    assert isinstance(User({"id": 1}), EntityLike)
    assert not isinstance(object(), EntityLike)


def test_overridden_relation_is_dropped():
    class Base(Entity):
        @relation
        def things(self):
            return self.has_many(Post)

    class Child(Base):
        things = None

    assert Base.__relations__ == {"things"}
    assert Child.__relations__ == frozenset()


def test_from_row_binds_database():
    sentinel = object()
    user = User.from_row({"id": 3}, sentinel)
    assert user.database is sentinel
    assert user.get_key() == 3


# ---------------------------------------------------------------------------
# MockDriver
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_mock_driver_first_match_and_once():
    driver = MockDriver()
    driver.mock_once("FROM users", [{"id": 1}])
    driver.mock_select(re.compile(r"FROM\s+users"), [{"id": 2}])

    assert (await driver.execute("SELECT * FROM users")).rows == [{"id": 1}]
    assert (await driver.execute("SELECT * FROM users")).rows == [{"id": 2}]
    assert driver.count_queries() == 2
    assert driver.was_queried(re.compile("users"))


@pytest.mark.anyio
async def test_mock_driver_defaults_for_unmatched_statements():
    driver = MockDriver()
    assert (await driver.execute("SELECT 1")).rows == []
    inserted = await driver.execute("INSERT INTO t (a) VALUES (?)", [1])
    assert (inserted.row_count, inserted.insert_id) == (1, 1)
    assert driver.last_query.kind == "insert"
    assert driver.last_query.bindings == [1]

    driver.reset()
    assert driver.queries == []


@pytest.mark.anyio
async def test_mock_driver_returns_copies():
    driver = MockDriver().mock_select("t", [{"id": 1}])
    first = await driver.execute("SELECT * FROM t")
    first.rows[0]["id"] = 99
    second = await driver.execute("SELECT * FROM t")
    assert second.rows == [{"id": 1}]
