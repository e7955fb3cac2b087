"""Unit tests for the relation kinds, driven through the recording MockDriver."""

from __future__ import annotations

import pytest

from mortar import Entity
from mortar.errors import RelationError, RelationNotFoundError
from mortar.testing import MockDriver
from tests.fixtures import Comment, Post, Role, User


def _users(db, *ids: int) -> list[User]:
    return [User({"id": i, "name": f"user{i}"}, database=db) for i in ids]


# ---------------------------------------------------------------------------
# Declaration
# ---------------------------------------------------------------------------


def test_relation_names_are_collected_per_class():
    assert User.__relations__ == {"posts", "latest_post", "profile", "roles"}
    assert Post.__relations__ == {"author", "comments"}
    assert Entity.__relations__ == frozenset()


def test_default_table_and_keys():
    assert Role.table_name() == "roles"
    assert Post.soft_delete_column() == "deleted_at"
    assert User.soft_delete_column() is None


@pytest.mark.anyio
async def test_default_relation_keys(db):
    user = _users(db, 1)[0]
    posts = user.resolve_relation("posts")
    assert (posts.foreign_key, posts.local_key) == ("user_id", "id")

    roles = user.resolve_relation("roles")
    assert roles.pivot_table == "role_user"
    assert (roles.foreign_pivot_key, roles.related_pivot_key) == ("user_id", "role_id")

    comment = Comment({"id": 1, "post_id": 3}, database=db)
    post = comment.resolve_relation("post")
    assert (post.foreign_key, post.owner_key) == ("post_id", "id")


@pytest.mark.anyio
async def test_unknown_relation_raises(db):
    user = _users(db, 1)[0]
    with pytest.raises(RelationNotFoundError) as exc_info:
        user.resolve_relation("followers")
    assert exc_info.value.code == "RELATION_NOT_FOUND"
    assert isinstance(exc_info.value, RelationError)
    assert "posts" in exc_info.value.details["available_relations"]


def test_unbound_entity_cannot_build_relations():
    with pytest.raises(RelationError) as exc_info:
        User({"id": 1}).resolve_relation("posts")
    assert exc_info.value.code == "ENTITY_UNBOUND"


# ---------------------------------------------------------------------------
# HasMany / HasOne
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_has_many_eager_load_groups_by_parent(db, driver: MockDriver):
    users = _users(db, 1, 2)
    driver.mock_select(
        'FROM "posts"',
        [{"id": 10, "user_id": 1, "title": "a"}, {"id": 11, "user_id": 1, "title": "b"}],
    )

    await users[0].resolve_relation("posts").eager_load_for_many(users, "posts")

    assert [p.get_key() for p in users[0].get_relation("posts")] == [10, 11]
    assert users[1].get_relation("posts") == []
    assert users[1].relation_loaded("posts")
    assert driver.count_queries() == 1
    assert driver.last_query.sql == (
        'SELECT * FROM "posts" WHERE "user_id" IN (?, ?) AND "deleted_at" IS NULL'
    )
    assert driver.last_query.bindings == [1, 2]


@pytest.mark.anyio
async def test_has_many_get(db, driver: MockDriver):
    driver.mock_select('FROM "posts"', [{"id": 10, "user_id": 1}])
    posts = await _users(db, 1)[0].posts().get()
    assert [type(p) for p in posts] == [Post]
    assert driver.last_query.bindings == [1]


@pytest.mark.anyio
async def test_parents_without_keys_issue_no_query(db, driver: MockDriver):
    orphans = [User({"name": "no id"}, database=db)]
    await orphans[0].resolve_relation("posts").eager_load_for_many(orphans, "posts")
    assert orphans[0].get_relation("posts") == []
    assert await orphans[0].posts().get() == []
    assert driver.count_queries() == 0


@pytest.mark.anyio
async def test_has_one_keeps_first_row(db, driver: MockDriver):
    users = _users(db, 1, 2)
    driver.mock_select(
        'FROM "profiles"',
        [{"id": 5, "user_id": 1}, {"id": 6, "user_id": 1}],
    )
    await users[0].resolve_relation("profile").eager_load_for_many(users, "profile")
    assert users[0].get_relation("profile").get_key() == 5
    assert users[1].get_relation("profile") is None


@pytest.mark.anyio
async def test_has_one_honours_explicit_order(db, driver: MockDriver):
    users = _users(db, 1)
    driver.mock_select('FROM "posts"', [{"id": 12, "user_id": 1}, {"id": 10, "user_id": 1}])
    await users[0].resolve_relation("latest_post").eager_load_for_many(users, "latest_post")
    assert users[0].get_relation("latest_post").get_key() == 12
    assert driver.last_query.sql.endswith('ORDER BY "id" DESC')

    latest = await users[0].latest_post().get()
    assert latest.get_key() == 12
    assert driver.last_query.sql.endswith('ORDER BY "id" DESC LIMIT 1')


@pytest.mark.anyio
async def test_relation_constraints_apply(db, driver: MockDriver):
    user = _users(db, 1)[0]
    await user.posts().where("views", ">", 100).get()
    assert driver.last_query.sql == (
        'SELECT * FROM "posts" WHERE "views" > ? AND "user_id" = ? AND "deleted_at" IS NULL'
    )
    assert driver.last_query.bindings == [100, 1]


# ---------------------------------------------------------------------------
# BelongsTo
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_belongs_to_eager_load_skips_null_keys(db, driver: MockDriver):
    posts = [
        Post({"id": 1, "user_id": 7}, database=db),
        Post({"id": 2, "user_id": None}, database=db),
        Post({"id": 3, "user_id": 7}, database=db),
        Post({"id": 4, "user_id": 8}, database=db),
    ]
    driver.mock_select('FROM "users"', [{"id": 7, "name": "Ada"}])

    await posts[0].resolve_relation("author").eager_load_for_many(posts, "author")

    assert driver.last_query.bindings == [7, 8]
    assert posts[0].get_relation("author").name == "Ada"
    assert posts[2].get_relation("author") is posts[0].get_relation("author")
    assert posts[1].get_relation("author") is None
    assert posts[3].get_relation("author") is None


@pytest.mark.anyio
async def test_belongs_to_get(db, driver: MockDriver):
    driver.mock_select('FROM "users"', [{"id": 7, "name": "Ada"}])
    author = await Post({"id": 1, "user_id": 7}, database=db).author().get()
    assert author.name == "Ada"
    assert driver.last_query.sql == 'SELECT * FROM "users" WHERE "id" = ? LIMIT 1'
    assert await Post({"id": 2}, database=db).author().get() is None


# ---------------------------------------------------------------------------
# BelongsToMany
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_belongs_to_many_replays_pivot_rows(db, driver: MockDriver):
    users = _users(db, 1, 2, 3)
    driver.mock_select(
        'FROM "role_user"',
        [
            {"user_id": 1, "role_id": 20},
            {"user_id": 1, "role_id": 10},
            {"user_id": 2, "role_id": 10},
            {"user_id": 2, "role_id": 99},
        ],
    )
    driver.mock_select('FROM "roles"', [{"id": 10, "name": "admin"}, {"id": 20, "name": "editor"}])

    await users[0].resolve_relation("roles").eager_load_for_many(users, "roles")

    assert [r.name for r in users[0].get_relation("roles")] == ["editor", "admin"]
    assert [r.name for r in users[1].get_relation("roles")] == ["admin"]
    assert users[2].get_relation("roles") == []
    assert driver.count_queries() == 2
    assert driver.queries[1].sql == 'SELECT * FROM "roles" WHERE "id" IN (?, ?, ?)'
    assert driver.queries[1].bindings == [20, 10, 99]


@pytest.mark.anyio
async def test_belongs_to_many_without_pivot_rows_skips_related_query(db, driver: MockDriver):
    users = _users(db, 1)
    await users[0].resolve_relation("roles").eager_load_for_many(users, "roles")
    assert users[0].get_relation("roles") == []
    assert driver.count_queries() == 1


@pytest.mark.anyio
async def test_attach_and_detach(db, driver: MockDriver):
    roles = _users(db, 1)[0].roles()

    await roles.attach([5, 6], {"granted_by": "ops"})
    inserts = driver.queries_matching("INSERT INTO")
    assert [q.sql for q in inserts] == [
        'INSERT INTO "role_user" ("user_id", "role_id", "granted_by") VALUES (?, ?, ?)'
    ] * 2
    assert [q.bindings for q in inserts] == [[1, 5, "ops"], [1, 6, "ops"]]

    await roles.attach(7)
    assert driver.last_query.bindings == [1, 7]

    await roles.detach([5])
    assert driver.last_query.sql == 'DELETE FROM "role_user" WHERE "user_id" = ? AND "role_id" IN (?)'
    assert driver.last_query.bindings == [1, 5]

    await roles.detach()
    assert driver.last_query.sql == 'DELETE FROM "role_user" WHERE "user_id" = ?'


@pytest.mark.anyio
async def test_sync_replaces_attached_set_in_one_transaction(db, driver: MockDriver):
    await _users(db, 1)[0].roles().sync([5, 6])

    assert [q.sql.split(" ")[0] for q in driver.queries] == [
        "BEGIN",
        "DELETE",
        "INSERT",
        "INSERT",
        "COMMIT",
    ]
    assert [q.bindings for q in driver.queries_matching("INSERT")] == [[1, 5], [1, 6]]
