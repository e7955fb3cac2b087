"""Test fixtures: sample entity types and the matching SQLite DDL."""

from __future__ import annotations

from pathlib import Path

from mortar import BelongsTo, BelongsToMany, Entity, HasMany, HasOne, relation

_FIXTURES_DIR = Path(__file__).parent


def load_ddl() -> str:
    """Return the sample SQLite DDL for the fixture entities."""
    return (_FIXTURES_DIR / "ddl_sqlite.sql").read_text()


class User(Entity):
    __table__ = "users"

    @relation
    def posts(self) -> HasMany:
        return self.has_many(Post)

    @relation
    def latest_post(self) -> HasOne:
        return self.has_one(Post).order_by("id", "DESC")

    @relation
    def profile(self) -> HasOne:
        return self.has_one(Profile)

    @relation
    def roles(self) -> BelongsToMany:
        return self.belongs_to_many(Role)


class Post(Entity):
    __table__ = "posts"
    __soft_deletes__ = True

    @relation
    def author(self) -> BelongsTo:
        return self.belongs_to(User, foreign_key="user_id")

    @relation
    def comments(self) -> HasMany:
        return self.has_many(Comment)


class Comment(Entity):
    __table__ = "comments"

    @relation
    def post(self) -> BelongsTo:
        return self.belongs_to(Post)


class Profile(Entity):
    __table__ = "profiles"

    @relation
    def user(self) -> BelongsTo:
        return self.belongs_to(User)


class Role(Entity):
    # Table name comes from the class name: "roles".

    @relation
    def users(self) -> BelongsToMany:
        return self.belongs_to_many(User)
