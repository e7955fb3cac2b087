"""Seed an SQLite file with mortar example data.

Uses the unit-test DDL with a slightly larger dataset:
  - 4 users, one without an email
  - 6 posts, one soft-deleted
  - comments on three posts
  - 2 profiles
  - 3 roles with pivot assignments
"""
from __future__ import annotations

import sqlite3
from pathlib import Path

_DDL_PATH = Path(__file__).parent.parent / "tests" / "fixtures" / "ddl_sqlite.sql"

# (id, name, email, age, created_at)
_USERS = [
    (1, "Ada", "ada@example.com", 36, "2024-01-03T09:00:00"),
    (2, "Grace", None, 45, "2024-01-05T10:30:00"),
    (3, "Linus", "linus@example.com", 17, "2024-02-11T08:15:00"),
    (4, "Barbara", "barbara@example.com", 52, "2024-03-01T12:00:00"),
]

# (id, user_id, title, views, deleted_at)
_POSTS = [
    (10, 1, "Notes on the Analytical Engine", 1200, None),
    (11, 1, "Bernoulli numbers", 310, None),
    (12, 2, "Compilers for everyone", 870, None),
    (13, 3, "A free kernel", 4500, None),
    (14, 3, "Old draft", 0, "2024-02-20T00:00:00"),
    (15, 4, "Abstraction and data types", 640, None),
]

_COMMENTS = [
    (100, 10, "Visionary."),
    (101, 10, "Still relevant."),
    (102, 12, "COBOL forever."),
    (103, 13, "Patches welcome."),
]

_PROFILES = [
    (1, 2, "Rear admiral"),
    (2, 4, "Turing award 2008"),
]

_ROLES = [(5, "admin"), (6, "editor"), (7, "viewer")]

# (user_id, role_id, granted_by)
_ROLE_USER = [
    (1, 5, "seed"),
    (1, 7, "seed"),
    (2, 6, "seed"),
    (4, 6, "seed"),
    (4, 7, "seed"),
]


def seed_sqlite_file(path: Path) -> Path:
    """Create ``path`` with the example schema and data, replacing any existing file."""
    if path.exists():
        path.unlink()
    conn = sqlite3.connect(path)
    try:
        conn.executescript(_DDL_PATH.read_text())
        conn.executemany("INSERT INTO users VALUES (?, ?, ?, ?, ?)", _USERS)
        conn.executemany("INSERT INTO posts VALUES (?, ?, ?, ?, ?)", _POSTS)
        conn.executemany("INSERT INTO comments VALUES (?, ?, ?)", _COMMENTS)
        conn.executemany("INSERT INTO profiles VALUES (?, ?, ?)", _PROFILES)
        conn.executemany("INSERT INTO roles VALUES (?, ?)", _ROLES)
        conn.executemany("INSERT INTO role_user VALUES (?, ?, ?)", _ROLE_USER)
        conn.commit()
    finally:
        conn.close()
    return path
