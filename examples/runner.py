"""mortar examples runner.

Seeds an SQLite file, then walks through the query builder, aggregates,
eager loading and pivot writes, printing compiled SQL and results.

Usage
-----
Run every section::

    python examples/runner.py

Show every statement mortar sends to the driver::

    python examples/runner.py -v

Keep the database somewhere specific::

    python examples/runner.py --db /tmp/mortar-demo.db

Requires the ``sqlalchemy`` extra (``pip install "mortar-orm[sqlalchemy]"``).
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import tempfile
from pathlib import Path

# ---------------------------------------------------------------------------
# Adjust sys.path so the package is importable when run as a script
# ---------------------------------------------------------------------------
_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from examples._seed import seed_sqlite_file
from tests.fixtures import Post, User

from mortar import Database
from mortar.config import ConnectionConfig, DatabaseConfig, PoolConfig
from mortar.errors import MortarError


def _section(title: str) -> None:
    print(f"\n=== {title} ===")


def _show(label: str, value: object) -> None:
    print(f"{label}: {json.dumps(value, default=str, indent=2)}")


async def run(db_path: Path) -> None:
    config = DatabaseConfig(
        connections={
            "default": ConnectionConfig(
                driver="sqlalchemy",
                dialect="sqlite",
                url=f"sqlite:///{db_path}",
                pool=PoolConfig(max=4, acquire_timeout=10),
            )
        }
    )

    async with Database(config) as db:
        _section("Fluent builder")
        query = db.table("users").select("name", "age").where("age", ">=", 18).order_by_desc("age")
        compiled = query.to_sql()
        print(compiled.sql, compiled.bindings)
        _show("rows", await query.get())

        _section("Aggregates and pagination")
        print("users:", await db.table("users").count())
        print("most viewed:", await Post.query(db).max("views"))
        page = await Post.query(db).order_by("id").paginate(per_page=2, page=2)
        _show("page 2", [p.title for p in page.items])
        print(f"page {page.current_page}/{page.last_page}, total={page.total}")

        _section("Soft deletes")
        print("visible posts:", await Post.query(db).count())
        print("including trashed:", await Post.query(db).with_trashed().count())

        _section("Eager loading")
        users = await User.query(db).with_("posts.comments", "profile", "roles").order_by("id").get()
        _show("users", [u.to_dict() for u in users])

        _section("Pivot writes")
        linus = await User.query(db).find_or_fail(3)
        await linus.roles().sync([6, 7])
        _show("linus roles", [r.name for r in await linus.roles().get()])

        _section("Errors")
        try:
            await User.query(db).find_or_fail(404)
        except MortarError as exc:
            _show("error", exc.to_error_response())
        try:
            db.table("users").where("name; DROP TABLE users", 1).to_sql()
        except MortarError as exc:
            _show("error", exc.to_error_response())


def main() -> None:
    parser = argparse.ArgumentParser(description="mortar examples runner")
    parser.add_argument("--db", type=Path, help="SQLite file to create (default: a temp file)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every statement")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.db is not None:
        asyncio.run(run(seed_sqlite_file(args.db)))
        return
    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(run(seed_sqlite_file(Path(tmp) / "mortar-demo.db")))


if __name__ == "__main__":
    main()
