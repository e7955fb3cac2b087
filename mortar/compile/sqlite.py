"""SQLite dialect grammar (the reference dialect)."""
from __future__ import annotations

from mortar.compile.base import Grammar


class SQLiteGrammar(Grammar):
    """Compiles the query AST to SQLite-flavoured parameterized SQL.

    Parameter style: ``?`` – compatible with Python's built-in ``sqlite3``
    positional execution (``cursor.execute(sql, bindings)``).  SQLite
    rejects ``OFFSET`` without ``LIMIT``, so offset-only queries get
    ``LIMIT -1``.
    """

    unbounded_limit = "-1"

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def placeholder(self, position: int) -> str:
        return "?"

    def quote_segment(self, segment: str) -> str:
        escaped = segment.replace('"', '""')
        return f'"{escaped}"'
