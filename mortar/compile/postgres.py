"""PostgreSQL dialect grammar."""
from __future__ import annotations

from mortar.compile.sqlite import SQLiteGrammar


class PostgresGrammar(SQLiteGrammar):
    """Compiles the query AST to PostgreSQL-flavoured parameterized SQL.

    Parameter style: ``$1, $2, ...`` – the numbered style used by
    ``asyncpg``.  Only placeholder emission differs from the reference
    dialect; quoting already matches (double quotes).

    Raw WHERE fragments are rendered verbatim, so they must use numbered
    placeholders that continue the statement's numbering.
    """

    unbounded_limit = None

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def placeholder(self, position: int) -> str:
        return f"${position}"
