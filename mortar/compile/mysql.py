"""MySQL dialect grammar."""
from __future__ import annotations

from mortar.compile.sqlite import SQLiteGrammar


class MySQLGrammar(SQLiteGrammar):
    """Compiles the query AST to MySQL-flavoured parameterized SQL.

    Parameter style: ``?`` is kept from the reference dialect; drivers
    using the ``format`` paramstyle rewrite it.  Identifiers are quoted
    with backticks (`` ` ``) rather than double quotes.

    Note: MySQL has no ``ILIKE``; ``LIKE`` is already case-insensitive
    for non-binary TEXT/VARCHAR columns.
    """

    # Largest BIGINT UNSIGNED; MySQL has no "no limit" literal.
    unbounded_limit = "18446744073709551615"

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def quote_segment(self, segment: str) -> str:
        escaped = segment.replace("`", "``")
        return f"`{escaped}`"
