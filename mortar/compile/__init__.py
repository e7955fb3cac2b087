"""mortar compilation layer: query AST → parameterized SQL."""
from mortar.compile.base import CompiledQuery, Grammar
from mortar.compile.compiler import QueryCompiler
from mortar.compile.mysql import MySQLGrammar
from mortar.compile.postgres import PostgresGrammar
from mortar.compile.registry import GrammarFactory
from mortar.compile.sqlite import SQLiteGrammar

GrammarFactory.register_class("sqlite", SQLiteGrammar)
GrammarFactory.register_class("postgres", PostgresGrammar)
GrammarFactory.register_class("mysql", MySQLGrammar)

__all__ = [
    "CompiledQuery",
    "Grammar",
    "GrammarFactory",
    "MySQLGrammar",
    "PostgresGrammar",
    "QueryCompiler",
    "SQLiteGrammar",
]
