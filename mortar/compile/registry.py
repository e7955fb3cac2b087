"""Grammar registry (Open/Closed Principle).

``GrammarFactory``
    Central registry for :class:`~mortar.compile.base.Grammar`
    implementations.  Register a new grammar once; connections look it up
    by their configured ``dialect``.

Usage::

    from mortar.compile.registry import GrammarFactory

    @GrammarFactory.register("oracle")
    class OracleGrammar(Grammar):
        ...
"""
from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

from mortar.compile.base import Grammar
from mortar.errors import ConnectionError


class GrammarFactory:
    """Registry mapping dialect names to :class:`Grammar` classes.

    Example::

        @GrammarFactory.register("oracle")
        class OracleGrammar(Grammar):
            ...

        grammar = GrammarFactory.create("oracle")
    """

    _grammars: ClassVar[dict[str, type[Grammar]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[Grammar]], type[Grammar]]:
        """Decorator that registers a grammar class under ``name``."""

        def decorator(grammar_cls: type[Grammar]) -> type[Grammar]:
            cls._grammars[name] = grammar_cls
            return grammar_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, grammar_cls: type[Grammar]) -> None:
        """Register a grammar class without using the decorator form."""
        cls._grammars[name] = grammar_cls

    @classmethod
    def create(cls, name: str) -> Grammar:
        """Instantiate the grammar registered for ``name``.

        Raises:
            ConnectionError: ``UNSUPPORTED_DIALECT`` if nothing is registered.
        """
        grammar_cls = cls._grammars.get(name)
        if grammar_cls is None:
            registered = sorted(cls._grammars)
            raise ConnectionError(
                f"Unsupported dialect: '{name}'. Registered dialects: {registered}.",
                code="UNSUPPORTED_DIALECT",
                details={"dialect": name, "registered": registered},
            )
        return grammar_cls()

    @classmethod
    def registered_dialects(cls) -> list[str]:
        """Return the sorted list of registered dialect names."""
        return sorted(cls._grammars)
