"""Compilation context objects.

``CompilationContext`` is the static half (which grammar renders the
statement); ``BindingContext`` is the per-run half that accumulates
bindings in emission order and hands out the matching placeholders.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mortar.compile.base import Grammar


@dataclass(frozen=True)
class CompilationContext:
    """Immutable context for a single compilation run.

    Attributes:
        grammar: Dialect-specific grammar instance.
    """

    grammar: Grammar

    def quote(self, name: str) -> str:
        return self.grammar.quote_identifier(name)


@dataclass
class BindingContext:
    """Accumulates positional bindings during a single compilation run.

    A single instance is threaded through every clause builder so that a
    value is appended at the moment its placeholder is written.  Binding
    order therefore always equals placeholder order in the final SQL.
    """

    grammar: Grammar
    bindings: list[Any] = field(default_factory=list)

    def add(self, value: Any) -> str:
        """Store ``value`` and return its placeholder."""
        self.bindings.append(value)
        return self.grammar.placeholder(len(self.bindings))

    def extend_raw(self, values: tuple[Any, ...] | list[Any]) -> None:
        """Append raw-clause values whose placeholders the caller wrote."""
        self.bindings.extend(values)
