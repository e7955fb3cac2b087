"""Naming conventions for default table names and relation keys."""
from __future__ import annotations

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    """Convert a CamelCase type name to snake_case (``BlogPost`` -> ``blog_post``)."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def pluralize(word: str) -> str:
    """Naive English plural used for default table names."""
    if word.endswith("y") and not word.endswith(("ay", "ey", "oy", "uy")):
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """Inverse of :func:`pluralize` for the forms it produces."""
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith(("ses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def default_table_name(type_name: str) -> str:
    """``BlogPost`` -> ``blog_posts``."""
    return pluralize(snake_case(type_name))


def default_foreign_key(type_name: str) -> str:
    """``BlogPost`` -> ``blog_post_id``."""
    return f"{snake_case(type_name)}_id"


def pivot_table_name(first_table: str, second_table: str) -> str:
    """Alphabetically ordered singular names joined by ``_`` (``role_user``)."""
    return "_".join(sorted([singularize(first_table), singularize(second_table)]))
