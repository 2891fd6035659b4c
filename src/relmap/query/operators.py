"""
Shorthand constructors for common comparison conditions.

Column keys are quoted as template identifiers, so ``"t.c"`` becomes a
table-qualified column and ``"t..c"`` a single identifier containing a dot.
"""

from __future__ import annotations

from typing import Any

from .conditions import Predicate, cond
from .expression import Expression
from .utils import back_quote, escape_like, repeat_marker


def eq(key: str, value: Any) -> Predicate:
    """```key`=?``; ``None`` compares with ``IS NULL``."""
    if value is None:
        return is_null(key)
    return cond(back_quote(key) + "=?", value)


def lt(key: str, value: Any) -> Predicate:
    return cond(back_quote(key) + "<?", value)


def le(key: str, value: Any) -> Predicate:
    return cond(back_quote(key) + "<=?", value)


def gt(key: str, value: Any) -> Predicate:
    return cond(back_quote(key) + ">?", value)


def ge(key: str, value: Any) -> Predicate:
    return cond(back_quote(key) + ">=?", value)


def in_(key: str, *values: Any) -> Predicate:
    """```key` IN (?,?,...)``."""
    return cond(back_quote(key) + f" IN ({repeat_marker(len(values))})", *values)


def between(key: str, start: Any, end: Any) -> Predicate:
    return cond(back_quote(key) + " BETWEEN ? AND ?", start, end)


def like(key: str, pattern: str) -> Predicate:
    return cond(back_quote(key) + " LIKE ?", pattern)


def contains(key: str, text: str) -> Predicate:
    """LIKE ``%text%`` with wildcards in *text* escaped."""
    return like(key, "%" + escape_like(text) + "%")


def has_prefix(key: str, text: str) -> Predicate:
    return like(key, escape_like(text) + "%")


def has_suffix(key: str, text: str) -> Predicate:
    return like(key, "%" + escape_like(text))


def is_null(key: str) -> Predicate:
    return cond(back_quote(key) + " IS NULL")


def asc(key: str) -> Expression:
    return Expression(back_quote(key) + " ASC")


def desc(key: str) -> Expression:
    return Expression(back_quote(key) + " DESC")
