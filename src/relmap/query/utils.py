"""
Text helpers for building templates.

These are pure-Python helpers with no dialect knowledge.
"""

from __future__ import annotations

_LIKE_SPECIALS = "\\_%"
_REGEXP_SPECIALS = "\\.+*?()|[]{}^$"


def _escape(text: str, specials: str) -> str:
    if not any(ch in specials for ch in text):
        return text
    return "".join("\\" + ch if ch in specials else ch for ch in text)


def escape_like(text: str) -> str:
    """Escape ``\\``, ``_`` and ``%`` for use inside a LIKE pattern."""
    return _escape(text, _LIKE_SPECIALS)


def escape_regexp(text: str) -> str:
    """Escape regular-expression metacharacters with a backslash."""
    return _escape(text, _REGEXP_SPECIALS)


def _quote(text: str, q: str) -> str:
    return q + text.replace(q, q + q) + q


def back_quote(name: str) -> str:
    """Wrap *name* in template identifier quotes (back quotes doubled)."""
    return _quote(name, "`")


def double_quote(name: str) -> str:
    return _quote(name, '"')


def repeat_marker(n: int) -> str:
    """``repeat_marker(3)`` → ``"?,?,?"``."""
    return ",".join("?" * max(n, 0))
