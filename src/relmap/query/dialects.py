"""
Dialect strategy objects.

A :class:`Dialect` is immutable and describes how identifiers are quoted and
how value placeholders look.  Every expansion asks the dialect for a fresh
:class:`Starter`, which carries the sequential placeholder counter for that
one statement, so a dialect can be shared freely across threads.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import DialectNotFoundError


@dataclass(frozen=True, slots=True)
class Dialect:
    """
    Identifier quoting and placeholder style of one SQL backend.

    Attributes:
        name: Registry name (``"mysql"``, ``"postgres"``, ...).
        quote_char: Character wrapping identifiers; doubled when it occurs
            inside an identifier.
        marker: Placeholder text, or its prefix when ``numbered``.
        numbered: If ``True``, placeholders are ``marker`` followed by the
            1-based position of the argument (``$1``, ``$2``, ...).
    """

    name: str
    quote_char: str
    marker: str = "?"
    numbered: bool = False

    def quote_identifier(self, identifier: str) -> str:
        q = self.quote_char
        return q + identifier.replace(q, q + q) + q

    def parameter_placeholder(self, position: int) -> str:
        if self.numbered:
            return f"{self.marker}{position}"
        return self.marker

    def start(self) -> Starter:
        """Return a fresh expansion state for one statement."""
        return Starter(self)


class Starter:
    """Per-expansion view of a dialect with its own placeholder counter."""

    __slots__ = ("dialect", "_position")

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self._position = 0

    @property
    def driver_name(self) -> str:
        return self.dialect.name

    @property
    def position(self) -> int:
        """Number of placeholders minted so far."""
        return self._position

    def next_marker(self) -> str:
        self._position += 1
        return self.dialect.parameter_placeholder(self._position)

    def quote_identifier(self, identifier: str) -> str:
        return self.dialect.quote_identifier(identifier)


MYSQL = Dialect(name="mysql", quote_char="`")
POSTGRES = Dialect(name="postgres", quote_char='"', marker="$", numbered=True)
SQLITE = Dialect(name="sqlite", quote_char='"')

_DIALECTS: dict[str, Dialect] = {d.name: d for d in (MYSQL, POSTGRES, SQLITE)}


def register_dialect(dialect: Dialect) -> None:
    """Make *dialect* available to :func:`get_dialect` under its name."""
    _DIALECTS[dialect.name] = dialect


def get_dialect(dialect: Dialect | str) -> Dialect:
    """
    Look up a dialect by name (pass-through for :class:`Dialect` instances).

    Raises:
        DialectNotFoundError: If no dialect is registered under the name.
    """
    if isinstance(dialect, Dialect):
        return dialect
    if not isinstance(dialect, str):
        raise DialectNotFoundError(repr(dialect), list(_DIALECTS))
    try:
        return _DIALECTS[dialect.lower()]
    except KeyError:
        raise DialectNotFoundError(dialect, list(_DIALECTS)) from None
