"""
Expression templates.

A template is SQL text with three kinds of slots:

- ``` `name` ```: an identifier.  A single ``.`` splits it into parts
  (``` `t1.c1` ``` → ``"t1"."c1"``); ``..`` is a literal dot and a doubled
  back quote is a literal back quote inside the identifier.
- ``?``: consumes the next argument.  An :class:`Expandable` argument is
  expanded in place (its arguments are spliced into the parent's); any other
  value becomes one placeholder.  ``??`` is a literal question mark.
- ``` `` ``` outside an identifier is a literal back quote.

Parsing happens once, in the constructor.  Errors are stored on the object
and raised by :meth:`Expandable.expand`, so fluent chains never throw half
way through.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..exceptions import ArgumentCountError, ExpressionError, TemplateSyntaxError
from .dialects import get_dialect

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .dialects import Dialect, Starter

logger = logging.getLogger("relmap.query")

_QUOTE = "`"
_MARKER = "?"
_SEPARATOR = "."


class Expandable(ABC):
    """Anything that renders to SQL text plus a flat argument list."""

    __slots__ = ()

    @property
    @abstractmethod
    def error(self) -> ExpressionError | None:
        """The first construction error, or ``None``."""

    @abstractmethod
    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        """
        Render against an in-progress expansion.

        Nested expandables share *starter* so numbered placeholders keep
        counting across the whole statement.

        Raises:
            ExpressionError: The stored construction error, or a structural
                error detected while rendering.
        """

    def expand(self, dialect: Dialect | str) -> tuple[str, list[Any]]:
        """
        Expand into final SQL text and its ordered arguments.

        A fresh :class:`Starter` is taken from the dialect for every call.
        """
        starter = get_dialect(dialect).start()
        text, args = self.render(starter)
        logger.debug(
            "Expanded %s for %s (%d args)",
            type(self).__name__,
            starter.driver_name,
            len(args),
        )
        return text, args


class SlotKind(str, Enum):
    IDENTIFIER = "identifier"
    MARKER = "marker"
    EXPRESSION = "expression"


@dataclass(frozen=True, slots=True)
class Slot:
    kind: SlotKind
    value: Any


class Expression(Expandable):
    """
    A compiled, dialect-independent template.

    Example::

        e = Expression("`t.count` + ? > ?", 1, 10)
        e.expand("postgres")
        # ('"t"."count" + $1 > $2', [1, 10])
    """

    __slots__ = ("template", "_format", "_slots", "_error")

    def __init__(self, template: str, *args: Any) -> None:
        self.template = template
        self._error: ExpressionError | None = None
        try:
            self._format, self._slots = _parse(template, args)
        except ExpressionError as exc:
            self._format, self._slots = "", ()
            self._error = exc

    @property
    def error(self) -> ExpressionError | None:
        if self._error is not None:
            return self._error
        for slot in self._slots:
            if slot.kind is SlotKind.EXPRESSION and slot.value.error is not None:
                return slot.value.error  # type: ignore[no-any-return]
        return None

    @property
    def slots(self) -> tuple[Slot, ...]:
        return self._slots

    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        if self._error is not None:
            raise self._error
        pieces: list[str] = []
        args: list[Any] = []
        for slot in self._slots:
            if slot.kind is SlotKind.IDENTIFIER:
                pieces.append(
                    _SEPARATOR.join(starter.quote_identifier(p) for p in slot.value)
                )
            elif slot.kind is SlotKind.MARKER:
                pieces.append(starter.next_marker())
                args.append(slot.value)
            else:
                text, nested = slot.value.render(starter)
                pieces.append(text)
                args.extend(nested)
        return self._format % tuple(pieces), args

    def __repr__(self) -> str:
        return f"Expression({self.template!r})"


def expr(template: str, *args: Any) -> Expression:
    """Compile *template* with positional *args* (see module docstring)."""
    return Expression(template, *args)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse(template: str, args: Sequence[Any]) -> tuple[str, tuple[Slot, ...]]:
    if not template:
        raise TemplateSyntaxError("empty expression", template)

    out: list[str] = []
    slots: list[Slot] = []
    consumed = 0
    i, n = 0, len(template)

    while i < n:
        ch = template[i]
        doubled = i + 1 < n and template[i + 1] == ch
        if ch == _QUOTE:
            if doubled:
                out.append(_QUOTE)
                i += 2
                continue
            end, name = _scan_identifier(template, i + 1)
            out.append("%s")
            slots.append(Slot(SlotKind.IDENTIFIER, split_identifier(name)))
            i = end + 1
        elif ch == _MARKER:
            if doubled:
                out.append(_MARKER)
                i += 2
                continue
            if consumed >= len(args):
                raise ArgumentCountError("expression args not enough", template)
            value = args[consumed]
            consumed += 1
            kind = (
                SlotKind.EXPRESSION
                if isinstance(value, Expandable)
                else SlotKind.MARKER
            )
            out.append("%s")
            slots.append(Slot(kind, value))
            i += 1
        elif ch == "%":
            # reserved by the %-substitution used in render()
            out.append("%%")
            i += 1
        else:
            out.append(ch)
            i += 1

    if consumed < len(args):
        raise ArgumentCountError("expression args too many", template)

    return "".join(out), tuple(slots)


def _scan_identifier(template: str, start: int) -> tuple[int, str]:
    """Return the index of the closing quote and the unescaped name."""
    name: list[str] = []
    j, n = start, len(template)
    while j < n:
        ch = template[j]
        if ch == _QUOTE:
            if j + 1 < n and template[j + 1] == _QUOTE:
                name.append(_QUOTE)
                j += 2
                continue
            return j, "".join(name)
        name.append(ch)
        j += 1
    raise TemplateSyntaxError("expression back quote not closed", template)


def split_identifier(name: str) -> tuple[str, ...]:
    """
    Split an identifier on single dots; ``..`` is kept as a literal dot.

    A trailing single dot is dropped.

    >>> split_identifier("t1.c1")
    ('t1', 'c1')
    >>> split_identifier("t2..c2")
    ('t2.c2',)
    """
    parts: list[str] = []
    buf: list[str] = []
    i, n = 0, len(name)
    while i < n:
        ch = name[i]
        if ch == _SEPARATOR:
            if i + 1 < n and name[i + 1] == _SEPARATOR:
                buf.append(_SEPARATOR)
                i += 2
                continue
            if i < n - 1:
                parts.append("".join(buf))
                buf = []
        else:
            buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return tuple(parts)
