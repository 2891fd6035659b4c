"""
Logical condition trees over expressions.

Two node kinds:

- :class:`Predicate`: one :class:`Expression` plus a negation flag.
- :class:`Junction`: a flat list of child conditions joined by ``AND`` or
  ``OR``.

Combining a junction with the same operator extends its child list rather
than nesting.  Negating a junction negates every child and keeps the
operator: ``not_(a AND b)`` renders ``(NOT (a)) AND (NOT (b))``.  De Morgan's
law is deliberately not applied.
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

from .expression import Expandable, Expression

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..exceptions import ExpressionError
    from .dialects import Starter


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class Condition(Expandable):
    """Base class for conditions usable in ``ON``, ``WHERE`` and ``HAVING``."""

    __slots__ = ()

    @abstractmethod
    def not_(self) -> Condition:
        """Return the logical negation of this condition."""

    def and_(self, *others: Condition) -> Condition:
        return and_(self, *others)

    def or_(self, *others: Condition) -> Condition:
        return or_(self, *others)

    def __and__(self, other: Condition) -> Condition:
        return self.and_(other)

    def __or__(self, other: Condition) -> Condition:
        return self.or_(other)

    def __invert__(self) -> Condition:
        return self.not_()


class Predicate(Condition):
    """A leaf condition: one expression, optionally negated."""

    __slots__ = ("expression", "negated")

    def __init__(self, expression: Expression, *, negated: bool = False) -> None:
        self.expression = expression
        self.negated = negated

    @property
    def error(self) -> ExpressionError | None:
        return self.expression.error

    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        text, args = self.expression.render(starter)
        if self.negated:
            text = f"NOT ({text})"
        return text, args

    def not_(self) -> Predicate:
        return Predicate(self.expression, negated=not self.negated)

    def __repr__(self) -> str:
        prefix = "NOT " if self.negated else ""
        return f"Predicate({prefix}{self.expression.template!r})"


class Junction(Condition):
    """Children joined by one logical operator."""

    __slots__ = ("operator", "conditions", "_error")

    def __init__(
        self,
        operator: LogicalOperator,
        conditions: Iterable[Condition],
    ) -> None:
        self.operator = operator
        self.conditions: tuple[Condition, ...] = tuple(conditions)
        self._error = _first_error(self.conditions)

    @property
    def error(self) -> ExpressionError | None:
        return self._error

    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        if self._error is not None:
            raise self._error
        pieces: list[str] = []
        args: list[Any] = []
        for condition in self.conditions:
            text, nested = condition.render(starter)
            pieces.append(f"({text})")
            args.extend(nested)
        return f" {self.operator.value} ".join(pieces), args

    def not_(self) -> Junction:
        return Junction(self.operator, (c.not_() for c in self.conditions))

    def and_(self, *others: Condition) -> Condition:
        if self.operator is LogicalOperator.AND:
            return Junction(self.operator, (*self.conditions, *others))
        return and_(self, *others)

    def or_(self, *others: Condition) -> Condition:
        if self.operator is LogicalOperator.OR:
            return Junction(self.operator, (*self.conditions, *others))
        return or_(self, *others)

    def __repr__(self) -> str:
        return f"Junction({self.operator.value}, {list(self.conditions)!r})"


def _first_error(conditions: Iterable[Condition]) -> ExpressionError | None:
    for condition in conditions:
        if condition.error is not None:
            return condition.error
    return None


def _combine(operator: LogicalOperator, conditions: tuple[Condition, ...]) -> Condition:
    if len(conditions) == 1:
        return conditions[0]
    return Junction(operator, conditions)


# ---------------------------------------------------------------------------
# Public constructors
# ---------------------------------------------------------------------------


def cond(template: str, *args: Any) -> Predicate:
    """Same as :func:`~relmap.query.expression.expr`, as a condition."""
    return Predicate(Expression(template, *args))


def not_cond(template: str, *args: Any) -> Predicate:
    """Same as :func:`cond`, but negated."""
    return Predicate(Expression(template, *args), negated=True)


def and_(*conditions: Condition) -> Condition:
    """Logical AND; a single condition is returned unchanged."""
    return _combine(LogicalOperator.AND, conditions)


def or_(*conditions: Condition) -> Condition:
    """Logical OR; a single condition is returned unchanged."""
    return _combine(LogicalOperator.OR, conditions)


def not_(condition: Condition) -> Condition:
    return condition.not_()
