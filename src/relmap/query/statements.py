"""
Statement builders: INSERT, SELECT, UPDATE and DELETE.

Builders are mutable and accumulate clauses through fluent calls.  All
structural validation is deferred to :meth:`Expandable.expand`, which
renders clauses left to right, forwards nested arguments in the same order
and raises the first error met (a child's stored construction error or the
builder's own structural error).

Example::

    sql, args = (
        Select("name", expr("COUNT(*) AS `n`"))
        .from_("users")
        .where(eq("status", "active"), gt("age", 18))
        .group_by("name")
        .order_by(desc("n"))
        .limit(10)
        .expand("mysql")
    )
    # SELECT `name`,COUNT(*) AS `n` FROM `users` WHERE (`status`=?) AND
    # (`age`>?) GROUP BY `name` ORDER BY `n` DESC LIMIT 10
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..exceptions import StatementError
from .conditions import Condition, Junction, LogicalOperator
from .expression import Expandable, Expression
from .utils import back_quote

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ..exceptions import ExpressionError
    from .dialects import Starter


class JoinKind(str, Enum):
    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"
    RIGHT = "RIGHT JOIN"
    FULL = "FULL JOIN"


class Statement(Expandable):
    """Common base of the four builders."""

    statement_name = "statement"

    @property
    def error(self) -> ExpressionError | None:
        for item in self._children():
            if item.error is not None:
                return item.error
        return None

    def _children(self) -> Iterator[Expandable]:
        return iter(())

    def _fail(self, message: str) -> StatementError:
        return StatementError(self.statement_name, message)

    # -- shared clause rendering ----------------------------------------------

    def _render_items(
        self,
        starter: Starter,
        items: Iterable[Any],
        clause: str,
    ) -> tuple[str, list[Any]]:
        """Render a comma list of column names or expressions."""
        pieces: list[str] = []
        args: list[Any] = []
        for item in items:
            if isinstance(item, str):
                item = Expression(back_quote(item))
            elif not isinstance(item, Expandable):
                raise self._fail(f"{clause} must be string or expression")
            text, nested = item.render(starter)
            pieces.append(text)
            args.extend(nested)
        return ",".join(pieces), args

    def _render_conditions(
        self,
        starter: Starter,
        conditions: list[Any],
        clause: str,
    ) -> tuple[str, list[Any]]:
        """Render conditions joined by AND, each one parenthesised."""
        for c in conditions:
            if not isinstance(c, Condition):
                raise self._fail(f"{clause} must be condition")
        return Junction(LogicalOperator.AND, conditions).render(starter)

    def _render_source(
        self,
        starter: Starter,
        source: Any,
        clause: str,
    ) -> tuple[str, list[Any]]:
        """Render a table name or an aliased subquery."""
        if isinstance(source, str):
            return starter.quote_identifier(source), []
        if isinstance(source, Querier):
            if not source.alias:
                raise self._fail(f"{clause} subquery needs an alias")
            text, args = source.render(starter)
            return f"({text}) AS {starter.quote_identifier(source.alias)}", args
        raise self._fail(f"{clause} must be string or querier")

    @staticmethod
    def _expandables(*groups: Iterable[Any]) -> Iterator[Expandable]:
        for group in groups:
            for item in group:
                if isinstance(item, Expandable):
                    yield item


class Querier(Statement):
    """A statement that can be used as an aliased subquery."""

    def __init__(self) -> None:
        self.alias = ""

    def as_(self, alias: str) -> Querier:
        self.alias = alias
        return self


class _Ordered(Statement):
    """Shared ``WHERE``/``ORDER BY``/``LIMIT`` tail of UPDATE and DELETE."""

    def __init__(self) -> None:
        self._where: list[Condition] = []
        self._order: list[Any] = []
        self._limit = 0

    def _render_tail(self, starter: Starter) -> tuple[str, list[Any]]:
        sql = ""
        args: list[Any] = []
        if self._where:
            text, nested = self._render_conditions(starter, self._where, "where")
            sql += " WHERE " + text
            args.extend(nested)
        if self._order:
            text, nested = self._render_items(starter, self._order, "order by")
            sql += " ORDER BY " + text
            args.extend(nested)
        if self._limit > 0:
            sql += f" LIMIT {self._limit}"
        return sql, args


# ---------------------------------------------------------------------------
# INSERT
# ---------------------------------------------------------------------------


class Insert(Querier):
    """``INSERT INTO table (columns) VALUES (...),(...)``."""

    statement_name = "create"

    def __init__(self, table: str) -> None:
        super().__init__()
        self.table = table
        self._columns: list[str] = []
        self._rows: list[tuple[Any, ...]] = []

    def columns(self, *names: str) -> Insert:
        self._columns.extend(names)
        return self

    def values(self, *row: Any) -> Insert:
        """Append one value row; call repeatedly for a batch insert."""
        self._rows.append(row)
        return self

    def _children(self) -> Iterator[Expandable]:
        return self._expandables(*self._rows)

    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        width = len(self._columns)
        if width == 0:
            raise self._fail("no columns")
        if not self._rows:
            raise self._fail("no values")

        columns = ",".join(starter.quote_identifier(c) for c in self._columns)
        rows: list[str] = []
        args: list[Any] = []
        for row in self._rows:
            if len(row) != width:
                raise self._fail("columns count not equal values count")
            markers: list[str] = []
            for value in row:
                if isinstance(value, Expandable):
                    text, nested = value.render(starter)
                    markers.append(text)
                    args.extend(nested)
                else:
                    markers.append(starter.next_marker())
                    args.append(value)
            rows.append("(" + ",".join(markers) + ")")

        table = starter.quote_identifier(self.table)
        return f"INSERT INTO {table} ({columns}) VALUES {','.join(rows)}", args


# ---------------------------------------------------------------------------
# SELECT
# ---------------------------------------------------------------------------


class _Join:
    __slots__ = ("kind", "target", "criteria")

    def __init__(self, kind: str, target: Any, criteria: tuple[Any, ...]) -> None:
        self.kind = kind
        self.target = target
        self.criteria = criteria


class Select(Querier):
    """
    ``SELECT`` builder.

    Select-list, group-by and order-by items are column names (quoted as
    identifiers, ``"t.c"`` is table-qualified) or expressions.  Sources and
    join targets are table names or aliased queriers.  Join criteria are
    either column names (``USING``) or conditions (``ON``), never both.
    """

    statement_name = "retrieve"

    def __init__(self, *items: Any) -> None:
        super().__init__()
        self._items: list[Any] = list(items)
        self._from: list[Any] = []
        self._joins: list[_Join] = []
        self._where: list[Condition] = []
        self._group: list[Any] = []
        self._having: list[Condition] = []
        self._order: list[Any] = []
        self._limit = 0
        self._offset = 0

    # -- fluent API ----------------------------------------------------------

    def select(self, *items: Any) -> Select:
        self._items.extend(items)
        return self

    def from_(self, *sources: Any) -> Select:
        self._from.extend(sources)
        return self

    def join(self, kind: JoinKind | str, target: Any, *criteria: Any) -> Select:
        kind_text = kind.value if isinstance(kind, JoinKind) else kind
        self._joins.append(_Join(kind_text, target, criteria))
        return self

    def inner_join(self, target: Any, *criteria: Any) -> Select:
        return self.join(JoinKind.INNER, target, *criteria)

    def left_join(self, target: Any, *criteria: Any) -> Select:
        return self.join(JoinKind.LEFT, target, *criteria)

    def right_join(self, target: Any, *criteria: Any) -> Select:
        return self.join(JoinKind.RIGHT, target, *criteria)

    def full_join(self, target: Any, *criteria: Any) -> Select:
        return self.join(JoinKind.FULL, target, *criteria)

    def where(self, *conditions: Condition) -> Select:
        self._where.extend(conditions)
        return self

    def group_by(self, *items: Any) -> Select:
        self._group.extend(items)
        return self

    def having(self, *conditions: Condition) -> Select:
        self._having.extend(conditions)
        return self

    def order_by(self, *items: Any) -> Select:
        self._order.extend(items)
        return self

    def limit(self, n: int) -> Select:
        self._limit = n
        return self

    def offset(self, n: int) -> Select:
        self._offset = n
        return self

    # -- rendering -----------------------------------------------------------

    def _children(self) -> Iterator[Expandable]:
        return self._expandables(
            self._items,
            self._from,
            (j.target for j in self._joins),
            (c for j in self._joins for c in j.criteria),
            self._where,
            self._group,
            self._having,
            self._order,
        )

    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        args: list[Any] = []

        if self._items:
            text, nested = self._render_items(starter, self._items, "select")
            args.extend(nested)
        else:
            text = "*"
        sql = "SELECT " + text

        if not self._from:
            raise self._fail("empty from")
        sources: list[str] = []
        for source in self._from:
            text, nested = self._render_source(starter, source, "from")
            sources.append(text)
            args.extend(nested)
        sql += " FROM " + ",".join(sources)

        for join in self._joins:
            text, nested = self._render_join(starter, join)
            sql += " " + text
            args.extend(nested)

        if self._where:
            text, nested = self._render_conditions(starter, self._where, "where")
            sql += " WHERE " + text
            args.extend(nested)

        if self._group:
            text, nested = self._render_items(starter, self._group, "group by")
            sql += " GROUP BY " + text
            args.extend(nested)

        if self._having:
            text, nested = self._render_conditions(starter, self._having, "having")
            sql += " HAVING " + text
            args.extend(nested)

        if self._order:
            text, nested = self._render_items(starter, self._order, "order by")
            sql += " ORDER BY " + text
            args.extend(nested)

        if self._limit > 0:
            sql += f" LIMIT {self._limit}"
        if self._offset > 0:
            sql += f" OFFSET {self._offset}"

        return sql, args

    def _render_join(self, starter: Starter, join: _Join) -> tuple[str, list[Any]]:
        target, args = self._render_source(starter, join.target, "join")
        sql = f"{join.kind} {target}"

        using: list[str] = []
        on: list[Condition] = []
        for criterion in join.criteria:
            if isinstance(criterion, str):
                using.append(criterion)
            elif isinstance(criterion, Condition):
                on.append(criterion)
            else:
                raise self._fail("join using string or on condition")

        if using and on:
            raise self._fail("join using string or on condition, but not both")
        if using:
            names = ",".join(starter.quote_identifier(u) for u in using)
            sql += f" USING ({names})"
        elif on:
            text, nested = self._render_conditions(starter, on, "join")
            sql += " ON " + text
            args.extend(nested)
        return sql, args


# ---------------------------------------------------------------------------
# UPDATE
# ---------------------------------------------------------------------------


class Update(Querier, _Ordered):
    """
    ``UPDATE table SET ...`` builder.

    An assignment value that is an expression is rendered in place, which
    allows computed updates such as ``set("n", expr("`n`+?", 1))``.
    """

    statement_name = "update"

    def __init__(self, table: str) -> None:
        Querier.__init__(self)
        _Ordered.__init__(self)
        self.table = table
        self._set: list[tuple[str, Any]] = []

    def set(self, column: str, value: Any) -> Update:
        self._set.append((column, value))
        return self

    def auto_now(self, column: str, now: datetime | None = None) -> Update:
        """Assign the current time, truncated to whole seconds."""
        moment = now if now is not None else datetime.now()
        self._set.append((column, moment.replace(microsecond=0)))
        return self

    def where(self, *conditions: Condition) -> Update:
        self._where.extend(conditions)
        return self

    def order_by(self, *items: Any) -> Update:
        self._order.extend(items)
        return self

    def limit(self, n: int) -> Update:
        self._limit = n
        return self

    def _children(self) -> Iterator[Expandable]:
        return self._expandables(
            (v for _, v in self._set), self._where, self._order
        )

    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        if not self._set:
            raise self._fail("empty set")

        assignments: list[str] = []
        args: list[Any] = []
        for column, value in self._set:
            if isinstance(value, Expandable):
                text, nested = value.render(starter)
                args.extend(nested)
            else:
                text = starter.next_marker()
                args.append(value)
            assignments.append(f"{starter.quote_identifier(column)}={text}")

        sql = f"UPDATE {starter.quote_identifier(self.table)} SET " + ",".join(
            assignments
        )
        tail, nested = self._render_tail(starter)
        return sql + tail, args + nested


# ---------------------------------------------------------------------------
# DELETE
# ---------------------------------------------------------------------------


class Delete(_Ordered):
    """``DELETE FROM table`` builder; every clause but the table is optional."""

    statement_name = "delete"

    def __init__(self, table: str) -> None:
        super().__init__()
        self.table = table

    def where(self, *conditions: Condition) -> Delete:
        self._where.extend(conditions)
        return self

    def order_by(self, *items: Any) -> Delete:
        self._order.extend(items)
        return self

    def limit(self, n: int) -> Delete:
        self._limit = n
        return self

    def _children(self) -> Iterator[Expandable]:
        return self._expandables(self._where, self._order)

    def render(self, starter: Starter) -> tuple[str, list[Any]]:
        tail, args = self._render_tail(starter)
        return f"DELETE FROM {starter.quote_identifier(self.table)}" + tail, args
