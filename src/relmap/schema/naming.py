"""
Naming strategies.

A strategy turns type and field names into table, column and junction-table
names.  It is the last tier of the column-name precedence: an explicit
``Column(name=...)`` wins, then the record type's ``__column_name__`` hook,
then the strategy configured on the resolver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class ColumnNameContext:
    """
    Inputs available when naming one column.

    For plain columns only ``field``, ``owner_type`` and ``owner_table`` are
    set.  Relation columns also describe the entity whose primary key the
    column stores: the related entity for to-one relations and the right
    side of a many-to-many, the owning entity itself for one-to-many and the
    left side of a many-to-many.
    """

    field: str
    owner_type: str
    owner_table: str
    related_type: str | None = None
    related_primary_key_field: str | None = None
    related_table: str | None = None
    related_primary_key_column: str | None = None

    @property
    def is_relation(self) -> bool:
        return self.related_type is not None


@runtime_checkable
class NamingStrategy(Protocol):
    def table_name(self, type_name: str) -> str: ...

    def column_name(self, ctx: ColumnNameContext) -> str: ...

    def junction_table_name(
        self,
        field: str,
        left_type: str,
        left_table: str,
        right_type: str,
        right_table: str,
    ) -> str: ...


class DefaultNaming:
    """
    Names taken verbatim from the Python declaration.

    - table: the type name
    - plain column: the field name
    - relation column: related type name + its primary-key field name
    - junction table: both type names concatenated in lexical order
    """

    def table_name(self, type_name: str) -> str:
        return type_name

    def column_name(self, ctx: ColumnNameContext) -> str:
        if ctx.is_relation:
            return f"{ctx.related_type}{ctx.related_primary_key_field}"
        return ctx.field

    def junction_table_name(
        self,
        field: str,
        left_type: str,
        left_table: str,
        right_type: str,
        right_table: str,
    ) -> str:
        first, second = sorted((left_type, right_type))
        return first + second

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SnakeCaseNaming(DefaultNaming):
    """
    ``UserGroup`` → ``user_group``; relation columns are
    ``<related type>_<related primary-key column>``.

    Names that are already lower case are kept as they are.
    """

    def table_name(self, type_name: str) -> str:
        return _snake(type_name)

    def column_name(self, ctx: ColumnNameContext) -> str:
        if ctx.is_relation:
            return (
                f"{_snake(ctx.related_type or '')}_"
                f"{_snake(ctx.related_primary_key_column or '')}"
            )
        return _snake(ctx.field)

    def junction_table_name(
        self,
        field: str,
        left_type: str,
        left_table: str,
        right_type: str,
        right_table: str,
    ) -> str:
        first, second = sorted((_snake(left_type), _snake(right_type)))
        return f"{first}_{second}"


def _snake(name: str) -> str:
    return name if name == name.lower() else camel_to_underscore(name)


def camel_to_underscore(name: str) -> str:
    """
    ``"UserGroupId"`` → ``"user_group_id"``.

    Existing underscores are dropped and every upper-case letter starts a
    new word, so ``"HTTPCode"`` becomes ``"h_t_t_p_code"``.
    """
    out: list[str] = []
    for ch in name:
        if ch == "_":
            continue
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    if out and out[0] == "_":
        out.pop(0)
    return "".join(out)


def underscore_to_camel(name: str) -> str:
    """``"user__group_id"`` → ``"UserGroupId"``; the first letter is always upper."""
    out: list[str] = []
    upper = True
    for ch in name:
        if ch == "_":
            upper = True
        elif upper:
            upper = False
            out.append(ch.upper())
        else:
            out.append(ch.lower())
    return "".join(out)
