"""
Statement planning for records.

Builds INSERT/SELECT/UPDATE/DELETE statements for pydantic records from
their entity descriptors.  Nothing here talks to a database; expand the
returned statements and run them with whatever driver you use::

    sql, args = insert_for(user).expand("sqlite")
    cursor = connection.execute(sql, args)
    set_auto_increment(user, cursor.lastrowid)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .exceptions import (
    ColumnNotFoundError,
    MissingPrimaryKeyError,
    RecordTypeMismatchError,
    RelationError,
    StatementError,
    ValueConversionError,
)
from .query import Delete, Insert, Select, Update, cond, eq, expr, in_
from .query.utils import back_quote
from .schema import RelationKind, default_resolver, pick_fields

if TYPE_CHECKING:
    from pydantic import BaseModel

    from .schema import EntityDescriptor, FieldDescriptor, Resolver

logger = logging.getLogger("relmap.crud")


def _entity(record: BaseModel, resolver: Resolver | None) -> EntityDescriptor:
    return (resolver or default_resolver()).resolve(type(record))


def _now(now: datetime | None) -> datetime:
    return (now or datetime.now()).replace(microsecond=0)


def _primary_key(entity: EntityDescriptor, action: str) -> FieldDescriptor:
    if entity.primary_key is None:
        raise MissingPrimaryKeyError(
            f"{action} no primary_key: {entity.type_name}",
            record_type=entity.type_name,
        )
    return entity.primary_key


# ---------------------------------------------------------------------------
# Single-table statements
# ---------------------------------------------------------------------------


def insert_for(
    *records: BaseModel,
    now: datetime | None = None,
    resolver: Resolver | None = None,
) -> Insert:
    """
    One INSERT for one or more records of the same type.

    The auto-increment column is left to the database.  Timestamp columns
    are set to *now* (default: the current second) on the records as well
    as in the inserted values.
    """
    if not records:
        raise StatementError("create", "empty batch insert")
    entity = _entity(records[0], resolver)

    columns = [fd for fd in entity.columns if not fd.is_auto_increment]
    if not columns:
        raise StatementError("create", f"no columns: {entity.type_name}")

    moment = _now(now)
    statement = Insert(entity.name).columns(*(fd.name for fd in columns))
    for record in records:
        row: list[Any] = []
        for fd in columns:
            if fd.is_auto_now_add or fd.is_auto_now:
                fd.set_value(record, moment)
                row.append(moment)
            else:
                row.append(fd.get_value(record))
        statement.values(*row)

    logger.debug("Planned insert of %d %s record(s)", len(records), entity.type_name)
    return statement


def set_auto_increment(
    record: BaseModel,
    value: int,
    *,
    resolver: Resolver | None = None,
) -> None:
    """Store a database-generated key (e.g. ``cursor.lastrowid``) on *record*."""
    entity = _entity(record, resolver)
    if entity.auto_increment is None:
        raise MissingPrimaryKeyError(
            f"no auto_increment: {entity.type_name}",
            record_type=entity.type_name,
        )
    entity.auto_increment.set_value(record, value)


def select_for(
    record: BaseModel,
    *columns: str,
    resolver: Resolver | None = None,
) -> Select:
    """
    SELECT the stored columns of *record* by its primary key.

    The primary key itself is not selected.  Feed the result row to
    :func:`~relmap.schema.map_to_record` keyed by the selected column names.
    """
    entity = _entity(record, resolver)
    pk = _primary_key(entity, "select")
    fields = pick_fields(
        entity,
        [fd for fd in entity.columns if not fd.is_primary_key],
        columns,
        action="select",
    )
    if not fields:
        raise StatementError("retrieve", f"no columns: {entity.type_name}")
    return (
        Select(*(fd.name for fd in fields))
        .from_(entity.name)
        .where(eq(pk.name, pk.get_value(record)))
    )


def update_for(
    record: BaseModel,
    *columns: str,
    now: datetime | None = None,
    resolver: Resolver | None = None,
) -> Update:
    """
    UPDATE *record* by its primary key.

    The primary key and the create timestamp are never written; the update
    timestamp is always refreshed, whatever the column selection.
    """
    entity = _entity(record, resolver)
    pk = _primary_key(entity, "update")
    candidates = [
        fd
        for fd in entity.columns
        if not (fd.is_primary_key or fd.is_auto_now_add or fd.is_auto_now)
    ]
    fields = pick_fields(entity, candidates, columns, action="update")

    statement = Update(entity.name).where(eq(pk.name, pk.get_value(record)))
    for fd in entity.columns:
        if fd.is_auto_now:
            moment = _now(now)
            fd.set_value(record, moment)
            statement.set(fd.name, moment)
        elif fd in fields:
            statement.set(fd.name, fd.get_value(record))
    return statement


def delete_for(record: BaseModel, *, resolver: Resolver | None = None) -> Delete:
    """DELETE *record* by its primary key."""
    entity = _entity(record, resolver)
    pk = _primary_key(entity, "delete")
    return Delete(entity.name).where(eq(pk.name, pk.get_value(record)))


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


def _relation_field(entity: EntityDescriptor, field: str) -> FieldDescriptor:
    fd = entity.find_field(field)
    if fd is None:
        raise ColumnNotFoundError(
            field, entity.type_name, sorted({*entity.field_map, *entity.column_map})
        )
    return fd


def relation_select(
    record: BaseModel,
    field: str,
    *columns: str,
    resolver: Resolver | None = None,
) -> Select:
    """
    SELECT the rows related to *record* through *field*.

    - to-one: the related record's row, by its primary key
    - one-to-many: rows of the related table whose foreign key is ours
    - many-to-many: related rows whose key appears in the junction table
    """
    entity = _entity(record, resolver)
    fd = _relation_field(entity, field)

    if fd.relation.is_one:
        related = getattr(record, fd.field, None)
        if related is None:
            raise ValueConversionError(
                f"select relation nil: {fd.full_name}", field=fd.full_name
            )
        return select_for(related, *columns, resolver=resolver)

    if not fd.relation.is_many:
        raise RelationError(
            f"select relation column no relation: {fd.full_name}",
            record_type=entity.type_name,
            field=fd.field,
        )

    assert fd.related is not None
    related_entity = fd.related
    pk = _primary_key(entity, "select relation")
    fields = pick_fields(
        related_entity, related_entity.columns, columns, action="select relation"
    )
    if not fields:
        raise StatementError("retrieve", f"no columns: {fd.full_name}")

    statement = Select(*(f.name for f in fields)).from_(related_entity.name)
    key = pk.get_value(record)
    if fd.relation is RelationKind.ONE_TO_MANY:
        return statement.where(eq(fd.name, key))

    related_pk = _primary_key(related_entity, "select relation")
    table, left, right = fd.junction
    subquery = Select(right).from_(table).where(eq(left, key))
    return statement.where(cond(back_quote(related_pk.name) + " IN (?)", subquery))


def _many_to_many(
    record: BaseModel, field: str, resolver: Resolver | None
) -> tuple[FieldDescriptor, Any]:
    entity = _entity(record, resolver)
    fd = _relation_field(entity, field)
    if fd.relation is not RelationKind.MANY_TO_MANY:
        raise RelationError(
            f"not many to many column: {fd.full_name}",
            record_type=entity.type_name,
            field=fd.field,
        )
    pk = _primary_key(entity, "many to many")
    return fd, pk.get_value(record)


def _right_key(fd: FieldDescriptor, related: BaseModel) -> Any:
    assert fd.related is not None and fd.related.primary_key is not None
    if type(related) is not fd.related.record_type:
        raise RecordTypeMismatchError(
            f"many to many type mismatching: {fd.full_name}", field=fd.full_name
        )
    return fd.related.primary_key.get_value(related)


def junction_insert(
    record: BaseModel,
    field: str,
    *related: BaseModel,
    resolver: Resolver | None = None,
) -> Insert:
    """INSERT junction rows linking *record* to each of *related*."""
    fd, key = _many_to_many(record, field, resolver)
    table, left, right = fd.junction
    statement = Insert(table).columns(left, right)
    for other in related:
        statement.values(key, _right_key(fd, other))
    return statement


def junction_delete(
    record: BaseModel,
    field: str,
    *related: BaseModel,
    resolver: Resolver | None = None,
) -> Delete:
    """DELETE the links to *related*, or every link of *record* if none given."""
    fd, key = _many_to_many(record, field, resolver)
    table, left, right = fd.junction
    statement = Delete(table).where(eq(left, key))
    if related:
        statement.where(in_(right, *(_right_key(fd, other) for other in related)))
    return statement


def junction_count(
    record: BaseModel,
    field: str,
    related: BaseModel,
    *,
    resolver: Resolver | None = None,
) -> Select:
    """SELECT COUNT(*) of links between *record* and *related* (0 or 1)."""
    fd, key = _many_to_many(record, field, resolver)
    table, left, right = fd.junction
    return (
        Select(expr("COUNT(*)"))
        .from_(table)
        .where(eq(left, key), eq(right, _right_key(fd, related)))
        .limit(1)
    )
