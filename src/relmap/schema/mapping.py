"""
Record ↔ column-map conversion.

Column selections accept field or column names.  A leading ``"-"`` turns
the selection into an exclusion list::

    record_to_map(user)                     # every stored column
    record_to_map(user, "name", "email")    # only these
    record_to_map(user, "-", "password")    # all but this one
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..exceptions import ColumnNotFoundError, RelationError
from .resolver import default_resolver

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from pydantic import BaseModel

    from .descriptors import EntityDescriptor, FieldDescriptor
    from .resolver import Resolver

EXCLUDE = "-"


def pick_fields(
    entity: EntityDescriptor,
    candidates: Iterable[FieldDescriptor],
    names: Sequence[str],
    *,
    action: str = "select",
) -> list[FieldDescriptor]:
    """
    Filter *candidates* by *names*; an empty selection keeps everything.

    Raises:
        ColumnNotFoundError: If a name matches no field or column.
        RelationError: If a name refers to a many relation.
    """
    exclude = False
    mode = "include"
    if names and names[0] == EXCLUDE:
        exclude, mode = True, "exclude"
        names = names[1:]

    chosen: set[int] = set()
    for name in names:
        fd = entity.find_field(name)
        if fd is None:
            raise ColumnNotFoundError(
                name,
                entity.type_name,
                sorted({*entity.field_map, *entity.column_map}),
            )
        if fd.relation.is_many:
            raise RelationError(
                f"{action} {mode} many relation column: {fd.full_name}",
                record_type=entity.type_name,
                field=fd.field,
            )
        chosen.add(fd.index)

    if not chosen:
        return list(candidates)
    return [fd for fd in candidates if (fd.index in chosen) != exclude]


def record_to_map(
    record: BaseModel,
    *columns: str,
    resolver: Resolver | None = None,
) -> dict[str, Any]:
    """Return ``{column name: storage value}`` for the stored fields of *record*."""
    entity = (resolver or default_resolver()).resolve(type(record))
    fields = pick_fields(entity, entity.columns, columns, action="record_to_map")
    return {fd.name: fd.get_value(record) for fd in fields}


def map_to_record(
    record: BaseModel,
    data: Mapping[str, Any],
    *,
    resolver: Resolver | None = None,
) -> BaseModel:
    """
    Assign the columns present in *data* to *record* and return it.

    Keys that are not column names of the record's entity are ignored.
    """
    entity = (resolver or default_resolver()).resolve(type(record))
    for fd in entity.columns:
        if fd.name in data:
            fd.set_value(record, data[fd.name])
    return record
