"""
Entity and field descriptors.

Descriptors are produced by :class:`~relmap.schema.resolver.Resolver` and
are read-only once published: collections become tuples or read-only
mappings and attribute assignment raises ``AttributeError``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ..exceptions import RecordTypeMismatchError, ValueConversionError
from .adapters import coerce
from .kinds import ValueKind
from .markers import RelationKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pydantic import BaseModel

    from .adapters import Adapter


class _Freezable:
    _frozen = False

    def __setattr__(self, name: str, value: Any) -> None:
        if self._frozen:
            raise AttributeError(f"{type(self).__name__} is read-only")
        object.__setattr__(self, name, value)


_PLAIN_TYPES: dict[ValueKind, tuple[type, ...]] = {
    ValueKind.BOOL: (bool,),
    ValueKind.INT: (int,),
    ValueKind.FLOAT: (float, int),
    ValueKind.STR: (str,),
    ValueKind.BYTES: (bytes,),
    ValueKind.DATETIME: (datetime,),
}


@dataclass(eq=False)
class FieldDescriptor(_Freezable):
    """
    One mapped field.

    ``name`` is the storage column, or the junction/through table name of a
    many-to-many field.  A one-to-many field has no column of its own;
    ``name`` is the foreign-key column on the related table.
    """

    entity: EntityDescriptor = dataclasses.field(repr=False)
    index: int
    field: str
    annotation: Any = dataclasses.field(repr=False)
    kind: ValueKind
    optional: bool = False
    name: str = ""
    relation: RelationKind = RelationKind.NONE
    related: EntityDescriptor | None = dataclasses.field(default=None, repr=False)
    container: type | None = dataclasses.field(default=None, repr=False)
    adapter: Adapter | None = dataclasses.field(default=None, repr=False)
    int_bits: int = 64
    unsigned: bool = False
    # many-to-many only
    left_name: str = ""
    right_name: str = ""
    through: EntityDescriptor | None = dataclasses.field(default=None, repr=False)
    through_left: FieldDescriptor | None = dataclasses.field(default=None, repr=False)
    through_right: FieldDescriptor | None = dataclasses.field(default=None, repr=False)

    # -- roles ---------------------------------------------------------------

    @property
    def full_name(self) -> str:
        return f"{self.entity.type_name}.{self.field}"

    @property
    def is_primary_key(self) -> bool:
        return self.entity.primary_key is self

    @property
    def is_auto_increment(self) -> bool:
        return self.entity.auto_increment is self

    @property
    def is_auto_now_add(self) -> bool:
        return self.entity.auto_now_add is self

    @property
    def is_auto_now(self) -> bool:
        return self.entity.auto_now is self

    @property
    def is_one_relation(self) -> bool:
        return self.relation.is_one

    @property
    def is_many_relation(self) -> bool:
        return self.relation.is_many

    @property
    def has_getter(self) -> bool:
        return self.adapter is not None and self.adapter.has_getter

    @property
    def has_setter(self) -> bool:
        return self.adapter is not None and self.adapter.has_setter

    @property
    def leaf(self) -> FieldDescriptor:
        """The primary key reached by following to-one relations."""
        fd = self
        while fd.relation.is_one and fd.related is not None:
            assert fd.related.primary_key is not None
            fd = fd.related.primary_key
        return fd

    @property
    def junction(self) -> tuple[str, str, str]:
        """
        Table, left column and right column linking the two sides of a
        many-to-many field; the through entity's when one is declared.
        """
        if self.through is not None:
            assert self.through_left is not None and self.through_right is not None
            return self.through.name, self.through_left.name, self.through_right.name
        return self.name, self.left_name, self.right_name

    @property
    def scan_kind(self) -> ValueKind:
        """Kind a row reader should decode this column into."""
        if self.has_setter:
            assert self.adapter is not None
            return self.adapter.set_kind
        return self.leaf.kind

    # -- value access ----------------------------------------------------------

    def get_value(self, record: BaseModel) -> Any:
        """
        Read the storage value of this field from *record*.

        To-one relations yield the related record's primary-key value
        (``None`` when the related record is absent); many relations yield
        the field value as is.

        Raises:
            RecordTypeMismatchError: If *record* is not of this entity's type.
        """
        self._check_record(record, "get")

        if self.relation.is_one:
            related = getattr(record, self.field, None)
            if related is None:
                return None
            assert self.related is not None and self.related.primary_key is not None
            return self.related.primary_key.get_value(related)

        if self.has_getter:
            assert self.adapter is not None and self.adapter.getter is not None
            return self.adapter.getter(record)

        return getattr(record, self.field)

    def set_value(self, record: BaseModel, value: Any) -> None:
        """
        Store a value read from storage into *record*.

        To-one relations allocate the related record when absent and store
        *value* as its primary key; ``None`` on an optional relation clears it.

        Raises:
            RecordTypeMismatchError: If *record* is not of this entity's type.
            ValueConversionError: If *value* does not fit the field.
        """
        self._check_record(record, "set")

        if self.relation.is_one:
            if value is None and self.optional:
                self._assign(record, None)
                return
            assert self.related is not None and self.related.primary_key is not None
            related = getattr(record, self.field, None)
            if related is None:
                related = self.related.record_type.model_construct()
                self._assign(record, related)
            self.related.primary_key.set_value(related, value)
            return

        if self.has_setter:
            assert self.adapter is not None and self.adapter.setter is not None
            converted = coerce(self.adapter.set_kind, value, field=self.full_name)
            self.adapter.setter(record, converted)
            return

        if self.is_auto_increment:
            value = self._fit_integer(value)
        elif not self.relation.is_many:
            value = self._check_plain(value)
        self._assign(record, value)

    def _check_record(self, record: Any, action: str) -> None:
        if type(record) is not self.entity.record_type:
            raise RecordTypeMismatchError(
                f"{action} value type mismatching: {self.full_name}",
                field=self.full_name,
            )

    def _assign(self, record: BaseModel, value: Any) -> None:
        try:
            setattr(record, self.field, value)
        except (TypeError, ValueError) as exc:
            raise ValueConversionError(
                f"set value failed: {self.full_name}", field=self.full_name
            ) from exc

    def _check_plain(self, value: Any) -> Any:
        accepted = _PLAIN_TYPES.get(self.kind)
        if accepted is None or (value is None and self.optional):
            return value
        if isinstance(value, accepted) and not (
            isinstance(value, bool) and self.kind is not ValueKind.BOOL
        ):
            if self.kind is ValueKind.FLOAT:
                return float(value)
            return value
        raise ValueConversionError(
            f"set value failed, expected {self.kind.value} got "
            f"{type(value).__name__}: {self.full_name}",
            field=self.full_name,
        )

    def _fit_integer(self, value: Any) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueConversionError(
                f"set value failed, expected integer got "
                f"{type(value).__name__}: {self.full_name}",
                field=self.full_name,
            )
        if self.unsigned:
            low, high = 0, (1 << self.int_bits) - 1
        else:
            low, high = -(1 << (self.int_bits - 1)), (1 << (self.int_bits - 1)) - 1
        if not low <= value <= high:
            raise ValueConversionError(
                f"set value failed, {value} does not fit "
                f"{'u' if self.unsigned else ''}int{self.int_bits}: {self.full_name}",
                field=self.full_name,
            )
        return value

    def _freeze(self) -> None:
        object.__setattr__(self, "_frozen", True)


@dataclass(eq=False)
class EntityDescriptor(_Freezable):
    """
    Relational description of one record type.

    Attributes:
        record_type: The pydantic model class.
        name: Storage (table) name.
        fields: Mapped fields in declaration order.
        field_map: Fields by Python field name.
        column_map: Fields by column name; many relations are not included.
    """

    record_type: type[BaseModel]
    name: str
    fields: list[FieldDescriptor] | tuple[FieldDescriptor, ...] = dataclasses.field(
        default_factory=list
    )
    field_map: Mapping[str, FieldDescriptor] = dataclasses.field(default_factory=dict)
    column_map: Mapping[str, FieldDescriptor] = dataclasses.field(default_factory=dict)
    primary_key: FieldDescriptor | None = None
    auto_increment: FieldDescriptor | None = None
    auto_now_add: FieldDescriptor | None = None
    auto_now: FieldDescriptor | None = None

    @property
    def type_name(self) -> str:
        return self.record_type.__name__

    @property
    def columns(self) -> list[FieldDescriptor]:
        """Fields stored in this entity's table, in declaration order."""
        return [f for f in self.fields if not f.relation.is_many]

    def find_field(self, name: str) -> FieldDescriptor | None:
        """Look up by field name, then by column name."""
        fd = self.field_map.get(name)
        if fd is None:
            fd = self.column_map.get(name)
        return fd

    def find_column(self, name: str) -> FieldDescriptor | None:
        """Look up by column name, then by field name."""
        fd = self.column_map.get(name)
        if fd is None:
            fd = self.field_map.get(name)
        return fd

    def _freeze(self) -> None:
        if self._frozen:
            return
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "field_map", MappingProxyType(dict(self.field_map)))
        object.__setattr__(self, "column_map", MappingProxyType(dict(self.column_map)))
        for fd in self.fields:
            fd._freeze()
        object.__setattr__(self, "_frozen", True)

    def __repr__(self) -> str:
        return (
            f"EntityDescriptor({self.type_name}, name={self.name!r}, "
            f"columns={list(self.column_map)!r})"
        )
