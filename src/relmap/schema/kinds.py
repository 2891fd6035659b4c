"""
Value kinds.

A closed set of scalar kinds that adapters may read and write and that a
row reader decodes into.  Everything else a field may hold is ``OTHER``.
"""

from __future__ import annotations

import collections.abc
import types
from datetime import datetime
from enum import Enum
from typing import Any, Union, get_args, get_origin


class ValueKind(str, Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STR = "str"
    BYTES = "bytes"
    DATETIME = "datetime"
    ANY = "any"
    OTHER = "other"


#: Kinds permitted in adapter signatures.
ADAPTER_KINDS = frozenset(ValueKind) - {ValueKind.OTHER}

_SCALARS: tuple[tuple[type, ValueKind], ...] = (
    (bool, ValueKind.BOOL),
    (int, ValueKind.INT),
    (float, ValueKind.FLOAT),
    (str, ValueKind.STR),
    (bytes, ValueKind.BYTES),
    (datetime, ValueKind.DATETIME),
)

_SEQUENCE_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
)


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Strip ``None`` from a union; return the remainder and whether it was there."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        optional = len(args) != len(get_args(annotation))
        if len(args) == 1:
            return args[0], optional
        return Union[tuple(args)], optional  # noqa: UP007
    return annotation, False


def kind_of(annotation: Any) -> ValueKind:
    """Map an annotation (``Optional`` already stripped) to its value kind."""
    if annotation is Any or annotation is object:
        return ValueKind.ANY
    if get_origin(annotation) is not None or not isinstance(annotation, type):
        return ValueKind.OTHER
    # bool is an int subclass, so the order of _SCALARS matters
    for scalar, kind in _SCALARS:
        if issubclass(annotation, scalar):
            return kind
    return ValueKind.OTHER


def sequence_item(annotation: Any) -> tuple[type | None, Any]:
    """
    For ``list[T]``, ``tuple[T, ...]``, ``set[T]`` and friends return the
    container type and ``T``; ``(None, None)`` for anything else.
    """
    origin = get_origin(annotation)
    if origin is None or origin not in _SEQUENCE_ORIGINS:
        return None, None
    args = [a for a in get_args(annotation) if a is not Ellipsis]
    if len(args) != 1:
        return None, None
    container = origin if origin in (list, tuple, set, frozenset) else list
    return container, args[0]
