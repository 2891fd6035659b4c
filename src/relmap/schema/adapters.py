"""
Encode/decode adapters.

An adapter replaces direct attribute access for one field: ``getter(record)``
produces the value written to storage and ``setter(record, value)`` consumes
the value read back.  Both sides declare a :class:`ValueKind` from the
closed adapter set; values read from storage are coerced into the setter's
kind before the call.

Adapters are attached explicitly with ``Column(adapter=Adapter(...))`` or
discovered from methods following the ``orm_get_<field>`` /
``orm_set_<field>`` convention::

    class Account(BaseModel):
        id: int = 0
        roles: list[str] = []

        def orm_get_roles(self) -> str:
            return ",".join(self.roles)

        def orm_set_roles(self, value: str) -> None:
            self.roles = value.split(",") if value else []
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, get_type_hints

from ..exceptions import AdapterSignatureError, ValueConversionError
from .kinds import ADAPTER_KINDS, ValueKind, kind_of, unwrap_optional

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class Adapter:
    getter: Callable[[Any], Any] | None = None
    setter: Callable[[Any, Any], None] | None = None
    get_kind: ValueKind = ValueKind.ANY
    set_kind: ValueKind = ValueKind.ANY

    @property
    def has_getter(self) -> bool:
        return self.getter is not None

    @property
    def has_setter(self) -> bool:
        return self.setter is not None


def validate_adapter(adapter: Adapter, record_type: str, field: str) -> None:
    """
    Check an explicitly attached adapter.

    Raises:
        AdapterSignatureError: On a kind outside the adapter set or a
            callable that cannot take the record (and value) positionally.
    """
    for side, kind in (("getter", adapter.get_kind), ("setter", adapter.set_kind)):
        if kind not in ADAPTER_KINDS:
            raise AdapterSignatureError(
                f"{side} kind {kind.value!r} not allowed: {record_type}.{field}",
                record_type=record_type,
                field=field,
            )
    if adapter.getter is not None:
        _check_arity(adapter.getter, 1, "getter", record_type, field)
    if adapter.setter is not None:
        _check_arity(adapter.setter, 2, "setter", record_type, field)


def _check_arity(
    func: Callable[..., Any],
    expected: int,
    side: str,
    record_type: str,
    field: str,
) -> None:
    try:
        inspect.signature(func).bind(*([None] * expected))
    except TypeError as exc:
        raise AdapterSignatureError(
            f"{side} must accept exactly {expected} positional argument(s): "
            f"{record_type}.{field}",
            record_type=record_type,
            field=field,
        ) from exc
    except ValueError:
        # builtins without an inspectable signature
        return


def discover_adapter(
    record_type: type,
    field: str,
    getter_prefix: str,
    setter_prefix: str,
) -> Adapter | None:
    """
    Build an adapter from ``<getter_prefix><field>`` / ``<setter_prefix><field>``
    methods on *record_type*, or return ``None`` if neither exists.

    Raises:
        AdapterSignatureError: If a convention method is not a plain
            instance method, has the wrong arity, declares a kind outside
            the adapter set, or (setter) declares a return value.
    """
    type_name = record_type.__name__
    getter = _method(record_type, getter_prefix + field, "getter", type_name, field)
    setter = _method(record_type, setter_prefix + field, "setter", type_name, field)
    if getter is None and setter is None:
        return None

    get_kind = set_kind = ValueKind.ANY
    if getter is not None:
        _positional(getter, 1, "getter", type_name, field)
        hints = _hints(getter, type_name, field)
        get_kind = _adapter_kind(hints.get("return"), "getter", type_name, field)
    if setter is not None:
        params = _positional(setter, 2, "setter", type_name, field)
        hints = _hints(setter, type_name, field)
        set_kind = _adapter_kind(hints.get(params[1]), "setter", type_name, field)
        if "return" in hints and hints["return"] is not type(None):
            raise AdapterSignatureError(
                f"setter must not return a value: {type_name}.{field}",
                record_type=type_name,
                field=field,
            )

    return Adapter(getter=getter, setter=setter, get_kind=get_kind, set_kind=set_kind)


def _method(
    record_type: type,
    name: str,
    side: str,
    type_name: str,
    field: str,
) -> Callable[..., Any] | None:
    raw = inspect.getattr_static(record_type, name, None)
    if raw is None:
        return None
    if not inspect.isfunction(raw):
        raise AdapterSignatureError(
            f"{side} must be a plain instance method: {type_name}.{field}",
            record_type=type_name,
            field=field,
        )
    return raw


def _positional(
    func: Callable[..., Any],
    expected: int,
    side: str,
    type_name: str,
    field: str,
) -> list[str]:
    params = list(inspect.signature(func).parameters.values())
    plain = all(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
        for p in params
    )
    if len(params) != expected or not plain:
        raise AdapterSignatureError(
            f"{side} must take exactly {expected} positional parameter(s): "
            f"{type_name}.{field}",
            record_type=type_name,
            field=field,
        )
    return [p.name for p in params]


def _hints(func: Callable[..., Any], type_name: str, field: str) -> dict[str, Any]:
    try:
        return get_type_hints(func)
    except (NameError, TypeError) as exc:
        raise AdapterSignatureError(
            f"cannot evaluate annotations ({exc}): {type_name}.{field}",
            record_type=type_name,
            field=field,
        ) from exc


def _adapter_kind(
    annotation: Any,
    side: str,
    type_name: str,
    field: str,
) -> ValueKind:
    if annotation is None:
        return ValueKind.ANY
    kind = kind_of(unwrap_optional(annotation)[0])
    if kind not in ADAPTER_KINDS:
        raise AdapterSignatureError(
            f"{side} type {annotation!r} not allowed, expected one of "
            f"{sorted(k.value for k in ADAPTER_KINDS)}: {type_name}.{field}",
            record_type=type_name,
            field=field,
        )
    return kind


# ---------------------------------------------------------------------------
# Coercion of storage values into a setter's declared kind
# ---------------------------------------------------------------------------


def coerce(kind: ValueKind, value: Any, *, field: str | None = None) -> Any:
    """
    Convert *value* into *kind* following the fixed coercion table.

    Raises:
        ValueConversionError: If *value* is not acceptable for *kind*.
    """
    if kind is ValueKind.ANY:
        return value

    if kind is ValueKind.BYTES:
        if value is None or isinstance(value, bytes):
            return value
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode()
    elif kind is ValueKind.STR:
        if isinstance(value, str):
            return value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value).decode()
    elif kind is ValueKind.BOOL:
        if isinstance(value, bool):
            return value
    elif kind is ValueKind.INT:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif kind is ValueKind.FLOAT:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif kind is ValueKind.DATETIME:
        if isinstance(value, datetime):
            return value

    raise ValueConversionError(
        f"cannot convert {type(value).__name__} to {kind.value}"
        + (f": {field}" if field else ""),
        field=field,
    )
