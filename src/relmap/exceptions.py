"""
Exception hierarchy for relmap.

Three families share the ``RelmapError`` root:

- :class:`SchemaError`: structural configuration errors found while
  resolving a record type.  Never transient; a failing type keeps failing
  until its declaration changes.
- :class:`ValueConversionError`: a value handed to a field accessor does
  not fit the field's declared kind.
- :class:`ExpressionError`: malformed templates and statement shapes.
  These are stored on the builder objects and only raised from ``expand()``.

All exceptions provide ``to_dict()`` for API-friendly error responses.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class RelmapError(Exception):
    """Root exception for the entire relmap package."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


# ── Schema (configuration) errors ───────────────────────────────────


class SchemaError(RelmapError):
    """A record type cannot be mapped onto relational storage."""

    def __init__(
        self,
        message: str,
        *,
        record_type: str | None = None,
        field: str | None = None,
    ) -> None:
        self.message = message
        self.record_type = record_type
        self.field = field
        super().__init__(message)

    @property
    def full_name(self) -> str | None:
        if self.record_type and self.field:
            return f"{self.record_type}.{self.field}"
        return self.record_type

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "SCHEMA_ERROR",
            "message": self.message,
            "record_type": self.record_type,
            "field": self.field,
        }


class UnknownOptionError(SchemaError):
    """
    Unknown column option.

    Provides fuzzy-matched suggestions for likely intended options.
    """

    def __init__(
        self,
        option: str,
        valid_options: list[str],
        *,
        record_type: str | None = None,
        field: str | None = None,
    ) -> None:
        self.option = option
        self.valid_options = valid_options
        self.suggestions = get_close_matches(option, valid_options, n=3, cutoff=0.6)

        message = f"Unknown column option '{option}' on {record_type}.{field}."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        message += f" Valid options: {', '.join(sorted(valid_options))}"
        super().__init__(message, record_type=record_type, field=field)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNKNOWN_OPTION",
            "option": self.option,
            "record_type": self.record_type,
            "field": self.field,
            "suggestions": self.suggestions,
            "valid_options": sorted(self.valid_options),
        }


class DuplicateOptionError(SchemaError):
    """A role that may appear once per entity (or relation per field) repeats."""


class InvalidOptionError(SchemaError):
    """An option is not applicable to the field it decorates."""


class RelationError(SchemaError):
    """A relation field is declared in a way that cannot be mapped."""


class ThroughFieldNotFoundError(RelationError):
    """A pass-through entity does not expose the named field."""


class ThroughMismatchError(RelationError):
    """
    A pass-through entity field is not a many-to-one relation pointing at
    the expected side of the many-to-many relation.
    """


class DuplicateColumnError(SchemaError):
    """Two fields of one entity resolve to the same storage column."""


class DuplicateJunctionColumnError(RelationError):
    """The left and right junction columns of a many-to-many field collide."""


class AdapterSignatureError(SchemaError):
    """A custom getter/setter does not have an acceptable shape."""


class EmptyEntityError(SchemaError):
    """A record type has no mapped fields."""


class UnresolvedAnnotationError(SchemaError):
    """A field annotation still contains forward references."""


class MissingPrimaryKeyError(SchemaError):
    """An operation needs a primary key that the entity does not declare."""


class ColumnNotFoundError(SchemaError):
    """
    Unknown field or column name with helpful suggestions.

    Example error message::

        Unknown column 'nmae' on 'User'. Did you mean: name?
    """

    def __init__(
        self,
        name: str,
        record_type: str,
        available: list[str],
        cutoff: float = 0.6,
    ) -> None:
        self.name = name
        self.available = available
        self.suggestions = get_close_matches(name, available, n=5, cutoff=cutoff)

        message = f"Unknown column '{name}' on '{record_type}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message, record_type=record_type, field=name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "COLUMN_NOT_FOUND",
            "column": self.name,
            "record_type": self.record_type,
            "suggestions": self.suggestions,
            "available": sorted(self.available),
        }


# ── Data access errors ──────────────────────────────────────────────


class ValueConversionError(RelmapError):
    """A value cannot be stored into (or read from) a mapped field."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "VALUE_CONVERSION_ERROR",
            "message": self.message,
            "field": self.field,
        }


class RecordTypeMismatchError(ValueConversionError):
    """The record instance is not of the descriptor's record type."""


# ── Expression errors ───────────────────────────────────────────────


class ExpressionError(RelmapError):
    """Base class for template and statement errors."""


class TemplateSyntaxError(ExpressionError):
    """A template cannot be parsed (empty, unmatched identifier quote)."""

    def __init__(self, message: str, template: str) -> None:
        self.template = template
        super().__init__(f"{message}: {template}")


class ArgumentCountError(ExpressionError):
    """The number of arguments does not match the template's markers."""

    def __init__(self, message: str, template: str) -> None:
        self.template = template
        super().__init__(f"{message}: {template}")


class StatementError(ExpressionError):
    """A statement builder holds an impossible clause combination."""

    def __init__(self, statement: str, message: str) -> None:
        self.statement = statement
        super().__init__(f"{statement}: {message}")


class DialectNotFoundError(ExpressionError):
    """Unknown dialect name, with fuzzy-matched suggestions."""

    def __init__(self, name: str, valid_names: list[str]) -> None:
        self.name = name
        self.valid_names = valid_names
        self.suggestions = get_close_matches(name, valid_names, n=3, cutoff=0.6)

        message = f"Unknown dialect: '{name}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        message += f" Valid dialects: {', '.join(sorted(valid_names))}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "DIALECT_NOT_FOUND",
            "dialect": self.name,
            "suggestions": self.suggestions,
            "valid_dialects": sorted(self.valid_names),
        }


__all__: list[str] = [
    "AdapterSignatureError",
    "ArgumentCountError",
    "ColumnNotFoundError",
    "DialectNotFoundError",
    "DuplicateColumnError",
    "DuplicateJunctionColumnError",
    "DuplicateOptionError",
    "EmptyEntityError",
    "ExpressionError",
    "InvalidOptionError",
    "MissingPrimaryKeyError",
    "RecordTypeMismatchError",
    "RelationError",
    "RelmapError",
    "SchemaError",
    "StatementError",
    "TemplateSyntaxError",
    "ThroughFieldNotFoundError",
    "ThroughMismatchError",
    "UnknownOptionError",
    "UnresolvedAnnotationError",
    "ValueConversionError",
]
