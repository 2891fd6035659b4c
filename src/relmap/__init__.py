"""relmap: record-to-relational mapping and dialect-aware SQL building.

Two layers:

- ``relmap.schema`` resolves pydantic record types into entity descriptors
  (tables, columns, keys, relations).
- ``relmap.query`` compiles expression templates, conditions and statements
  into SQL text plus positional arguments for MySQL, PostgreSQL and SQLite.
"""

from __future__ import annotations

# ── Statement planning ──────────────────────────────────────────
from .crud import (
    delete_for,
    insert_for,
    junction_count,
    junction_delete,
    junction_insert,
    relation_select,
    select_for,
    set_auto_increment,
    update_for,
)

# ── Exceptions ──────────────────────────────────────────────────
from .exceptions import (
    ExpressionError,
    RelmapError,
    SchemaError,
    StatementError,
    ValueConversionError,
)

# ── Query ───────────────────────────────────────────────────────
from .query import (
    MYSQL,
    POSTGRES,
    SQLITE,
    Condition,
    Delete,
    Dialect,
    Expandable,
    Expression,
    Insert,
    Select,
    Update,
    and_,
    asc,
    cond,
    desc,
    eq,
    expr,
    get_dialect,
    in_,
    not_,
    or_,
)

# ── Schema ──────────────────────────────────────────────────────
from .schema import (
    Adapter,
    Column,
    DefaultNaming,
    EntityDescriptor,
    FieldDescriptor,
    Resolver,
    ResolverConfig,
    Skip,
    SnakeCaseNaming,
    ValueKind,
    clear_cache,
    map_to_record,
    record_to_map,
    resolve,
)

__version__ = "0.1.0"

__all__ = [
    # Schema
    "Column",
    "Skip",
    "Adapter",
    "ValueKind",
    "Resolver",
    "ResolverConfig",
    "DefaultNaming",
    "SnakeCaseNaming",
    "EntityDescriptor",
    "FieldDescriptor",
    "resolve",
    "clear_cache",
    "record_to_map",
    "map_to_record",
    # Query
    "Expandable",
    "Expression",
    "expr",
    "Condition",
    "cond",
    "and_",
    "or_",
    "not_",
    "eq",
    "in_",
    "asc",
    "desc",
    "Insert",
    "Select",
    "Update",
    "Delete",
    "Dialect",
    "MYSQL",
    "POSTGRES",
    "SQLITE",
    "get_dialect",
    # Statement planning
    "insert_for",
    "select_for",
    "update_for",
    "delete_for",
    "set_auto_increment",
    "relation_select",
    "junction_insert",
    "junction_delete",
    "junction_count",
    # Exceptions
    "RelmapError",
    "SchemaError",
    "ValueConversionError",
    "ExpressionError",
    "StatementError",
]
