from .conditions import (
    Condition,
    Junction,
    LogicalOperator,
    Predicate,
    and_,
    cond,
    not_,
    not_cond,
    or_,
)
from .dialects import (
    MYSQL,
    POSTGRES,
    SQLITE,
    Dialect,
    Starter,
    get_dialect,
    register_dialect,
)
from .expression import Expandable, Expression, expr, split_identifier
from .operators import (
    asc,
    between,
    contains,
    desc,
    eq,
    ge,
    gt,
    has_prefix,
    has_suffix,
    in_,
    is_null,
    le,
    like,
    lt,
)
from .statements import Delete, Insert, JoinKind, Querier, Select, Statement, Update
from .utils import back_quote, double_quote, escape_like, escape_regexp, repeat_marker

__all__ = [
    # Core types
    "Expandable",
    "Expression",
    "expr",
    "split_identifier",
    # Dialects
    "Dialect",
    "Starter",
    "MYSQL",
    "POSTGRES",
    "SQLITE",
    "get_dialect",
    "register_dialect",
    # Conditions
    "Condition",
    "Predicate",
    "Junction",
    "LogicalOperator",
    "cond",
    "not_cond",
    "and_",
    "or_",
    "not_",
    "eq",
    "lt",
    "le",
    "gt",
    "ge",
    "in_",
    "between",
    "like",
    "contains",
    "has_prefix",
    "has_suffix",
    "is_null",
    "asc",
    "desc",
    # Statements
    "Statement",
    "Querier",
    "Insert",
    "Select",
    "Update",
    "Delete",
    "JoinKind",
    # Utilities
    "back_quote",
    "double_quote",
    "escape_like",
    "escape_regexp",
    "repeat_marker",
]
