from .adapters import Adapter, coerce
from .config import ResolverConfig
from .descriptors import EntityDescriptor, FieldDescriptor
from .kinds import ADAPTER_KINDS, ValueKind
from .mapping import map_to_record, pick_fields, record_to_map
from .markers import Column, Option, RelationKind, Skip
from .naming import (
    ColumnNameContext,
    DefaultNaming,
    NamingStrategy,
    SnakeCaseNaming,
    camel_to_underscore,
    underscore_to_camel,
)
from .resolver import Resolver, clear_cache, default_resolver, resolve

__all__ = [
    # Declaration
    "Column",
    "Skip",
    "Option",
    "RelationKind",
    "Adapter",
    "ValueKind",
    "ADAPTER_KINDS",
    # Resolution
    "Resolver",
    "ResolverConfig",
    "resolve",
    "clear_cache",
    "default_resolver",
    "EntityDescriptor",
    "FieldDescriptor",
    # Naming
    "NamingStrategy",
    "ColumnNameContext",
    "DefaultNaming",
    "SnakeCaseNaming",
    "camel_to_underscore",
    "underscore_to_camel",
    # Mapping
    "pick_fields",
    "record_to_map",
    "map_to_record",
    "coerce",
]
