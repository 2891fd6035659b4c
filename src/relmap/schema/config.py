"""Resolver configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from .naming import DefaultNaming, NamingStrategy


@dataclass(frozen=True)
class ResolverConfig:
    """
    Settings shared by every type a resolver maps.

    Attributes:
        naming: Fallback naming strategy for tables, columns and junction
            tables.
        implicit_primary_key: Field adopted as auto-increment primary key
            when a type declares neither role.  Must be of kind ``int``.
        getter_prefix: Method-name prefix of discovered adapter getters.
        setter_prefix: Method-name prefix of discovered adapter setters.
    """

    naming: NamingStrategy = field(default_factory=DefaultNaming)
    implicit_primary_key: str = "id"
    getter_prefix: str = "orm_get_"
    setter_prefix: str = "orm_set_"
