"""
Field markers used inside ``typing.Annotated``.

Example::

    class Post(BaseModel):
        __tablename__ = "posts"

        id: Annotated[int, Column("primary_key", "auto_increment")] = 0
        title: str = ""
        author: Annotated[User | None, Column("many_to_one")] = None
        tags: Annotated[list[Tag], Column("many_to_many", name="post_tags|post|tag")] = []
        cache: Annotated[dict, Skip()] = {}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .adapters import Adapter


class Option(str, Enum):
    PRIMARY_KEY = "primary_key"
    AUTO_INCREMENT = "auto_increment"
    AUTO_NOW_ADD = "auto_now_add"
    AUTO_NOW = "auto_now"
    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    FOREIGN_KEY = "foreign_key"
    MANY_TO_MANY = "many_to_many"


class RelationKind(str, Enum):
    NONE = "none"
    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"

    @property
    def is_one(self) -> bool:
        return self in (RelationKind.ONE_TO_ONE, RelationKind.MANY_TO_ONE)

    @property
    def is_many(self) -> bool:
        return self in (RelationKind.ONE_TO_MANY, RelationKind.MANY_TO_MANY)


RELATION_OPTIONS: dict[str, RelationKind] = {
    Option.ONE_TO_ONE.value: RelationKind.ONE_TO_ONE,
    Option.ONE_TO_MANY.value: RelationKind.ONE_TO_MANY,
    Option.MANY_TO_ONE.value: RelationKind.MANY_TO_ONE,
    Option.FOREIGN_KEY.value: RelationKind.MANY_TO_ONE,
    Option.MANY_TO_MANY.value: RelationKind.MANY_TO_MANY,
}

VALID_OPTIONS: list[str] = [o.value for o in Option]


@dataclass(frozen=True, init=False)
class Column:
    """
    Mapping configuration of one field.

    Options are validated when the owning type is resolved, not here, so an
    unknown option surfaces together with the type and field it sits on.

    Attributes:
        options: Role and relation options (see :class:`Option`).
        name: Column name override.  For a many-to-many field this is the
            junction table name, optionally followed by ``|left`` and
            ``|right`` column overrides.
        adapter: Explicit encode/decode adapter.
        int_bits: Storage width of an auto-increment integer.
        unsigned: Whether an auto-increment integer is unsigned.
    """

    options: tuple[str, ...]
    name: str | None
    adapter: Adapter | None
    int_bits: int
    unsigned: bool

    def __init__(
        self,
        *options: str | Option,
        name: str | None = None,
        adapter: Adapter | None = None,
        int_bits: int = 64,
        unsigned: bool = False,
    ) -> None:
        object.__setattr__(
            self,
            "options",
            tuple(o.value if isinstance(o, Option) else o for o in options),
        )
        object.__setattr__(self, "name", name or None)
        object.__setattr__(self, "adapter", adapter)
        object.__setattr__(self, "int_bits", int_bits)
        object.__setattr__(self, "unsigned", unsigned)

    @classmethod
    def from_tag(cls, tag: str, **kwargs: object) -> Column:
        """
        Parse the compact ``"name,opt1,opt2"`` form.

        The first comma-separated item is the name override (may be empty):

        >>> Column.from_tag(",primary_key,auto_increment").options
        ('primary_key', 'auto_increment')
        >>> Column.from_tag("Tags|Left|Right,many_to_many").name
        'Tags|Left|Right'
        """
        name, *options = tag.split(",")
        cleaned = [o.strip() for o in options if o.strip()]
        return cls(*cleaned, name=name.strip() or None, **kwargs)  # type: ignore[arg-type]


@dataclass(frozen=True)
class Skip:
    """Exclude the annotated field from mapping."""
