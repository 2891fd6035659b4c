"""
Schema metadata resolver.

Turns a pydantic model class into an :class:`EntityDescriptor` graph.

Resolution runs in two phases over a resolution-scoped working set:

1. *Declaration* walks the fields of a type in order, applies column
   options and follows relations.  The type's descriptor is registered in
   the working set before its fields are walked, so self references and
   mutual references reuse the in-progress descriptor instead of recursing.
2. *Naming* assigns column, junction and through names once every type in
   the graph is declared, because relation columns are named after the
   related entity's primary key.

The finished graph is frozen and published into the resolver's cache.  Only
publication takes the cache's write lock; two threads resolving the same new
type concurrently may both compute it, and the first published copy wins.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ..exceptions import (
    DuplicateColumnError,
    DuplicateJunctionColumnError,
    DuplicateOptionError,
    EmptyEntityError,
    InvalidOptionError,
    RelationError,
    SchemaError,
    ThroughFieldNotFoundError,
    ThroughMismatchError,
    UnknownOptionError,
    UnresolvedAnnotationError,
)
from .adapters import discover_adapter, validate_adapter
from .config import ResolverConfig
from .descriptors import EntityDescriptor, FieldDescriptor
from .kinds import ValueKind, kind_of, sequence_item, unwrap_optional
from .locking import ReadWriteLock
from .markers import RELATION_OPTIONS, VALID_OPTIONS, Column, Option, RelationKind, Skip
from .naming import ColumnNameContext

if TYPE_CHECKING:
    from collections.abc import Callable

    from .adapters import Adapter

logger = logging.getLogger("relmap.schema")

_SKIP = object()


class Resolver:
    """
    Builds and caches entity descriptors.

    Example::

        resolver = Resolver(ResolverConfig(naming=SnakeCaseNaming()))
        user = resolver.resolve(User)
        user.name               # 'user'
        user.primary_key.name   # 'id'
    """

    def __init__(self, config: ResolverConfig | None = None) -> None:
        self.config = config or ResolverConfig()
        self._cache: dict[type, EntityDescriptor] = {}
        self._lock = ReadWriteLock()

    def cached(self, record_type: type) -> EntityDescriptor | None:
        with self._lock.read():
            return self._cache.get(record_type)

    def resolve(
        self,
        record: type[BaseModel] | BaseModel | EntityDescriptor,
    ) -> EntityDescriptor:
        """
        Return the descriptor of a record type (or of an instance's type).

        Repeated calls return the identical cached descriptor.

        Raises:
            SchemaError: If the type, or any type it relates to, cannot be
                mapped.  Nothing from a failed resolution is cached.
        """
        if isinstance(record, EntityDescriptor):
            return record
        record_type = type(record) if isinstance(record, BaseModel) else record

        entity = self.cached(record_type)
        if entity is not None:
            logger.debug("Descriptor cache hit for %s", record_type.__name__)
            return entity

        resolution = _Resolution(self.config, self.cached)
        resolution.run(record_type)

        for new in resolution.working.values():
            new._freeze()
        with self._lock.write():
            for key, new in resolution.working.items():
                self._cache.setdefault(key, new)
            entity = self._cache[record_type]

        logger.debug(
            "Resolved %s as table %r (%d descriptor(s) published)",
            record_type.__name__,
            entity.name,
            len(resolution.working),
        )
        return entity

    def clear_cache(self) -> None:
        """Forget every published descriptor."""
        with self._lock.write():
            self._cache.clear()

    def __contains__(self, record_type: object) -> bool:
        with self._lock.read():
            return record_type in self._cache


class _Resolution:
    """State of one top-level :meth:`Resolver.resolve` call."""

    def __init__(
        self,
        config: ResolverConfig,
        lookup: Callable[[type], EntityDescriptor | None],
    ) -> None:
        self.config = config
        self._lookup = lookup
        self.working: dict[type, EntityDescriptor] = {}
        self._pending: list[EntityDescriptor] = []
        self._naming: set[int] = set()
        self._named: set[int] = set()
        self._stack: list[FieldDescriptor] = []
        self._finished: set[int] = set()

    def run(self, record_type: type) -> EntityDescriptor:
        entity = self.entity_for(record_type)
        while self._pending:
            self._name_entity(self._pending.pop(0))
        return entity

    def entity_for(self, record_type: Any) -> EntityDescriptor:
        if not (isinstance(record_type, type) and issubclass(record_type, BaseModel)):
            raise SchemaError(f"not a pydantic model: {record_type!r}")
        entity = self.working.get(record_type)
        if entity is None:
            entity = self._lookup(record_type)
        if entity is None:
            entity = self._declare(record_type)
        return entity

    # -- phase 1: declaration ------------------------------------------------

    def _declare(self, record_type: type[BaseModel]) -> EntityDescriptor:
        type_name = record_type.__name__
        if record_type.model_rebuild(raise_errors=False) is False:
            raise UnresolvedAnnotationError(
                f"unresolved forward references: {type_name}",
                record_type=type_name,
            )

        table = getattr(record_type, "__tablename__", None)
        entity = EntityDescriptor(
            record_type=record_type,
            name=table or self.config.naming.table_name(type_name),
        )
        self.working[record_type] = entity
        self._pending.append(entity)

        fields: list[FieldDescriptor] = []
        field_map: dict[str, FieldDescriptor] = {}
        for index, (name, info) in enumerate(record_type.model_fields.items()):
            column = self._marker(info.metadata, type_name, name)
            if column is _SKIP:
                continue
            assert isinstance(column, Column)

            annotation, optional = unwrap_optional(info.annotation)
            fd = FieldDescriptor(
                entity=entity,
                index=index,
                field=name,
                annotation=info.annotation,
                kind=kind_of(annotation),
                optional=optional,
                name=column.name or "",
                int_bits=column.int_bits,
                unsigned=column.unsigned,
            )
            field_map[name] = fd
            self._apply_options(entity, fd, column.options, annotation)
            fd.adapter = self._adapter(record_type, fd, column)
            fields.append(fd)

        entity.fields = fields
        entity.field_map = field_map
        if not fields:
            raise EmptyEntityError(f"no columns: {type_name}", record_type=type_name)

        self._default_primary_key(entity, field_map)
        self._validate_roles(entity)
        logger.debug("Declared %s with %d field(s)", type_name, len(fields))
        return entity

    def _marker(self, metadata: list[Any], type_name: str, field: str) -> object:
        found: Column | None = None
        for item in metadata:
            if isinstance(item, Skip):
                return _SKIP
            if isinstance(item, Column):
                if found is not None:
                    raise DuplicateOptionError(
                        f"more than one Column marker: {type_name}.{field}",
                        record_type=type_name,
                        field=field,
                    )
                found = item
        return found or Column()

    def _apply_options(
        self,
        entity: EntityDescriptor,
        fd: FieldDescriptor,
        options: tuple[str, ...],
        annotation: Any,
    ) -> None:
        type_name = entity.type_name
        for option in options:
            if option == Option.PRIMARY_KEY:
                self._check_unique(entity.primary_key, option, fd)
                entity.primary_key = fd
            elif option == Option.AUTO_INCREMENT:
                self._check_unique(entity.auto_increment, option, fd)
                if fd.kind is not ValueKind.INT:
                    raise InvalidOptionError(
                        f"auto_increment not an integer: {fd.full_name}",
                        record_type=type_name,
                        field=fd.field,
                    )
                entity.auto_increment = fd
            elif option in (Option.AUTO_NOW_ADD, Option.AUTO_NOW):
                self._apply_timestamp(entity, fd, option)
            elif option in RELATION_OPTIONS:
                if fd.relation is not RelationKind.NONE:
                    raise DuplicateOptionError(
                        f"more than one relation: {fd.full_name}",
                        record_type=type_name,
                        field=fd.field,
                    )
                self._relate(fd, RELATION_OPTIONS[option], annotation)
            else:
                raise UnknownOptionError(
                    option, VALID_OPTIONS, record_type=type_name, field=fd.field
                )

    @staticmethod
    def _check_unique(
        current: FieldDescriptor | None, option: str, fd: FieldDescriptor
    ) -> None:
        if current is not None:
            raise DuplicateOptionError(
                f"more than one {option}: {fd.entity.type_name}",
                record_type=fd.entity.type_name,
                field=fd.field,
            )

    def _apply_timestamp(
        self, entity: EntityDescriptor, fd: FieldDescriptor, option: str
    ) -> None:
        add = option == Option.AUTO_NOW_ADD
        self._check_unique(entity.auto_now_add if add else entity.auto_now, option, fd)
        if fd.kind is not ValueKind.DATETIME:
            raise InvalidOptionError(
                f"{option} not a datetime: {fd.full_name}",
                record_type=entity.type_name,
                field=fd.field,
            )
        if (entity.auto_now if add else entity.auto_now_add) is fd:
            raise InvalidOptionError(
                f"auto_now_add and auto_now both appear: {fd.full_name}",
                record_type=entity.type_name,
                field=fd.field,
            )
        if add:
            entity.auto_now_add = fd
        else:
            entity.auto_now = fd

    def _relate(
        self, fd: FieldDescriptor, relation: RelationKind, annotation: Any
    ) -> None:
        target = annotation
        if relation.is_many:
            container, item = sequence_item(annotation)
            if container is None:
                raise RelationError(
                    f"many relation not a sequence: {fd.full_name}",
                    record_type=fd.entity.type_name,
                    field=fd.field,
                )
            fd.container = container
            target = unwrap_optional(item)[0]
        if not (isinstance(target, type) and issubclass(target, BaseModel)):
            raise RelationError(
                f"relation target is not a record type: {fd.full_name}",
                record_type=fd.entity.type_name,
                field=fd.field,
            )
        fd.relation = relation
        fd.related = self.entity_for(target)

    def _adapter(
        self, record_type: type, fd: FieldDescriptor, column: Column
    ) -> Adapter | None:
        type_name = record_type.__name__
        adapter = column.adapter
        if adapter is not None:
            validate_adapter(adapter, type_name, fd.field)
        else:
            adapter = discover_adapter(
                record_type,
                fd.field,
                self.config.getter_prefix,
                self.config.setter_prefix,
            )
        if adapter is not None and fd.relation is not RelationKind.NONE:
            raise RelationError(
                f"relation field does not allow getter and setter: {fd.full_name}",
                record_type=type_name,
                field=fd.field,
            )
        return adapter

    def _default_primary_key(
        self, entity: EntityDescriptor, field_map: dict[str, FieldDescriptor]
    ) -> None:
        if entity.primary_key is not None:
            return
        if entity.auto_increment is None:
            implicit = field_map.get(self.config.implicit_primary_key)
            if (
                implicit is not None
                and implicit.kind is ValueKind.INT
                and implicit.relation is RelationKind.NONE
            ):
                entity.auto_increment = implicit
        if entity.auto_increment is not None:
            entity.primary_key = entity.auto_increment

    def _validate_roles(self, entity: EntityDescriptor) -> None:
        pk = entity.primary_key
        if pk is not None and pk.relation.is_many:
            raise RelationError(
                f"many relation on primary_key: {pk.full_name}",
                record_type=entity.type_name,
                field=pk.field,
            )
        for role, fd in (
            (Option.AUTO_INCREMENT, entity.auto_increment),
            (Option.AUTO_NOW_ADD, entity.auto_now_add),
            (Option.AUTO_NOW, entity.auto_now),
        ):
            if fd is not None and fd.adapter is not None:
                raise InvalidOptionError(
                    f"{role.value} does not allow getter and setter: {fd.full_name}",
                    record_type=entity.type_name,
                    field=fd.field,
                )

    # -- phase 2: naming -------------------------------------------------------

    def _name_entity(self, entity: EntityDescriptor) -> None:
        key = id(entity)
        if key in self._finished or key in self._naming or entity._frozen:
            return
        self._naming.add(key)

        if entity.primary_key is not None:
            self._name_field(entity.primary_key)
        for fd in entity.fields:
            self._name_field(fd)

        column_map: dict[str, FieldDescriptor] = {}
        for fd in entity.fields:
            if fd.relation.is_many:
                continue
            if fd.name in column_map:
                raise DuplicateColumnError(
                    f"column name repeat: {fd.full_name} ({fd.name!r})",
                    record_type=entity.type_name,
                    field=fd.field,
                )
            column_map[fd.name] = fd
        entity.column_map = column_map

        self._naming.discard(key)
        self._finished.add(key)

    def _name_field(self, fd: FieldDescriptor) -> None:
        if fd.entity._frozen or id(fd) in self._named:
            return
        if any(f is fd for f in self._stack):
            chain = " -> ".join(f.full_name for f in (*self._stack, fd))
            raise RelationError(
                f"primary key relation cycle: {chain}",
                record_type=fd.entity.type_name,
                field=fd.field,
            )
        self._stack.append(fd)
        try:
            self._assign_name(fd)
        finally:
            self._stack.pop()
        self._named.add(id(fd))

    def _assign_name(self, fd: FieldDescriptor) -> None:
        entity, related, relation = fd.entity, fd.related, fd.relation

        if relation.is_many and entity.primary_key is None:
            raise RelationError(
                f"relation needs primary_key on {entity.type_name}: {fd.full_name}",
                record_type=entity.type_name,
                field=fd.field,
            )
        if relation in (RelationKind.NONE, RelationKind.ONE_TO_MANY):
            pass
        elif related is None or related.primary_key is None:
            raise RelationError(
                f"relation needs primary_key on "
                f"{related.type_name if related else '?'}: {fd.full_name}",
                record_type=entity.type_name,
                field=fd.field,
            )

        if relation is RelationKind.MANY_TO_MANY:
            self._name_many_to_many(fd)
        elif not fd.name:
            if relation is RelationKind.NONE:
                fd.name = self._column_name(fd, None)
            elif relation is RelationKind.ONE_TO_MANY:
                fd.name = self._column_name(fd, entity)
            else:
                fd.name = self._column_name(fd, related)

    def _column_name(
        self, fd: FieldDescriptor, target: EntityDescriptor | None
    ) -> str:
        """Apply the naming hook or strategy; *target* owns the referenced key."""
        entity = fd.entity
        if target is None:
            ctx = ColumnNameContext(
                field=fd.field,
                owner_type=entity.type_name,
                owner_table=entity.name,
            )
        else:
            pk = target.primary_key
            assert pk is not None
            self._name_field(pk)
            ctx = ColumnNameContext(
                field=fd.field,
                owner_type=entity.type_name,
                owner_table=entity.name,
                related_type=target.type_name,
                related_primary_key_field=pk.field,
                related_table=target.name,
                related_primary_key_column=pk.name,
            )
        hook = getattr(entity.record_type, "__column_name__", None)
        if hook is not None:
            return str(hook(ctx))
        return self.config.naming.column_name(ctx)

    def _name_many_to_many(self, fd: FieldDescriptor) -> None:
        entity, related = fd.entity, fd.related
        assert related is not None

        table, _, rest = fd.name.partition("|")
        left, _, right = rest.partition("|")

        fd.name = table or self.config.naming.junction_table_name(
            fd.field, entity.type_name, entity.name, related.type_name, related.name
        )
        fd.left_name = left or self._column_name(fd, entity)
        fd.right_name = right or self._column_name(fd, related)

        self._attach_through(fd)

        if fd.through_left is not None and fd.through_right is not None:
            duplicate = fd.through_left.name == fd.through_right.name
        else:
            duplicate = fd.left_name == fd.right_name
        if duplicate:
            raise DuplicateJunctionColumnError(
                f"many_to_many column name repeat: {fd.full_name}",
                record_type=entity.type_name,
                field=fd.field,
            )

    def _attach_through(self, fd: FieldDescriptor) -> None:
        hook = getattr(fd.entity.record_type, "__through__", None)
        if hook is None:
            return
        declared = hook(fd.field)
        if declared is None:
            return
        try:
            through_type, left_field, right_field = declared
        except (TypeError, ValueError) as exc:
            raise RelationError(
                f"through must be (type, left field, right field): {fd.full_name}",
                record_type=fd.entity.type_name,
                field=fd.field,
            ) from exc
        if not (
            isinstance(through_type, type)
            and issubclass(through_type, BaseModel)
            and isinstance(left_field, str)
            and isinstance(right_field, str)
        ):
            raise RelationError(
                f"through must be (type, left field, right field): {fd.full_name}",
                record_type=fd.entity.type_name,
                field=fd.field,
            )

        through = self.entity_for(through_type)
        self._name_entity(through)

        assert fd.related is not None
        left = self._through_field(through, left_field, fd.entity)
        right = self._through_field(through, right_field, fd.related)
        fd.through = through
        fd.through_left = left
        fd.through_right = right

    def _through_field(
        self,
        through: EntityDescriptor,
        name: str,
        expected: EntityDescriptor,
    ) -> FieldDescriptor:
        fd = through.find_field(name)
        if fd is None:
            raise ThroughFieldNotFoundError(
                f"through field not found: {through.type_name}.{name}",
                record_type=through.type_name,
                field=name,
            )
        if (
            fd.relation is not RelationKind.MANY_TO_ONE
            or fd.related is None
            or fd.related.record_type is not expected.record_type
        ):
            raise ThroughMismatchError(
                f"through not correct: {fd.full_name} must be many_to_one "
                f"to {expected.type_name}",
                record_type=through.type_name,
                field=fd.field,
            )
        self._name_field(fd)
        return fd


_default_resolver = Resolver()


def default_resolver() -> Resolver:
    return _default_resolver


def resolve(record: type[BaseModel] | BaseModel | EntityDescriptor) -> EntityDescriptor:
    """Resolve with the process-wide default resolver."""
    return _default_resolver.resolve(record)


def clear_cache() -> None:
    """Reset the default resolver's cache (test isolation)."""
    _default_resolver.clear_cache()
