"""Field descriptors and helpers shared by the relation kinds."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, Callable

from linked_records.config import DEFAULT_ID_ATTRIBUTE
from linked_records.record import Record

if TYPE_CHECKING:
    from linked_records.collection import Collection
    from linked_records.relations.definition import RelationDefinition
    from linked_records.store import Store

# Marks "no value passed" for setter hooks, where None is a real value
_MISSING = object()


def get_value(obj: Any, key: str) -> Any:
    """Read a field from a record or a plain mapping; None when absent."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def set_value(obj: Any, key: str, value: Any) -> None:
    """Write a field on a record (through its descriptors) or a mapping."""
    if isinstance(obj, MutableMapping):
        obj[key] = value
    else:
        setattr(obj, key, value)


def get_link(record: Record, field_name: str) -> Any:
    """Read a link slot without triggering any linking."""
    return record._links.get(field_name)


def safe_set_link(record: Record, field_name: str, value: Any) -> None:
    """Write a link slot without triggering any linking."""
    record._links[field_name] = value


def safe_set_prop(record: Record, field_name: str, value: Any) -> None:
    """Write a scalar field without triggering foreign-key interception."""
    descriptor = getattr(type(record), field_name, None)
    if isinstance(descriptor, ForeignKeyField):
        descriptor.set_raw(record, value)
    else:
        vars(record)[field_name] = value


def related_id_attribute(definition: RelationDefinition) -> str:
    """Identifier field of the related mapper (default when not yet defined)."""
    related = definition.get_relation()
    if related is None:
        return DEFAULT_ID_ATTRIBUTE
    return related.id_attribute


def owner_id_attribute(definition: RelationDefinition) -> str:
    if definition.mapper is None:
        return DEFAULT_ID_ATTRIBUTE
    return definition.mapper.id_attribute


def related_collection(definition: RelationDefinition, store: Store) -> Collection | None:
    return store.find_collection(definition.related)


def canonicalize(definition: RelationDefinition, store: Store, record: Any) -> tuple[Any, Any]:
    """Prefer the store's instance of a related record.

    Returns:
        (record, related_id): the stored instance sharing the record's
        identifier if there is one, else the record itself.
    """
    related_id = get_value(record, related_id_attribute(definition))
    if related_id is None:
        return record, None
    stored = store.get(definition.related, related_id)
    if stored is not None:
        return stored, related_id
    return record, related_id


def as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


async def create_linked_children(
    definition: RelationDefinition,
    store: Store,
    record: Record,
    data: Any,
) -> list[Record]:
    """Create related records whose foreign key points at ``record``.

    Creations run one after another; a failure stops the loop and
    propagates, leaving ``record``'s link field untouched.
    """
    owner_id = get_value(record, owner_id_attribute(definition))
    created = []
    for item in as_list(data):
        payload = item.to_dict() if isinstance(item, Record) else dict(item)
        payload[definition.foreign_key] = owner_id
        created.append(await store.create(definition.related, payload))
    return created


class LinkField:
    """Computed link attribute installed on a record class.

    Reads go to ``on_get`` (or the record's link slot), writes to ``on_set``,
    which runs the linking algorithm of the relation's kind.
    """

    def __init__(
        self,
        definition: RelationDefinition,
        on_set: Callable[[Record, Any], Any],
        on_get: Callable[[Record], Any] | None = None,
    ) -> None:
        self.definition = definition
        self.name = definition.local_field
        self._on_set = on_set
        self._on_get = on_get

    def _base_get(self, record: Record) -> Any:
        if self._on_get is not None:
            return self._on_get(record)
        return get_link(record, self.name)

    def __get__(self, instance: Record | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        hook = self.definition.getter
        if hook is None:
            return self._base_get(instance)
        return hook(self.definition, instance, lambda: self._base_get(instance))

    def __set__(self, instance: Record, value: Any) -> None:
        hook = self.definition.setter
        if hook is None:
            self._on_set(instance, value)
            return

        def original_set(new_value: Any = _MISSING) -> Any:
            return self._on_set(instance, value if new_value is _MISSING else new_value)

        hook(self.definition, instance, value, original_set)

    def __repr__(self) -> str:
        return f"LinkField({self.definition.kind!r}, {self.name!r})"


class ForeignKeyField:
    """Data descriptor intercepting writes to a foreign-key attribute.

    The raw value is kept in the instance ``__dict__``. A data descriptor
    already present under the same name is chained: its getter is used and
    its setter runs before ``on_set``.
    """

    def __init__(
        self,
        name: str,
        definition: RelationDefinition,
        on_set: Callable[[Record, Any], None],
        wrapped: Any = None,
    ) -> None:
        self.name = name
        self.definition = definition
        self._on_set = on_set
        self._wrapped = wrapped if hasattr(wrapped, "__set__") else None

    def __get__(self, instance: Record | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        if self._wrapped is not None:
            return self._wrapped.__get__(instance, owner)
        return instance.__dict__.get(self.name)

    def __set__(self, instance: Record, value: Any) -> None:
        if self._wrapped is not None:
            self._wrapped.__set__(instance, value)
        self._on_set(instance, value)

    def set_raw(self, instance: Record, value: Any) -> None:
        """Store a value without running ``on_set``."""
        if self._wrapped is not None:
            self._wrapped.__set__(instance, value)
        else:
            instance.__dict__[self.name] = value

    def __repr__(self) -> str:
        return f"ForeignKeyField({self.name!r})"
