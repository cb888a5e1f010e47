"""Store: owns mappers and collections and keeps related records linked.

COORDINATION:
- Each mapper gets one Collection, created when the mapper is defined
- Relation kinds are looked up in the store's RelationKindRegistry; the
  registry is the only place relation behaviour is dispatched from
- Link fields are installed on record classes when their mapper is defined

PERSISTENCE:
- create/destroy calls are delegated to an Adapter; the in-memory
  collections and links are only touched after the adapter call resolves
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from linked_records.adapters import Adapter
from linked_records.collection import Collection
from linked_records.config import StoreSettings
from linked_records.exceptions import ConfigurationError
from linked_records.mapper import Mapper
from linked_records.record import Record
from linked_records.relations import BUILTIN_RELATION_KINDS, LinkField, RelationKindRegistry
from linked_records.relations.common import get_value, safe_set_link
from linked_records.relations.definition import RelationDefinition, RelationKind
from linked_records.relations.registry import DescriptorFactory

logger = logging.getLogger(__name__)

ON_CONFLICT_CHOICES = ("merge", "replace")


class Store:
    """In-memory store linking records of related mappers.

    Example:
        store = Store()
        store.define_mapper("post", relations={
            "has_many": {"comment": {"foreign_key": "post_id", "local_field": "comments"}},
        })
        store.define_mapper("comment", relations={
            "belongs_to": {"post": {"foreign_key": "post_id", "local_field": "post"}},
        })
        post = store.add("post", {"id": 1})
        comment = store.add("comment", {"id": 10, "post_id": 1})
        assert comment.post is post and post.comments == [comment]
    """

    def __init__(
        self,
        settings: StoreSettings | None = None,
        adapter: Adapter | None = None,
    ) -> None:
        """Initialize a store and register the built-in relation kinds.

        Args:
            settings: Store settings (defaults when omitted).
            adapter: Persistence adapter for create/destroy calls.
        """
        self.settings = settings if settings is not None else StoreSettings()
        self.adapter = adapter
        self.relation_kinds = RelationKindRegistry()
        self._mappers: dict[str, Mapper] = {}
        self._collections: dict[str, Collection] = {}

        for kind, implementation_class, create_descriptor in BUILTIN_RELATION_KINDS:
            self.register_relation_kind(kind, implementation_class(), create_descriptor)

    # -- registration -------------------------------------------------------

    def register_relation_kind(
        self,
        kind: str | RelationKind,
        implementation: Any,
        create_descriptor: DescriptorFactory,
    ) -> None:
        """Register (or replace) the implementation of a relation kind."""
        self.relation_kinds.register(kind, implementation, create_descriptor)

    def define_mapper(
        self,
        name: str,
        *,
        id_attribute: str | None = None,
        relations: Mapping[str, Mapping[str, Mapping[str, Any]]] | None = None,
        record_class: type[Record] | None = None,
    ) -> Mapper:
        """Define a mapper, create its collection and install its link fields.

        Args:
            name: Entity type name.
            id_attribute: Identifier field (settings.id_attribute by default).
            relations: Relation declarations, see Mapper.
            record_class: Optional record class to augment.

        Returns:
            The new mapper.

        Raises:
            ConfigurationError: If the name is taken or a relation is invalid.
            UnknownRelationKind: If a relation uses an unregistered kind.
        """
        if name in self._mappers:
            raise ConfigurationError(f"Mapper '{name}' is already defined", {"mapper": name})

        mapper = Mapper(
            name,
            id_attribute=id_attribute or self.settings.id_attribute,
            relations=relations,
            record_class=record_class,
        )
        for definition in mapper.relation_list:
            self.relation_kinds.lookup(definition.kind)
        mapper.store = self
        self._mappers[name] = mapper
        self._collections[name] = Collection(mapper)

        self.augment_record_type(mapper)
        self._ensure_foreign_key_indexes(name)
        logger.debug("Defined mapper %s with %d relation(s)", name, len(mapper.relation_list))
        return mapper

    def augment_record_type(self, mapper: Mapper) -> None:
        """Install a link field for every relation of ``mapper``.

        Safe to call again after declaring more relations; definitions that
        already have their field installed are skipped.

        Raises:
            UnknownRelationKind: If a relation uses an unregistered kind.
        """
        record_class = mapper.record_class
        for definition in mapper.relation_list:
            entry = self.relation_kinds.lookup(definition.kind)
            installed = record_class.__dict__.get(definition.local_field)
            if isinstance(installed, LinkField) and installed.definition is definition:
                continue

            descriptor = entry.create_descriptor(mapper, definition, self)
            if descriptor is None:
                logger.debug(
                    "No link field for %s.%s (%s); skipped",
                    mapper.name,
                    definition.local_field,
                    definition.kind,
                )
                continue
            setattr(record_class, definition.local_field, descriptor)

    def _ensure_foreign_key_indexes(self, name: str) -> None:
        """Create indexes other mappers' relations deferred until ``name`` existed."""
        for mapper in self._mappers.values():
            for definition in mapper.relation_list:
                if definition.related != name:
                    continue
                entry = self.relation_kinds.get(definition.kind)
                if entry is not None and hasattr(entry.implementation, "ensure_index"):
                    entry.implementation.ensure_index(definition, self)

    # -- lookup -------------------------------------------------------------

    def get_mapper(self, name: str) -> Mapper:
        """Get a mapper by name, raising if not found."""
        mapper = self._mappers.get(name)
        if mapper is None:
            raise KeyError(f"Mapper '{name}' not found")
        return mapper

    def find_mapper(self, name: str) -> Mapper | None:
        """Get a mapper by name."""
        return self._mappers.get(name)

    def list_mappers(self) -> list[str]:
        """List all defined mapper names."""
        return list(self._mappers.keys())

    def get_collection(self, name: str) -> Collection:
        """Get a collection by mapper name, raising if not found."""
        collection = self._collections.get(name)
        if collection is None:
            raise KeyError(f"Collection '{name}' not found")
        return collection

    def find_collection(self, name: str) -> Collection | None:
        """Get a collection by mapper name."""
        return self._collections.get(name)

    def get_relation(self, name: str, local_field: str) -> RelationDefinition:
        """Get a relation definition by mapper name and local field."""
        return self.get_mapper(name).get_relation(local_field)

    def get(self, name: str, record_id: Any) -> Record | None:
        """Get a stored record; None if absent or the collection doesn't exist."""
        collection = self._collections.get(name)
        if collection is None:
            return None
        return collection.get(record_id)

    def get_all(self, name: str) -> list[Record]:
        return self.get_collection(name).get_all()

    # -- in-memory mutation -------------------------------------------------

    def add(self, name: str, records: Any, on_conflict: str = "merge") -> Any:
        """Add records (or plain dicts) to a collection and link them.

        Nested related data found under a link field name is added to the
        related collection first. Each added record is then linked to
        related records that are already loaded.

        Args:
            name: Mapper name.
            records: A record or dict, or a list of them.
            on_conflict: "merge" copies fields onto the stored record with the
                same identifier; "replace" swaps the stored record out.

        Returns:
            The stored record, or a list of them when a list was given.
        """
        if on_conflict not in ON_CONFLICT_CHOICES:
            raise ConfigurationError(
                f"on_conflict must be one of {ON_CONFLICT_CHOICES}, got {on_conflict!r}",
                {"on_conflict": on_conflict},
            )
        mapper = self.get_mapper(name)
        if isinstance(records, (list, tuple)):
            return [self._add_one(mapper, item, on_conflict) for item in records]
        return self._add_one(mapper, records, on_conflict)

    def _add_one(self, mapper: Mapper, item: Any, on_conflict: str) -> Record:
        collection = self._collections[mapper.name]
        local_fields = {definition.local_field for definition in mapper.relation_list}

        if isinstance(item, Record):
            props = item.to_dict()
            nested: dict[str, Any] = {}
        else:
            props = dict(item)
            nested = {key: props.pop(key) for key in list(props) if key in local_fields}

        existing = collection.get(props.get(mapper.id_attribute))
        pending: dict[str, Any] = {}
        if existing is not None and on_conflict == "merge":
            for key, value in props.items():
                setattr(existing, key, value)
            record = existing
        else:
            record = item if isinstance(item, Record) else mapper.create_record(props)
            collection.put(record)
            # Links assigned before the record was stored are replayed below
            pending = dict(record._links)
            record._links.clear()

        for definition in mapper.relation_list:
            implementation = self.relation_kinds.lookup(definition.kind).implementation
            related_data = nested.get(definition.local_field)
            if related_data is not None and self.find_mapper(definition.related) is not None:
                links = self.add(definition.related, related_data, on_conflict)
            elif pending.get(definition.local_field) is not None:
                links = pending[definition.local_field]
            elif hasattr(implementation, "find_existing_links_for"):
                links = implementation.find_existing_links_for(definition, self, record)
            else:
                links = None
            if links:
                setattr(record, definition.local_field, links)
        return record

    def remove(self, name: str, record_id: Any) -> Record | None:
        """Evict a record from its collection without touching its links."""
        return self.get_collection(name).remove(record_id)

    def remove_all(self, name: str, query: Mapping[str, Any] | None = None) -> list[Record]:
        """Evict every record matching ``query`` without touching links."""
        return self.get_collection(name).remove_all(query)

    # -- persistence --------------------------------------------------------

    def _require_adapter(self) -> Adapter:
        if self.adapter is None:
            raise ConfigurationError("Store has no adapter configured")
        return self.adapter

    async def create(
        self,
        name: str,
        props: Mapping[str, Any],
        *,
        with_relations: Iterable[str] = (),
    ) -> Record:
        """Create a record through the adapter and add it to the store.

        Relations named in ``with_relations`` whose link field holds nested
        data are created too: parents (the kind owns the foreign key) before
        the record, children after it.

        Args:
            name: Mapper name.
            props: Properties of the new record.
            with_relations: Local field names of relations to create along.

        Returns:
            The stored record.
        """
        adapter = self._require_adapter()
        mapper = self.get_mapper(name)
        props = dict(props)
        requested = set(with_relations)
        children: list[tuple[Any, RelationDefinition, Any]] = []

        for definition in mapper.relation_list:
            if definition.local_field not in requested:
                continue
            data = props.get(definition.local_field)
            if data is None or isinstance(data, Record):
                continue
            implementation = self.relation_kinds.lookup(definition.kind).implementation
            if getattr(implementation, "owns_foreign_key", False):
                await implementation.create_parent_record(definition, self, props)
            else:
                children.append((implementation, definition, props.pop(definition.local_field)))

        result = await adapter.create(mapper, props)
        record = self.add(name, result)
        for implementation, definition, data in children:
            await implementation.create_child_record(definition, self, record, data)
        return record

    async def create_related(
        self,
        name: str,
        record: Record,
        local_field: str,
        data: Any,
    ) -> Any:
        """Create child record(s) of ``record`` through one of its relations.

        Raises:
            MisuseError: If the relation's kind cannot have children.
        """
        definition = self.get_relation(name, local_field)
        implementation = self.relation_kinds.lookup(definition.kind).implementation
        return await implementation.create_child_record(definition, self, record, data)

    async def destroy(self, name: str, record_id: Any) -> Any:
        """Destroy a record through the adapter, then evict and unlink it.

        Returns:
            The evicted record, or the adapter's result if none was stored.
        """
        adapter = self._require_adapter()
        mapper = self.get_mapper(name)
        result = await adapter.destroy(mapper, record_id)

        record = self.remove(name, record_id)
        if record is None and isinstance(result, Record):
            record = result
        if record is not None and self.settings.unlink_on_destroy:
            self.unlink_on_destroy(record, mapper)
        return record if record is not None else result

    async def destroy_all(
        self, name: str, query: Mapping[str, Any] | None = None
    ) -> list[Record]:
        """Destroy matching records through the adapter, then evict and unlink them.

        Returns:
            The evicted records.
        """
        adapter = self._require_adapter()
        mapper = self.get_mapper(name)
        await adapter.destroy_all(mapper, query)

        records = self.remove_all(name, query)
        if records and self.settings.unlink_on_destroy:
            for record in records:
                self.unlink_on_destroy(record, mapper)
        return records

    def unlink_on_destroy(self, record: Record, mapper: Mapper) -> None:
        """Clear the record's own link fields for every relation of ``mapper``.

        Only the record's view of its relations changes. Other records that
        still reference it are left as they are.
        """
        for definition in mapper.relation_list:
            safe_set_link(record, definition.local_field, None)
        logger.debug(
            "Unlinked %s %r from %d relation(s)",
            mapper.name,
            get_value(record, mapper.id_attribute),
            len(mapper.relation_list),
        )
