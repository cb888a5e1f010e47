"""HasOne relations: a single child pointing back through its foreign key.

e.g. ``user.profile = profile`` sets ``profile.user_id`` and, when the
BelongsTo side is declared, ``profile.user``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from linked_records.relations.common import (
    LinkField,
    canonicalize,
    create_linked_children,
    get_link,
    get_value,
    owner_id_attribute,
    related_collection,
    related_id_attribute,
    safe_set_link,
    safe_set_prop,
)
from linked_records.relations.definition import RelationKind

if TYPE_CHECKING:
    from linked_records.mapper import Mapper
    from linked_records.record import Record
    from linked_records.relations.definition import RelationDefinition
    from linked_records.store import Store


def _release_child(
    definition: RelationDefinition, store: Store, parent: Record, child: Record
) -> None:
    """Clear a child's foreign key and back link to ``parent``."""
    inverse = definition.get_inverse()
    if get_value(child, definition.foreign_key) == get_value(
        parent, owner_id_attribute(definition)
    ):
        safe_set_prop(child, definition.foreign_key, None)
        collection = related_collection(definition, store)
        if collection is not None:
            collection.update_index(child, index=definition.foreign_key)
    if inverse is not None and get_link(child, inverse.local_field) is parent:
        safe_set_link(child, inverse.local_field, None)


class HasOneRelation:
    """Behaviour of the HasOne kind beyond its link field."""

    kind = RelationKind.HAS_ONE.value
    owns_foreign_key = False

    def ensure_index(self, definition: RelationDefinition, store: Store) -> None:
        """Index the foreign key on the related collection, once it exists."""
        collection = related_collection(definition, store)
        if collection is not None:
            collection.create_index(definition.foreign_key)

    def find_existing_links_for(
        self, definition: RelationDefinition, store: Store, record: Record
    ) -> Record | None:
        """Return the first loaded child whose foreign key names ``record``."""
        record_id = get_value(record, owner_id_attribute(definition))
        collection = related_collection(definition, store)
        if record_id is None or collection is None:
            return None
        records = collection.get_records_by_index(definition.foreign_key, record_id)
        if records:
            return records[0]
        return None

    def detach_member(
        self, definition: RelationDefinition, store: Store, parent: Record, child: Record
    ) -> None:
        """Empty the parent's slot if it holds ``child`` (by identity or id)."""
        current = get_link(parent, definition.local_field)
        if current is None:
            return
        id_attribute = related_id_attribute(definition)
        child_id = get_value(child, id_attribute)
        if current is child or (
            child_id is not None and get_value(current, id_attribute) == child_id
        ):
            safe_set_link(parent, definition.local_field, None)

    def attach_member(
        self,
        definition: RelationDefinition,
        store: Store,
        parent: Record,
        child: Record,
        source: RelationDefinition,
    ) -> None:
        """Put ``child`` in the parent's slot, releasing any previous occupant.

        Called by the BelongsTo side after it has already written the
        child's foreign key and back link.
        """
        current = get_link(parent, definition.local_field)
        if current is not None and current is not child:
            _release_child(definition, store, parent, current)
        safe_set_link(parent, definition.local_field, child)

    async def create_child_record(
        self,
        definition: RelationDefinition,
        store: Store,
        record: Record,
        data: Any,
    ) -> Record | None:
        """Create the child with ``record``'s id as foreign key, then link it.

        Empty data creates nothing and leaves the current child in place.
        """
        created = await create_linked_children(definition, store, record, data)
        if not created:
            return None
        child = created[0]
        setattr(record, definition.local_field, child)
        return child


def create_descriptor(mapper: Mapper, definition: RelationDefinition, store: Store) -> LinkField:
    """Build the link field for a HasOne definition.

    The foreign-key index on the related collection is created here when
    that collection exists; otherwise the store creates it once the related
    mapper is defined.
    """
    foreign_key = definition.foreign_key
    local_field = definition.local_field
    store.relation_kinds.lookup(definition.kind).implementation.ensure_index(definition, store)

    def set_link(record: Record, child: Any) -> Any:
        # e.g. user.profile = profile
        current = get_link(record, local_field)
        if child is current:
            return current
        inverse = definition.get_inverse()
        collection = related_collection(definition, store)

        # Tear the old triangle down before building the new one
        if current is not None:
            safe_set_prop(current, foreign_key, None)
            if collection is not None:
                collection.update_index(current, index=foreign_key)
            if inverse is not None:
                safe_set_link(current, inverse.local_field, None)

        if child is not None:
            child, _ = canonicalize(definition, store, child)
            if inverse is not None:
                previous_parent = get_link(child, inverse.local_field)
                if previous_parent is not None and previous_parent is not record:
                    if get_link(previous_parent, local_field) is child:
                        safe_set_link(previous_parent, local_field, None)
            safe_set_link(record, local_field, child)
            safe_set_prop(child, foreign_key, get_value(record, mapper.id_attribute))
            if collection is not None:
                collection.update_index(child, index=foreign_key)
            if inverse is not None:
                safe_set_link(child, inverse.local_field, record)
        else:
            safe_set_link(record, local_field, None)
        return child

    return LinkField(definition, set_link)
