"""HasMany relations: children pointing back through their foreign key.

The link field is a view recomputed on every read from the related
collection's foreign-key index, so it cannot drift from the children's
foreign keys. When the BelongsTo side is declared the view keeps only
children whose back link is the parent itself.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from linked_records.relations.common import (
    LinkField,
    as_list,
    canonicalize,
    create_linked_children,
    get_link,
    get_value,
    owner_id_attribute,
    related_collection,
    safe_set_prop,
)
from linked_records.relations.definition import RelationKind

if TYPE_CHECKING:
    from linked_records.mapper import Mapper
    from linked_records.record import Record
    from linked_records.relations.definition import RelationDefinition
    from linked_records.store import Store

logger = logging.getLogger(__name__)


class HasManyRelation:
    """Behaviour of the HasMany kind, including its membership operations."""

    kind = RelationKind.HAS_MANY.value
    owns_foreign_key = False

    def ensure_index(self, definition: RelationDefinition, store: Store) -> None:
        """Index the foreign key on the related collection, once it exists."""
        collection = related_collection(definition, store)
        if collection is not None:
            collection.create_index(definition.foreign_key)

    def find_existing_links_for(
        self, definition: RelationDefinition, store: Store, record: Record
    ) -> list[Record] | None:
        """Return loaded children whose foreign key names ``record``."""
        record_id = get_value(record, owner_id_attribute(definition))
        collection = related_collection(definition, store)
        if record_id is None or collection is None:
            return None
        return collection.get_records_by_index(definition.foreign_key, record_id) or None

    def get_members(
        self, definition: RelationDefinition, store: Store, parent: Record
    ) -> list[Record]:
        """Return the current children of ``parent`` in index order.

        A parent whose links were cleared (e.g. after destroy) reads empty
        until it is assigned again; so does a parent without an identifier.
        """
        cleared = definition.local_field in parent._links
        if cleared and get_link(parent, definition.local_field) is None:
            return []
        parent_id = get_value(parent, owner_id_attribute(definition))
        collection = related_collection(definition, store)
        if parent_id is None or collection is None:
            return []
        bucket = [
            child
            for child in collection.get_records_by_index(definition.foreign_key, parent_id)
            if collection.holds(child)
        ]
        inverse = definition.get_inverse()
        if inverse is None:
            return bucket
        return [child for child in bucket if get_link(child, inverse.local_field) is parent]

    def add_member(
        self, definition: RelationDefinition, store: Store, parent: Record, child: Record
    ) -> Record:
        """Link one child to ``parent``.

        Returns:
            The linked child (the store's instance when one shares its id).
        """
        parent._links.pop(definition.local_field, None)
        child, _ = canonicalize(definition, store, child)
        inverse = definition.get_inverse()
        if inverse is not None:
            setattr(child, inverse.local_field, parent)
            return child

        parent_id = get_value(parent, owner_id_attribute(definition))
        safe_set_prop(child, definition.foreign_key, parent_id)
        collection = related_collection(definition, store)
        if collection is not None:
            collection.update_index(child, index=definition.foreign_key)
        return child

    def remove_member(
        self, definition: RelationDefinition, store: Store, parent: Record, child: Record
    ) -> None:
        """Unlink one child from ``parent``, clearing its foreign key."""
        inverse = definition.get_inverse()
        if inverse is not None:
            if get_link(child, inverse.local_field) is not parent:
                return
            setattr(child, inverse.foreign_key, None)
            if get_link(child, inverse.local_field) is parent:
                setattr(child, inverse.local_field, None)
            return

        parent_id = get_value(parent, owner_id_attribute(definition))
        if parent_id is None or get_value(child, definition.foreign_key) != parent_id:
            return
        safe_set_prop(child, definition.foreign_key, None)
        collection = related_collection(definition, store)
        if collection is not None:
            collection.update_index(child, index=definition.foreign_key)

    def set_members(
        self, definition: RelationDefinition, store: Store, parent: Record, children: Any
    ) -> list[Record]:
        """Replace the whole membership of ``parent``.

        Children no longer listed are unlinked, listed ones are linked; both
        go through the single-member operations.
        """
        targets: list[Record] = []
        for child in as_list(children):
            child, _ = canonicalize(definition, store, child)
            if not any(child is target for target in targets):
                targets.append(child)

        parent._links.pop(definition.local_field, None)
        for member in self.get_members(definition, store, parent):
            if not any(member is target for target in targets):
                self.remove_member(definition, store, parent, member)
        for child in targets:
            self.add_member(definition, store, parent, child)

        if targets and get_value(parent, owner_id_attribute(definition)) is None:
            logger.debug(
                "%s.%s assigned on a record without identifier; view stays empty",
                definition.mapper.name if definition.mapper else "?",
                definition.local_field,
            )
        return self.get_members(definition, store, parent)

    def detach_member(
        self, definition: RelationDefinition, store: Store, parent: Record, child: Record
    ) -> None:
        """Nothing to detach; the view follows the child's foreign key and back link."""

    def attach_member(
        self,
        definition: RelationDefinition,
        store: Store,
        parent: Record,
        child: Record,
        source: RelationDefinition,
    ) -> None:
        parent._links.pop(definition.local_field, None)

    async def create_child_record(
        self,
        definition: RelationDefinition,
        store: Store,
        record: Record,
        data: Any,
    ) -> list[Record]:
        """Create each child with ``record``'s id as foreign key and add it."""
        created = await create_linked_children(definition, store, record, data)
        return [self.add_member(definition, store, record, child) for child in created]


def create_descriptor(mapper: Mapper, definition: RelationDefinition, store: Store) -> LinkField:
    """Build the view-backed link field for a HasMany definition."""
    implementation = store.relation_kinds.lookup(definition.kind).implementation
    implementation.ensure_index(definition, store)
    return LinkField(
        definition,
        on_set=lambda record, children: implementation.set_members(
            definition, store, record, children
        ),
        on_get=lambda record: implementation.get_members(definition, store, record),
    )
