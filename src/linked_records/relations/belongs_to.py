"""BelongsTo relations: the side that owns the foreign key.

e.g. ``comment.post = post`` or ``comment.post_id = 1``. Either entry point
leaves the comment's link, its foreign key, the foreign-key index and the
post's inverse field (if declared) in the same state.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any

from linked_records.exceptions import MisuseError
from linked_records.relations.common import (
    ForeignKeyField,
    LinkField,
    canonicalize,
    get_link,
    get_value,
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

logger = logging.getLogger(__name__)


class BelongsToRelation:
    """Behaviour of the BelongsTo kind beyond its link field."""

    kind = RelationKind.BELONGS_TO.value
    # The related (parent) record must exist before this side can point at it
    owns_foreign_key = True

    def ensure_index(self, definition: RelationDefinition, store: Store) -> None:
        """Index the foreign key on the owning collection."""
        collection = store.find_collection(definition.mapper.name)
        if collection is not None:
            collection.create_index(definition.foreign_key)

    def find_existing_links_for(
        self, definition: RelationDefinition, store: Store, record: Record
    ) -> Record | None:
        """Return the loaded parent named by the record's foreign key."""
        related_id = get_value(record, definition.foreign_key)
        if related_id is None:
            return None
        return store.get(definition.related, related_id)

    async def create_parent_record(
        self,
        definition: RelationDefinition,
        store: Store,
        props: MutableMapping[str, Any],
    ) -> Record:
        """Create the parent described under the link field of ``props``.

        The foreign key is written into ``props`` only after the parent has
        been created; if creation fails ``props`` is left as it was.

        Args:
            definition: The BelongsTo definition.
            store: Store used to create the parent.
            props: Raw properties of the child about to be created.

        Returns:
            The created parent record.
        """
        data = props.get(definition.local_field)
        parent = await store.create(definition.related, data)
        props.pop(definition.local_field, None)
        props[definition.foreign_key] = get_value(parent, related_id_attribute(definition))
        return parent

    async def create_child_record(
        self,
        definition: RelationDefinition,
        store: Store,
        record: Record,
        data: Any,
    ) -> Any:
        owner = definition.mapper.name if definition.mapper else "?"
        raise MisuseError(
            f'"belongs_to" relation {owner}.{definition.local_field} does not support '
            "child creation as it cannot have children",
            details={"mapper": owner, "local_field": definition.local_field},
        )


def create_descriptor(mapper: Mapper, definition: RelationDefinition, store: Store) -> LinkField:
    """Build the link field and install the foreign-key intercept.

    Args:
        mapper: Mapper owning the relation (the child side).
        definition: The BelongsTo definition.
        store: Store coordinating the link.

    Returns:
        The link field to install under ``definition.local_field``.
    """
    collection = store.get_collection(mapper.name)
    foreign_key = definition.foreign_key
    local_field = definition.local_field
    collection.create_index(foreign_key)

    def inverse_implementation(inverse: RelationDefinition) -> Any:
        return store.relation_kinds.lookup(inverse.kind).implementation

    def set_link(record: Record, parent: Any) -> Any:
        # e.g. comment.post = post
        current = get_link(record, local_field)
        if parent is current:
            return current
        if not collection.holds(record):
            # Detached or evicted: own fields only, parents stay untouched
            if parent is not None:
                parent, related_id = canonicalize(definition, store, parent)
                safe_set_prop(record, foreign_key, related_id)
            safe_set_link(record, local_field, parent)
            return parent
        inverse = definition.get_inverse()

        # Leave the old parent before joining the new one
        if current is not None and inverse is not None:
            inverse_implementation(inverse).detach_member(inverse, store, current, record)

        if parent is not None:
            parent, related_id = canonicalize(definition, store, parent)
            safe_set_link(record, local_field, parent)
            safe_set_prop(record, foreign_key, related_id)
            collection.update_index(record, index=foreign_key)
            if inverse is not None:
                inverse_implementation(inverse).attach_member(
                    inverse, store, parent, record, definition
                )
        else:
            # Unset in-memory link only; the foreign key is the caller's
            safe_set_link(record, local_field, None)
        return parent

    def set_foreign_key(record: Record, value: Any) -> None:
        # e.g. comment.post_id = 1
        current = get_link(record, local_field)
        current_id = (
            get_value(current, related_id_attribute(definition)) if current is not None else None
        )
        if not collection.holds(record):
            # Linked once the record is added to the store
            safe_set_prop(record, foreign_key, value)
            if current is not None and current_id != value:
                safe_set_link(record, local_field, None)
            return
        inverse = definition.get_inverse()

        if current is not None and inverse is not None and current_id != value:
            inverse_implementation(inverse).detach_member(inverse, store, current, record)

        safe_set_prop(record, foreign_key, value)
        collection.update_index(record, index=foreign_key)

        if value is None:
            if current_id is not None:
                setattr(record, local_field, None)
            return

        stored = store.get(definition.related, value)
        if stored is not None:
            setattr(record, local_field, stored)
        elif current is not None and current_id != value:
            logger.debug(
                "%s.%s=%r: related '%s' not loaded, leaving %s unresolved",
                mapper.name,
                foreign_key,
                value,
                definition.related,
                local_field,
            )
            safe_set_link(record, local_field, None)

    existing = getattr(mapper.record_class, foreign_key, None)
    setattr(
        mapper.record_class,
        foreign_key,
        ForeignKeyField(foreign_key, definition, set_foreign_key, wrapped=existing),
    )
    return LinkField(definition, set_link)
