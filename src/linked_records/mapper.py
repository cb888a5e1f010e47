"""Mappers: per-entity-type record schema."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable

from linked_records.config import DEFAULT_ID_ATTRIBUTE
from linked_records.record import Record
from linked_records.relations.definition import RelationDefinition, RelationKind

if TYPE_CHECKING:
    from linked_records.store import Store


def record_class_name(name: str) -> str:
    """Return the generated record class name for a mapper name.

    Examples:
        >>> record_class_name("blog_post")
        'BlogPostRecord'
    """
    parts = name.replace("-", "_").split("_")
    return "".join(part[:1].upper() + part[1:] for part in parts if part) + "Record"


class Mapper:
    """Schema of one entity type: identifier field and declared relations."""

    def __init__(
        self,
        name: str,
        id_attribute: str = DEFAULT_ID_ATTRIBUTE,
        relations: Mapping[str, Mapping[str, Mapping[str, Any]]] | None = None,
        record_class: type[Record] | None = None,
    ) -> None:
        """Initialize a mapper.

        Args:
            name: Entity type name.
            id_attribute: Identifier field of this type's records.
            relations: Relations keyed by kind, then by related mapper name,
                e.g. ``{"belongs_to": {"post": {"foreign_key": "post_id",
                "local_field": "post"}}}``.
            record_class: Record class to install link fields on. A fresh
                Record subclass is generated when omitted.
        """
        self.name = name
        self.id_attribute = id_attribute
        self.relation_list: list[RelationDefinition] = []
        self.store: Store | None = None

        if record_class is None:
            record_class = type(record_class_name(name), (Record,), {})
        record_class._mapper = self
        self.record_class = record_class

        for kind, by_related in (relations or {}).items():
            for related, options in by_related.items():
                self.define_relation(kind, related, **options)

    def define_relation(
        self,
        kind: str | RelationKind,
        related: str,
        *,
        foreign_key: str | None = None,
        local_field: str | None = None,
        inverse_local_field: str | None = None,
        getter: Callable[..., Any] | None = None,
        setter: Callable[..., Any] | None = None,
    ) -> RelationDefinition:
        """Declare a relation from this mapper to another.

        The inverse is not resolved here; see RelationDefinition.get_inverse.

        Returns:
            The new relation definition.

        Raises:
            ConfigurationError: If required options are missing.
        """
        definition = RelationDefinition(
            kind=kind,
            related=related,
            foreign_key=foreign_key,
            local_field=local_field,
            inverse_local_field=inverse_local_field,
            getter=getter,
            setter=setter,
            mapper=self,
        )
        self.relation_list.append(definition)
        return definition

    def belongs_to(self, related: str, **options: Any) -> RelationDefinition:
        return self.define_relation(RelationKind.BELONGS_TO, related, **options)

    def has_one(self, related: str, **options: Any) -> RelationDefinition:
        return self.define_relation(RelationKind.HAS_ONE, related, **options)

    def has_many(self, related: str, **options: Any) -> RelationDefinition:
        return self.define_relation(RelationKind.HAS_MANY, related, **options)

    def get_relation(self, local_field: str) -> RelationDefinition:
        """Get a relation by its local field name.

        Raises:
            KeyError: If no relation uses that local field.
        """
        for definition in self.relation_list:
            if definition.local_field == local_field:
                return definition
        raise KeyError(f"Relation '{local_field}' not found on mapper '{self.name}'")

    def create_record(self, props: Mapping[str, Any] | None = None) -> Record:
        """Instantiate this mapper's record class."""
        return self.record_class(props)

    def __repr__(self) -> str:
        return f"Mapper({self.name!r})"
