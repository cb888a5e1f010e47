"""Registry of relation kinds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from linked_records.exceptions import UnknownRelationKind
from linked_records.relations.definition import RelationKind, normalize_kind

if TYPE_CHECKING:
    from linked_records.mapper import Mapper
    from linked_records.relations.common import LinkField
    from linked_records.relations.definition import RelationDefinition
    from linked_records.store import Store

# create_descriptor(mapper, definition, store) -> link field, or None to skip
DescriptorFactory = Callable[["Mapper", "RelationDefinition", "Store"], Optional["LinkField"]]


@dataclass(frozen=True)
class RelationKindEntry:
    """What the store needs to know about one relation kind.

    Attributes:
        kind: Relation kind tag.
        implementation: Object carrying the kind's linking behaviour.
        create_descriptor: Factory producing the link field for a definition.
    """

    kind: str
    implementation: Any
    create_descriptor: DescriptorFactory


class RelationKindRegistry:
    """Registry of relation kinds, the only dispatch point for relation behaviour."""

    def __init__(self) -> None:
        self._entries: dict[str, RelationKindEntry] = {}

    def register(
        self,
        kind: str | RelationKind,
        implementation: Any,
        create_descriptor: DescriptorFactory,
    ) -> RelationKindEntry:
        """Register a relation kind. The last registration for a kind wins."""
        tag = normalize_kind(kind)
        entry = RelationKindEntry(
            kind=tag, implementation=implementation, create_descriptor=create_descriptor
        )
        self._entries[tag] = entry
        return entry

    def get(self, kind: str | RelationKind) -> RelationKindEntry | None:
        """Get an entry by kind."""
        return self._entries.get(normalize_kind(kind))

    def lookup(self, kind: str | RelationKind) -> RelationKindEntry:
        """Get an entry by kind, raising if it was never registered."""
        entry = self._entries.get(normalize_kind(kind))
        if entry is None:
            raise UnknownRelationKind(normalize_kind(kind))
        return entry

    def list_kinds(self) -> list[str]:
        """List all registered kind tags."""
        return list(self._entries.keys())

    def __contains__(self, kind: object) -> bool:
        if isinstance(kind, (str, RelationKind)):
            return normalize_kind(kind) in self._entries
        return False
