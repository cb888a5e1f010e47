"""Relation definitions for mappers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from linked_records.exceptions import ConfigurationError

if TYPE_CHECKING:
    from linked_records.mapper import Mapper


class RelationKind(str, Enum):
    """Built-in relation kinds."""

    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"


def normalize_kind(kind: str | RelationKind) -> str:
    """Return the plain string tag for a relation kind."""
    if isinstance(kind, RelationKind):
        return kind.value
    return kind


# Kinds that link through a foreign-key field
FOREIGN_KEY_KINDS = frozenset(kind.value for kind in RelationKind)

# Kinds that may act as the inverse of each built-in kind
INVERSE_KINDS: dict[str, frozenset[str]] = {
    RelationKind.BELONGS_TO.value: frozenset(
        {RelationKind.HAS_ONE.value, RelationKind.HAS_MANY.value}
    ),
    RelationKind.HAS_ONE.value: frozenset({RelationKind.BELONGS_TO.value}),
    RelationKind.HAS_MANY.value: frozenset({RelationKind.BELONGS_TO.value}),
}


@dataclass(eq=False)
class RelationDefinition:
    """One declared relationship between two entity types.

    Created once per (mapper, relation) pair when the mapper is defined and
    treated as read-only afterwards. The inverse definition on the related
    mapper is looked up on first use, so relations may be declared before
    their counterpart exists.

    Attributes:
        kind: Relation kind tag (see RelationKind).
        related: Name of the related mapper.
        foreign_key: Scalar field holding the related identifier.
        local_field: Link field exposing the related record(s).
        inverse_local_field: Link field of the inverse definition, when more
            than one candidate points back at this mapper.
        getter: Optional hook ``getter(definition, record, original_get)``.
        setter: Optional hook ``setter(definition, record, value, original_set)``.
        mapper: The mapper owning this definition.
    """

    kind: str
    related: str
    foreign_key: str | None = None
    local_field: str | None = None
    inverse_local_field: str | None = None
    getter: Callable[..., Any] | None = None
    setter: Callable[..., Any] | None = None
    mapper: Mapper | None = field(default=None, repr=False)
    _inverse: RelationDefinition | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.kind = normalize_kind(self.kind)
        self.validate()

    def validate(self) -> None:
        """Check the definition's required fields.

        Raises:
            ConfigurationError: If a required field is missing or invalid.
        """
        details = {"kind": self.kind, "related": self.related}
        if not isinstance(self.kind, str) or not self.kind:
            raise ConfigurationError("Relation kind must be a non-empty string", details)
        if not isinstance(self.related, str) or not self.related:
            raise ConfigurationError("Relation must name its related mapper", details)
        if not self.local_field:
            raise ConfigurationError(
                f"{self.kind} relation to '{self.related}' requires a local_field", details
            )
        if self.kind in FOREIGN_KEY_KINDS and not self.foreign_key:
            raise ConfigurationError(
                f"{self.kind} relation to '{self.related}' requires a foreign_key", details
            )
        if self.foreign_key is not None and self.foreign_key == self.local_field:
            raise ConfigurationError(
                f"Relation to '{self.related}' uses '{self.local_field}' as both "
                "foreign_key and local_field",
                details,
            )

    def get_relation(self) -> Mapper | None:
        """Return the related mapper, or None if it isn't defined yet."""
        if self.mapper is None or self.mapper.store is None:
            return None
        return self.mapper.store.find_mapper(self.related)

    def get_inverse(self) -> RelationDefinition | None:
        """Resolve the complementary definition on the related mapper.

        Returns:
            The inverse definition, or None for a one-sided relation.
        """
        if self._inverse is not None:
            return self._inverse
        related = self.get_relation()
        if related is None or self.mapper is None:
            return None

        candidates = INVERSE_KINDS.get(self.kind)
        for definition in related.relation_list:
            if definition is self or definition.related != self.mapper.name:
                continue
            if candidates is not None and definition.kind not in candidates:
                continue
            if (
                definition.foreign_key
                and self.foreign_key
                and definition.foreign_key != self.foreign_key
            ):
                continue
            if self.inverse_local_field and definition.local_field != self.inverse_local_field:
                continue
            self._inverse = definition
            break
        return self._inverse
