"""Relation kinds: definitions, registry and linking algorithms."""

from linked_records.relations import belongs_to, has_many, has_one
from linked_records.relations.belongs_to import BelongsToRelation
from linked_records.relations.common import ForeignKeyField, LinkField
from linked_records.relations.definition import RelationDefinition, RelationKind
from linked_records.relations.has_many import HasManyRelation
from linked_records.relations.has_one import HasOneRelation
from linked_records.relations.registry import RelationKindEntry, RelationKindRegistry

# (kind, implementation class, descriptor factory) registered by every store
BUILTIN_RELATION_KINDS = [
    (RelationKind.BELONGS_TO, BelongsToRelation, belongs_to.create_descriptor),
    (RelationKind.HAS_MANY, HasManyRelation, has_many.create_descriptor),
    (RelationKind.HAS_ONE, HasOneRelation, has_one.create_descriptor),
]

__all__ = [
    "BUILTIN_RELATION_KINDS",
    "BelongsToRelation",
    "ForeignKeyField",
    "HasManyRelation",
    "HasOneRelation",
    "LinkField",
    "RelationDefinition",
    "RelationKind",
    "RelationKindEntry",
    "RelationKindRegistry",
]
