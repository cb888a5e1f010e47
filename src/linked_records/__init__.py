"""Linked Records - an in-memory store that keeps related records linked."""

from linked_records.adapters import Adapter
from linked_records.collection import Collection, SecondaryIndex
from linked_records.config import StoreSettings
from linked_records.exceptions import (
    ConfigurationError,
    LinkedRecordsError,
    MisuseError,
    UnknownRelationKind,
)
from linked_records.mapper import Mapper
from linked_records.record import Record
from linked_records.relations import (
    BelongsToRelation,
    HasManyRelation,
    HasOneRelation,
    RelationDefinition,
    RelationKind,
    RelationKindRegistry,
)
from linked_records.store import Store

__all__ = [
    # Main API
    "Store",
    "StoreSettings",
    "Mapper",
    "Record",
    # Storage
    "Collection",
    "SecondaryIndex",
    "Adapter",
    # Relations
    "RelationKind",
    "RelationDefinition",
    "RelationKindRegistry",
    "BelongsToRelation",
    "HasOneRelation",
    "HasManyRelation",
    # Errors
    "LinkedRecordsError",
    "ConfigurationError",
    "UnknownRelationKind",
    "MisuseError",
]

__version__ = "0.1.0"
