"""In-memory collections with secondary indexes."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from linked_records.relations.common import get_value

if TYPE_CHECKING:
    from linked_records.mapper import Mapper
    from linked_records.record import Record


class SecondaryIndex:
    """Maps the value of one field to the ordered bucket of records holding it.

    The index is not observed: callers reposition a record with ``update``
    after changing the field. The value each record was filed under is
    tracked, so repositioning never needs the old value from the caller.
    """

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        self._buckets: dict[Any, list[Record]] = {}
        self._positions: dict[int, Any] = {}  # id(record) -> filed value

    def insert(self, record: Record) -> None:
        """File a record under its current field value."""
        value = get_value(record, self.field_name)
        self._buckets.setdefault(value, []).append(record)
        self._positions[id(record)] = value

    def remove(self, record: Record) -> None:
        """Remove a record from whichever bucket it was filed under."""
        key = id(record)
        if key not in self._positions:
            return
        value = self._positions.pop(key)
        bucket = self._buckets.get(value)
        if bucket is None:
            return
        bucket[:] = [member for member in bucket if member is not record]
        if not bucket:
            del self._buckets[value]

    def update(self, record: Record) -> None:
        """Reposition a record after its field value changed."""
        self.remove(record)
        self.insert(record)

    def get(self, value: Any) -> list[Record]:
        """Return a copy of the bucket for an exact value."""
        return list(self._buckets.get(value, ()))

    def values(self) -> list[Any]:
        """List the distinct values currently indexed."""
        return list(self._buckets.keys())

    def __contains__(self, record: object) -> bool:
        return id(record) in self._positions

    def __len__(self) -> int:
        return len(self._positions)


class Collection:
    """Authoritative set of records of one entity type, keyed by identifier."""

    def __init__(self, mapper: Mapper, records: Iterable[Record] = ()) -> None:
        """Initialize a collection.

        Args:
            mapper: Mapper describing the records held here.
            records: Initial records.
        """
        self.mapper = mapper
        self._records: dict[Any, Record] = {}
        self.indexes: dict[str, SecondaryIndex] = {}
        for record in records:
            self.put(record)

    @property
    def id_attribute(self) -> str:
        return self.mapper.id_attribute

    def get(self, record_id: Any) -> Record | None:
        """Get a record by identifier."""
        if record_id is None:
            return None
        return self._records.get(record_id)

    def get_all(self) -> list[Record]:
        """Return every record in insertion order."""
        return list(self._records.values())

    def put(self, record: Record) -> Record:
        """Insert or overwrite a record by its identifier.

        Args:
            record: The record to store.

        Returns:
            The stored record.

        Raises:
            ValueError: If the record has no identifier value.
        """
        record_id = get_value(record, self.id_attribute)
        if record_id is None:
            raise ValueError(
                f"Cannot store a '{self.mapper.name}' record without '{self.id_attribute}'"
            )
        existing = self._records.get(record_id)
        if existing is not None and existing is not record:
            self._unindex(existing)
        self._records[record_id] = record
        for index in self.indexes.values():
            index.update(record)
        return record

    def remove(self, record_id: Any) -> Record | None:
        """Remove a record by identifier and drop it from every index.

        Returns:
            The removed record, or None if no record had that identifier.
        """
        record = self._records.pop(record_id, None)
        if record is not None:
            self._unindex(record)
        return record

    def filter(self, query: Mapping[str, Any] | None = None) -> list[Record]:
        """Return records whose fields equal every value in ``query``."""
        if not query:
            return self.get_all()
        return [
            record
            for record in self._records.values()
            if all(get_value(record, name) == value for name, value in query.items())
        ]

    def remove_all(self, query: Mapping[str, Any] | None = None) -> list[Record]:
        """Remove every record matching ``query`` (all records when omitted)."""
        matches = self.filter(query)
        for record in matches:
            self.remove(get_value(record, self.id_attribute))
        return matches

    def create_index(self, field_name: str) -> SecondaryIndex:
        """Build a secondary index on a field; idempotent.

        Current members are scanned once when the index is first created.
        """
        index = self.indexes.get(field_name)
        if index is None:
            index = SecondaryIndex(field_name)
            for record in self._records.values():
                index.insert(record)
            self.indexes[field_name] = index
        return index

    def update_index(self, record: Record, index: str | None = None) -> None:
        """Reposition a record after a field change.

        Only the stored instance for an identifier is indexed; detached
        copies and evicted records are dropped from the indexes instead.

        Args:
            record: The record whose field changed.
            index: Name of the index to update. All indexes when None.
        """
        if index is None:
            targets = list(self.indexes.values())
        else:
            targets = [self.create_index(index)]
        held = self.holds(record)
        for secondary in targets:
            if held:
                secondary.update(record)
            else:
                secondary.remove(record)

    def holds(self, record: Any) -> bool:
        """Return True if ``record`` is the stored instance for its identifier."""
        record_id = get_value(record, self.id_attribute)
        return record_id is not None and self._records.get(record_id) is record

    def get_records_by_index(self, field_name: str, value: Any) -> list[Record]:
        """Return the records whose ``field_name`` currently equals ``value``."""
        return self.create_index(field_name).get(value)

    def _unindex(self, record: Record) -> None:
        for index in self.indexes.values():
            index.remove(record)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)
