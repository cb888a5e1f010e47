"""Tests for collections and secondary indexes."""

import pytest

from linked_records import Collection, Mapper, SecondaryIndex


@pytest.fixture
def mapper():
    return Mapper("item")


def _item(mapper, item_id, group=None):
    return mapper.create_record({"id": item_id, "group": group})


class TestSecondaryIndex:
    """Tests for SecondaryIndex."""

    def test_insert_and_get(self, mapper):
        """Test that records are bucketed by field value in insertion order."""
        index = SecondaryIndex("group")
        a, b, c = _item(mapper, 1, "x"), _item(mapper, 2, "y"), _item(mapper, 3, "x")
        for record in (a, b, c):
            index.insert(record)

        assert index.get("x") == [a, c]
        assert index.get("y") == [b]
        assert index.get("z") == []
        assert sorted(index.values()) == ["x", "y"]
        assert len(index) == 3

    def test_update_moves_record(self, mapper):
        """Test that update refiles a record under its new value."""
        index = SecondaryIndex("group")
        record = _item(mapper, 1, "x")
        index.insert(record)

        record.group = "y"
        assert index.get("x") == [record]

        index.update(record)
        assert index.get("x") == []
        assert index.get("y") == [record]
        assert "x" not in index.values()

    def test_remove(self, mapper):
        """Test removing a record, including one never inserted."""
        index = SecondaryIndex("group")
        record = _item(mapper, 1, "x")
        index.insert(record)

        index.remove(record)
        index.remove(_item(mapper, 2, "x"))
        assert index.get("x") == []
        assert record not in index

    def test_none_values_are_indexed(self, mapper):
        """Test that records without a value are bucketed under None."""
        index = SecondaryIndex("group")
        record = _item(mapper, 1)
        index.insert(record)
        assert index.get(None) == [record]

    def test_get_returns_copy(self, mapper):
        """Test that mutating a returned bucket doesn't change the index."""
        index = SecondaryIndex("group")
        index.insert(_item(mapper, 1, "x"))
        index.get("x").clear()
        assert len(index.get("x")) == 1


class TestCollection:
    """Tests for Collection."""

    def test_put_and_get(self, mapper):
        """Test storing and fetching records by identifier."""
        collection = Collection(mapper)
        record = collection.put(_item(mapper, 1))

        assert collection.get(1) is record
        assert collection.get(2) is None
        assert collection.get(None) is None
        assert 1 in collection
        assert len(collection) == 1
        assert list(collection) == [record]

    def test_put_without_identifier(self, mapper):
        """Test that a record without identifier is rejected."""
        collection = Collection(mapper)
        with pytest.raises(ValueError, match="without 'id'"):
            collection.put(mapper.create_record({"group": "x"}))

    def test_put_overwrites_and_reindexes(self, mapper):
        """Test that a new record with the same id replaces the old one everywhere."""
        collection = Collection(mapper)
        collection.create_index("group")
        old = collection.put(_item(mapper, 1, "x"))
        new = collection.put(_item(mapper, 1, "y"))

        assert collection.get(1) is new
        assert collection.get_records_by_index("group", "x") == []
        assert collection.get_records_by_index("group", "y") == [new]
        assert old not in collection.indexes["group"]

    def test_initial_records(self, mapper):
        """Test building a collection from existing records."""
        records = [_item(mapper, 1), _item(mapper, 2)]
        collection = Collection(mapper, records)
        assert collection.get_all() == records

    def test_remove_drops_from_indexes(self, mapper):
        """Test that removal also clears index entries."""
        collection = Collection(mapper)
        collection.create_index("group")
        record = collection.put(_item(mapper, 1, "x"))

        assert collection.remove(1) is record
        assert collection.remove(1) is None
        assert collection.get_records_by_index("group", "x") == []

    def test_create_index_scans_existing_records(self, mapper):
        """Test that a new index covers records already stored."""
        collection = Collection(mapper)
        a = collection.put(_item(mapper, 1, "x"))
        b = collection.put(_item(mapper, 2, "x"))

        index = collection.create_index("group")
        assert index.get("x") == [a, b]
        assert collection.create_index("group") is index

    def test_index_follows_only_explicit_updates(self, mapper):
        """Test that a field write is invisible to the index until update_index."""
        collection = Collection(mapper)
        collection.create_index("group")
        record = collection.put(_item(mapper, 1, "x"))

        record.group = "y"
        assert collection.get_records_by_index("group", "x") == [record]

        collection.update_index(record, index="group")
        assert collection.get_records_by_index("group", "x") == []
        assert collection.get_records_by_index("group", "y") == [record]

    def test_update_all_indexes(self, mapper):
        """Test updating every index at once."""
        collection = Collection(mapper)
        collection.create_index("group")
        collection.create_index("color")
        record = collection.put(mapper.create_record({"id": 1, "group": "x", "color": "red"}))

        record.group = "y"
        record.color = "blue"
        collection.update_index(record)
        assert collection.get_records_by_index("group", "y") == [record]
        assert collection.get_records_by_index("color", "blue") == [record]

    def test_update_index_creates_index(self, mapper):
        """Test that updating a missing index creates it."""
        collection = Collection(mapper)
        record = collection.put(_item(mapper, 1, "x"))
        collection.update_index(record, index="group")
        assert "group" in collection.indexes
        assert collection.get_records_by_index("group", "x") == [record]

    def test_filter_and_remove_all(self, mapper):
        """Test exact-match queries."""
        collection = Collection(mapper)
        a = collection.put(_item(mapper, 1, "x"))
        b = collection.put(_item(mapper, 2, "y"))
        c = collection.put(_item(mapper, 3, "x"))

        assert collection.filter({"group": "x"}) == [a, c]
        assert collection.filter() == [a, b, c]
        assert collection.remove_all({"group": "x"}) == [a, c]
        assert collection.get_all() == [b]
        assert collection.remove_all({"group": "z"}) == []
        assert collection.remove_all() == [b]
        assert len(collection) == 0
