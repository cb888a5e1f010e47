"""Shared fixtures for linked_records tests."""

import pytest

from linked_records import Store, StoreSettings


class FakeAdapter:
    """In-memory adapter recording every call it receives.

    Created records get ascending identifiers starting at 100. Mapper names
    listed in ``fail_on`` make the matching call raise RuntimeError.
    """

    def __init__(self):
        self.calls = []
        self.next_id = 100
        self.fail_on = set()

    def _check(self, action, mapper):
        if mapper.name in self.fail_on:
            raise RuntimeError(f"{action} {mapper.name} failed")

    async def create(self, mapper, props):
        self.calls.append(("create", mapper.name, dict(props)))
        self._check("create", mapper)
        data = dict(props)
        if data.get(mapper.id_attribute) is None:
            data[mapper.id_attribute] = self.next_id
            self.next_id += 1
        return data

    async def destroy(self, mapper, record_id):
        self.calls.append(("destroy", mapper.name, record_id))
        self._check("destroy", mapper)
        return record_id

    async def destroy_all(self, mapper, query):
        self.calls.append(("destroy_all", mapper.name, query))
        self._check("destroy_all", mapper)
        return None


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def store(adapter):
    return Store(StoreSettings(), adapter=adapter)


@pytest.fixture
def blog(store):
    """Store where a post has many comments and a comment belongs to a post."""
    store.define_mapper(
        "post",
        relations={
            "has_many": {"comment": {"foreign_key": "post_id", "local_field": "comments"}},
        },
    )
    store.define_mapper(
        "comment",
        relations={
            "belongs_to": {"post": {"foreign_key": "post_id", "local_field": "post"}},
        },
    )
    return store


@pytest.fixture
def accounts(store):
    """Store where a user has one profile and a profile belongs to a user."""
    store.define_mapper(
        "user",
        relations={
            "has_one": {"profile": {"foreign_key": "user_id", "local_field": "profile"}},
        },
    )
    store.define_mapper(
        "profile",
        relations={
            "belongs_to": {"user": {"foreign_key": "user_id", "local_field": "user"}},
        },
    )
    return store
