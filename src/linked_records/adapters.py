"""Persistence interface consumed by the store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from linked_records.mapper import Mapper


class Adapter(Protocol):
    """Asynchronous persistence calls the store delegates to.

    Failures raised by an adapter propagate to the store's caller unchanged;
    the store never retries.
    """

    async def create(self, mapper: Mapper, props: dict[str, Any]) -> Any:
        """Persist a new record and return its stored properties (or a Record)."""
        ...

    async def destroy(self, mapper: Mapper, record_id: Any) -> Any:
        """Destroy one record by identifier."""
        ...

    async def destroy_all(self, mapper: Mapper, query: Mapping[str, Any] | None) -> Any:
        """Destroy every record matching an exact-match query."""
        ...
