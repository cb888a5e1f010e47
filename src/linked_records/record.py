"""Base class for records managed by a store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from linked_records.config import DEFAULT_ID_ATTRIBUTE

if TYPE_CHECKING:
    from linked_records.mapper import Mapper


class Record:
    """An instance of an entity type.

    Scalar fields (including the identifier and foreign keys) are stored in
    the instance ``__dict__``. Link fields are descriptors installed on the
    record class by the store; their resolved values live in the ``_links``
    side-table. Records compare and hash by identity.
    """

    _mapper: Mapper | None = None

    def __init__(self, props: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        """Create a record and assign its initial field values.

        Assignment goes through the installed descriptors, so passing a
        foreign key or a link field here links the record immediately.

        Args:
            props: Initial field values.
            **kwargs: Additional field values, applied after ``props``.
        """
        self._links: dict[str, Any] = {}
        values = dict(props or {})
        values.update(kwargs)
        for key, value in values.items():
            setattr(self, key, value)

    @property
    def id_attribute(self) -> str:
        """Name of this record's identifier field."""
        if self._mapper is None:
            return DEFAULT_ID_ATTRIBUTE
        return self._mapper.id_attribute

    def get_id(self) -> Any:
        """Return the identifier value, or None if unset."""
        return getattr(self, self.id_attribute, None)

    def to_dict(self) -> dict[str, Any]:
        """Return the scalar fields of this record (links excluded)."""
        return {k: v for k, v in vars(self).items() if not k.startswith("_")}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_dict()!r})"
