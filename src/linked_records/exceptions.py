"""Exceptions raised by linked_records.

Failures coming from a persistence adapter are never wrapped; they
propagate to the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class LinkedRecordsError(Exception):
    """Base exception for all linked_records errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(LinkedRecordsError):
    """Raised when a relation, mapper or store setting is invalid."""

    pass


class UnknownRelationKind(ConfigurationError):
    """Raised when a relation kind was never registered with the store.

    Attributes:
        kind: The relation kind that failed to resolve
    """

    kind: str

    def __init__(self, kind: str):
        super().__init__(
            f"Unknown relation kind: {kind!r}",
            details={"kind": kind},
        )
        self.kind = kind


class MisuseError(LinkedRecordsError):
    """Raised when a relation is asked to do something its kind cannot do."""

    pass
