"""Directory store interface."""
from __future__ import annotations
from typing import Any, Optional

from ..models import CollectionKind, RecordRef, ReservationRecord


class DirectoryStore:
    """Record storage with single-field equality lookups.

    An unavailable store degrades instead of raising: lookups come back
    empty and update() returns False.
    """

    def find_matches(
        self,
        kind: CollectionKind,
        field: str,
        value: Any,
        limit: Optional[int] = None,
    ) -> list[ReservationRecord]:
        raise NotImplementedError

    def find_one(self, kind: CollectionKind, field: str, value: Any) -> Optional[ReservationRecord]:
        matches = self.find_matches(kind, field, value, limit=1)
        return matches[0] if matches else None

    def update(self, ref: RecordRef, fields: dict[str, Any]) -> bool:
        raise NotImplementedError

    def create(self, kind: CollectionKind, fields: dict[str, Any]) -> ReservationRecord:
        raise NotImplementedError

    @property
    def available(self) -> bool:
        return True


class NullDirectoryStore(DirectoryStore):
    """Stand-in used when no directory is configured for the deployment."""

    def find_matches(
        self,
        kind: CollectionKind,
        field: str,
        value: Any,
        limit: Optional[int] = None,
    ) -> list[ReservationRecord]:
        return []

    def update(self, ref: RecordRef, fields: dict[str, Any]) -> bool:
        return False

    def create(self, kind: CollectionKind, fields: dict[str, Any]) -> ReservationRecord:
        raise RuntimeError("Directory store is not configured (set FIRESTORE_PROJECT_ID)")

    @property
    def available(self) -> bool:
        return False
