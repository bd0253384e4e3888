"""Reservation locator: find the pre-created record for a sign-in email."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .directory import DirectoryStore
from .models import CollectionKind, EMAIL_FIELD, EMAIL_LOWER_FIELD, ReservationRecord

logger = logging.getLogger(__name__)


def _as_given(email: str) -> str:
    return email


def _lowered(email: str) -> str:
    return email.lower()


@dataclass(frozen=True)
class SearchVariant:
    kind: CollectionKind
    field: str
    normalize: Callable[[str], str]


# Priority order; the first usable match wins.
SEARCH_ORDER: tuple[SearchVariant, ...] = (
    SearchVariant(CollectionKind.STAFF, EMAIL_LOWER_FIELD, _lowered),
    SearchVariant(CollectionKind.STAFF, EMAIL_FIELD, _as_given),
    SearchVariant(CollectionKind.CUSTOMER, EMAIL_LOWER_FIELD, _lowered),
    SearchVariant(CollectionKind.CUSTOMER, EMAIL_FIELD, _as_given),
)


def find_reservation(store: Optional[DirectoryStore], email: str) -> Optional[ReservationRecord]:
    """Return the unclaimed reservation matching ``email``, or None.

    Every record of a variant is considered, so a bound duplicate never hides
    an unclaimed one behind it. A missing or unavailable store is a miss, not
    an error.
    """
    if store is None or not store.available:
        logger.warning("Directory store unavailable; no reservation lookup for %s", email)
        return None

    for variant in SEARCH_ORDER:
        for record in store.find_matches(variant.kind, variant.field, variant.normalize(email)):
            if record.is_claimed:
                logger.info(
                    "Reservation %s matched %s via %s but is already bound to %s",
                    record.ref.path, email, variant.field, record.linked_uid,
                )
                continue
            logger.info("Reservation %s matched %s via %s", record.ref.path, email, variant.field)
            return record
    return None
