"""Identity binder: link a reservation record to its new credential identity."""
from __future__ import annotations
import logging
from typing import Any, Mapping, Optional

from scripts import audit

from .directory import DirectoryStore
from .errors import ReservationAlreadyClaimedError
from .models import (
    DISPLAY_NAME_FIELD,
    EMAIL_FIELD,
    EMAIL_LOWER_FIELD,
    GIVEN_NAME_FIELDS,
    SURNAME_FIELDS,
    UID_FIELD,
    ReservationRecord,
)

logger = logging.getLogger(__name__)


def _first_present(fields: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = fields.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def derive_display_name(fields: Optional[Mapping[str, Any]], *, collapse_surname: bool = False) -> Optional[str]:
    """Build a display name from the reservation's name fields.

    Given name and surname are each the first non-empty value among their
    accepted spellings. Both present: joined with one space. One present:
    used alone. Neither: None.

    Args:
        fields: Reservation field mapping
        collapse_surname: Return the given name alone when it already ends
            with the surname (e.g. displayName "Ana Ruiz" + lastName "Ruiz")
    """
    if not fields:
        return None
    given = _first_present(fields, GIVEN_NAME_FIELDS)
    surname = _first_present(fields, SURNAME_FIELDS)
    if given and surname:
        if collapse_surname and given.lower().endswith(surname.lower()):
            return given
        return f"{given} {surname}".strip()
    return given or surname


def build_binding_payload(uid: str, email: str, display_name: Optional[str] = None) -> dict[str, str]:
    payload = {
        UID_FIELD: uid,
        EMAIL_FIELD: email,
        EMAIL_LOWER_FIELD: email.lower(),
    }
    if display_name and display_name.strip():
        payload[DISPLAY_NAME_FIELD] = display_name.strip()
    return payload


def bind_identity(
    store: DirectoryStore,
    record: ReservationRecord,
    uid: str,
    email: str,
    display_name: Optional[str] = None,
) -> dict[str, str]:
    """Write the credential uid and email back onto the reservation.

    Repeating the call with the same inputs converges to the same record.

    Returns:
        The fields written

    Raises:
        ReservationAlreadyClaimedError: The record is linked to another uid
        DirectoryStoreError: The store rejected the write
    """
    if record.linked_uid and record.linked_uid != uid:
        raise ReservationAlreadyClaimedError(record.ref.path, record.linked_uid)

    payload = build_binding_payload(uid, email, display_name)
    written = store.update(record.ref, payload)
    if not written:
        logger.warning("Directory store unavailable; reservation %s left unbound for uid=%s", record.ref.path, uid)
        return payload

    logger.info("Bound reservation %s to uid=%s", record.ref.path, uid)
    audit.safe_log_event(
        "identity_bound",
        email,
        operator="sign-in",
        details={"record": record.ref.path, "uid": uid, "display_name": payload.get(DISPLAY_NAME_FIELD)},
    )
    return payload
