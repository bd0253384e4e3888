"""Domain types shared by the locator, binder and sign-in orchestrator."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# Reservation field names
EMAIL_FIELD = "email"
EMAIL_LOWER_FIELD = "emailLower"
UID_FIELD = "uid"
DISPLAY_NAME_FIELD = "displayName"
ROLE_FIELD = "role"

GIVEN_NAME_FIELDS = ("displayName", "nombre", "Nombre")
SURNAME_FIELDS = ("lastName", "apellido", "Apellido")


class CollectionKind(str, Enum):
    """Directory collection a reservation lives in."""
    STAFF = "staff"
    CUSTOMER = "customer"


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class RecordRef:
    """Address of a directory record (collection kind + document id)."""
    kind: CollectionKind
    record_id: str

    @property
    def path(self) -> str:
        return f"{self.kind.value}/{self.record_id}"


@dataclass
class ReservationRecord:
    """Administrator-created personnel record awaiting (or past) first login."""
    kind: CollectionKind
    record_id: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def ref(self) -> RecordRef:
        return RecordRef(self.kind, self.record_id)

    @property
    def linked_uid(self) -> Optional[str]:
        value = self.fields.get(UID_FIELD)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def is_claimed(self) -> bool:
        return self.linked_uid is not None


@dataclass(frozen=True)
class CredentialIdentity:
    """Account owned by the external credential provider."""
    uid: str
    email: str
    display_name: Optional[str] = None


class SignInStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"
    VALIDATION_ERROR = "validation_error"


@dataclass(frozen=True)
class SignInResult:
    """Outcome of one sign-in submission as seen by the UI layer.

    Attributes:
        status: Terminal state of the run
        message: User-facing message (None on success)
        identity: Signed-in identity when status is DONE
        provisioned: True when the identity was created during this run
        error: Name of the failure category (e.g. "not_reserved")
        redirect_to: Post-success landing path resolved from the session context
    """
    status: SignInStatus
    message: Optional[str] = None
    identity: Optional[CredentialIdentity] = None
    provisioned: bool = False
    error: Optional[str] = None
    redirect_to: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is SignInStatus.DONE


class ResetStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class PasswordResetResult:
    status: ResetStatus
    message: str
