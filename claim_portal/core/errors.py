"""Error types and provider error classification for the first-login flow."""
from __future__ import annotations
from enum import Enum
from typing import Optional


# Provider error codes share this namespace; it is the only prefix ever inspected.
AUTH_CODE_PREFIX = "auth/"


class AuthErrorKind(str, Enum):
    """Closed set of credential provider failure kinds."""
    INVALID_EMAIL = "invalid-email"
    IDENTITY_NOT_FOUND = "identity-not-found"
    WRONG_CREDENTIAL = "wrong-credential"
    DISABLED = "disabled"
    RATE_LIMITED = "rate-limited"
    DUPLICATE_IDENTITY = "duplicate-identity"
    UNKNOWN = "unknown"


_CODE_TO_KIND: dict[str, AuthErrorKind] = {
    "auth/invalid-email": AuthErrorKind.INVALID_EMAIL,
    "auth/user-not-found": AuthErrorKind.IDENTITY_NOT_FOUND,
    "auth/wrong-password": AuthErrorKind.WRONG_CREDENTIAL,
    "auth/invalid-credential": AuthErrorKind.WRONG_CREDENTIAL,
    "auth/invalid-login-credentials": AuthErrorKind.WRONG_CREDENTIAL,
    "auth/user-disabled": AuthErrorKind.DISABLED,
    "auth/too-many-requests": AuthErrorKind.RATE_LIMITED,
    "auth/email-already-in-use": AuthErrorKind.DUPLICATE_IDENTITY,
}


def normalize_error_code(code: object) -> str:
    """Return the lower-cased, trimmed string form of a provider error code."""
    if code is None:
        return ""
    return str(code).strip().lower()


def classify_auth_error(code: object) -> AuthErrorKind:
    """Map an opaque provider error code onto AuthErrorKind.

    Total over any input: unrecognized codes (including None) are UNKNOWN.
    """
    return _CODE_TO_KIND.get(normalize_error_code(code), AuthErrorKind.UNKNOWN)


def is_provider_code(code: object) -> bool:
    """True when the code belongs to the credential provider's ``auth/`` namespace."""
    return normalize_error_code(code).startswith(AUTH_CODE_PREFIX)


# ─────────────────────────────────────────────────────────────────────────────
# External collaborator errors
# ─────────────────────────────────────────────────────────────────────────────

class CredentialProviderError(Exception):
    """Failure reported by the credential provider.

    Attributes:
        code: Opaque provider code (e.g. "auth/user-not-found")
        description: Provider detail, never shown to end users
    """

    def __init__(self, code: str, description: Optional[str] = None):
        self.code = code
        self.description = description
        super().__init__(f"{code}: {description}" if description else code)

    @property
    def kind(self) -> AuthErrorKind:
        return classify_auth_error(self.code)


class DirectoryStoreError(Exception):
    """Directory store rejected a request.

    Attributes:
        status_code: HTTP status code (0 when not applicable)
        message: Error message from response
        endpoint: Endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str = ""):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class ReservationAlreadyClaimedError(Exception):
    """Reservation is already bound to a different credential identity."""

    def __init__(self, record_path: str, linked_uid: str):
        self.record_path = record_path
        self.linked_uid = linked_uid
        super().__init__(f"Reservation {record_path} is already bound to {linked_uid}")


# ─────────────────────────────────────────────────────────────────────────────
# Sign-in failures (converted to a user-facing message by the orchestrator)
# ─────────────────────────────────────────────────────────────────────────────

class SignInError(Exception):
    """Base class for failures surfaced to the user as a single message."""
    category = "sign_in"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LocalValidationError(SignInError):
    """Malformed email or empty password, caught before any network call."""
    category = "validation"


class AuthRejectedError(SignInError):
    """Provider declined the credentials for a reason other than unknown identity."""
    category = "auth_rejected"


class NotReservedError(SignInError):
    """Identity unknown to the provider and no reservation matches the email."""
    category = "not_reserved"


class ProvisionRaceError(SignInError):
    """Another submission created or bound the account first."""
    category = "provision_race"


class ProviderUnknownError(SignInError):
    """Failure without a specific message table entry."""
    category = "provider_unknown"
