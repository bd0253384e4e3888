"""Sign-in orchestrator: authenticate, or claim a reservation on first login.

State machine for one (email, password) submission:

    START ──invalid input──> VALIDATION_ERROR
      │
    AUTHENTICATE ──ok──> DONE
      │ identity-not-found           any other failure ──> FAILED
    PROVISION ──no reservation──> FAILED (not pre-registered)
      │ reservation found
      │ create identity ──duplicate──> FAILED (retry)
    BOUND: display name (best effort), bind reservation ──> DONE

Only "identity not found" leads to PROVISION. Wrong passwords, disabled
accounts and every other provider failure end in FAILED, so a failed
sign-in can never create an account.
"""
from __future__ import annotations
import logging
from typing import Optional

from scripts import audit

from . import messages
from .binder import bind_identity, derive_display_name
from .directory import DirectoryStore
from .errors import (
    AuthErrorKind,
    AuthRejectedError,
    CredentialProviderError,
    DirectoryStoreError,
    LocalValidationError,
    NotReservedError,
    ProviderUnknownError,
    ProvisionRaceError,
    ReservationAlreadyClaimedError,
    SignInError,
)
from .locator import find_reservation
from .models import (
    CredentialIdentity,
    PasswordResetResult,
    ReservationRecord,
    ResetStatus,
    SignInResult,
    SignInStatus,
)
from .provider import CredentialProvider
from .session_context import SessionContext, home_path_for
from .validators import is_valid_email, validate_email, validate_password

logger = logging.getLogger(__name__)


class SignInOrchestrator:
    """Runs sign-in submissions and password-reset requests.

    Args:
        provider: Credential provider
        store: Directory store holding reservations
        session_context: Read-only source for the post-success redirect
        locale: Message table to use ("en", "es")
    """

    def __init__(
        self,
        provider: CredentialProvider,
        store: DirectoryStore,
        session_context: Optional[SessionContext] = None,
        locale: str = messages.DEFAULT_LOCALE,
    ):
        self.provider = provider
        self.store = store
        self.session_context = session_context
        self.locale = locale

    # ─────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────
    def submit(self, email: str, password: str) -> SignInResult:
        """Run one sign-in submission to a terminal state."""
        try:
            email, password = self._validate(email, password)
        except LocalValidationError as exc:
            return SignInResult(SignInStatus.VALIDATION_ERROR, message=exc.message, error=exc.category)

        try:
            identity, provisioned = self._authenticate_or_provision(email, password)
        except SignInError as exc:
            return SignInResult(SignInStatus.FAILED, message=exc.message, error=exc.category)

        return SignInResult(
            SignInStatus.DONE,
            identity=identity,
            provisioned=provisioned,
            redirect_to=self._redirect_for(identity),
        )

    def request_password_reset(self, email: str) -> PasswordResetResult:
        """Ask the provider to send a reset email after local validation.

        Unknown emails get the same SENT answer as known ones.
        """
        email = (email or "").strip()
        if not is_valid_email(email):
            return PasswordResetResult(ResetStatus.FAILED, self._message(messages.RESET_INVALID_EMAIL))

        try:
            self.provider.send_password_reset(email)
        except CredentialProviderError as exc:
            if exc.kind is not AuthErrorKind.IDENTITY_NOT_FOUND:
                logger.error("Password reset email failed for %s: %s", email, exc)
                return PasswordResetResult(ResetStatus.FAILED, messages.resolve_auth_message(exc.code, self.locale))
            logger.info("Password reset requested for unknown email %s", email)
        audit.safe_log_event("password_reset_requested", email, operator="sign-in")
        return PasswordResetResult(ResetStatus.SENT, self._message(messages.RESET_SENT))

    # ─────────────────────────────────────────────────────────────────────
    # States
    # ─────────────────────────────────────────────────────────────────────
    def _validate(self, email: str, password: str) -> tuple[str, str]:
        """START: local checks, no external calls."""
        try:
            email = validate_email(email)
        except ValueError as exc:
            raise LocalValidationError(self._message(messages.INVALID_EMAIL_INPUT)) from exc
        try:
            password = validate_password(password)
        except ValueError as exc:
            raise LocalValidationError(self._message(messages.MISSING_PASSWORD)) from exc
        return email, password

    def _authenticate_or_provision(self, email: str, password: str) -> tuple[CredentialIdentity, bool]:
        """AUTHENTICATE, branching to PROVISION on identity-not-found only."""
        try:
            return self.provider.authenticate(email, password), False
        except CredentialProviderError as exc:
            if exc.kind is not AuthErrorKind.IDENTITY_NOT_FOUND:
                logger.info("Sign-in rejected for %s: %s", email, exc.code)
                raise self._rejection(exc) from exc
        return self._provision(email, password), True

    def _provision(self, email: str, password: str) -> CredentialIdentity:
        """PROVISION: claim the reservation by creating the identity."""
        try:
            reservation = find_reservation(self.store, email)
        except DirectoryStoreError as exc:
            logger.error("Reservation lookup failed for %s: %s", email, exc)
            raise ProviderUnknownError(self._message(messages.GENERIC)) from exc

        if reservation is None:
            logger.info("Refused first login for %s: no reservation", email)
            audit.safe_log_event("first_login_refused", email, operator="sign-in", success=False)
            raise NotReservedError(self._message(messages.NOT_RESERVED))

        try:
            identity = self.provider.create_identity(email, password)
        except CredentialProviderError as exc:
            if exc.kind is AuthErrorKind.DUPLICATE_IDENTITY:
                logger.warning("Identity for %s was created concurrently", email)
                audit.safe_log_event(
                    "first_login_race",
                    email,
                    operator="sign-in",
                    details={"record": reservation.ref.path},
                    success=False,
                )
                raise ProvisionRaceError(self._message(messages.PROVISION_RACE)) from exc
            logger.error("Could not create identity for %s: %s", email, exc)
            raise self._rejection(exc) from exc

        audit.safe_log_event(
            "first_login_provisioned",
            email,
            operator="sign-in",
            details={"record": reservation.ref.path, "uid": identity.uid},
        )
        self._bind(reservation, identity, email)
        return identity

    def _bind(self, reservation: ReservationRecord, identity: CredentialIdentity, email: str) -> None:
        """BOUND: best-effort display name, then link the reservation."""
        display_name = derive_display_name(reservation.fields)
        if display_name:
            try:
                self.provider.set_display_name(identity, display_name)
            except Exception as exc:
                # The identity already exists; the binding below must still happen
                logger.warning("Could not set display name for uid=%s: %s", identity.uid, exc, exc_info=True)

        try:
            bind_identity(self.store, reservation, identity.uid, email, display_name)
        except ReservationAlreadyClaimedError as exc:
            logger.error("Reservation race for %s: %s", email, exc)
            raise ProvisionRaceError(self._message(messages.PROVISION_RACE)) from exc
        except DirectoryStoreError as exc:
            logger.error("Could not bind reservation %s to uid=%s: %s", reservation.ref.path, identity.uid, exc)
            raise ProviderUnknownError(self._message(messages.GENERIC)) from exc

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────
    def _rejection(self, exc: CredentialProviderError) -> SignInError:
        message = messages.resolve_auth_message(exc.code, self.locale)
        if messages.has_specific_message(exc.kind):
            return AuthRejectedError(message)
        return ProviderUnknownError(message)

    def _redirect_for(self, identity: CredentialIdentity) -> Optional[str]:
        if self.session_context is None:
            return None
        return home_path_for(self.session_context.snapshot(identity.uid).role)

    def _message(self, key: str) -> str:
        return messages.message_for(key, self.locale)
