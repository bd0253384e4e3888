"""Credential provider interface and auth-state stream."""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .models import CredentialIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthStateChange:
    """Sign-in (identity set) or sign-out (identity None) for one uid."""
    uid: str
    identity: Optional[CredentialIdentity]

    @property
    def signed_in(self) -> bool:
        return self.identity is not None


AuthStateListener = Callable[[AuthStateChange], None]


class CredentialProvider:
    """Capabilities consumed from the external credential provider.

    Every failure is raised as CredentialProviderError carrying an opaque
    ``auth/...`` code. Successful sign-ins and sign-outs are published to
    listeners registered with on_auth_state_changed(); the provider is the
    only writer of that stream.
    """

    def __init__(self) -> None:
        self._listeners: list[AuthStateListener] = []
        self._listeners_lock = threading.Lock()

    # ─────────────────────────────────────────────────────────────────────
    # Capabilities
    # ─────────────────────────────────────────────────────────────────────
    def authenticate(self, email: str, password: str) -> CredentialIdentity:
        raise NotImplementedError

    def create_identity(self, email: str, password: str) -> CredentialIdentity:
        raise NotImplementedError

    def set_display_name(self, identity: CredentialIdentity, name: str) -> None:
        raise NotImplementedError

    def send_password_reset(self, email: str) -> None:
        raise NotImplementedError

    def sign_out(self, identity: CredentialIdentity) -> None:
        self._emit(AuthStateChange(identity.uid, None))

    # ─────────────────────────────────────────────────────────────────────
    # Auth-state stream
    # ─────────────────────────────────────────────────────────────────────
    def on_auth_state_changed(self, listener: AuthStateListener) -> Callable[[], None]:
        """Register a listener and return the matching unsubscribe callable."""
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, change: AuthStateChange) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception("Auth-state listener failed for uid=%s", change.uid)
