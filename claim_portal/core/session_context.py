"""Process-wide observable session context.

The credential provider's auth-state stream is the only writer. Readers
(the orchestrator, HTTP routes) take snapshots or subscribe to changes.
"""
from __future__ import annotations
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .binder import derive_display_name
from .directory import DirectoryStore
from .errors import DirectoryStoreError
from .models import (
    CollectionKind,
    CredentialIdentity,
    EMAIL_FIELD,
    EMAIL_LOWER_FIELD,
    ROLE_FIELD,
    Role,
    UID_FIELD,
)
from .provider import AuthStateChange, CredentialProvider

logger = logging.getLogger(__name__)

ADMIN_ROLE_ALIASES = {"admin", "administrador", "administrator"}
STAFF_ROLE_ALIASES = {"staff", "barbero", "barberos"}
CUSTOMER_ROLE_ALIASES = {"customer", "customers", "cliente", "client"}

DEFAULT_MAX_ENTRIES = 1000

HOME_PATHS = {
    Role.ADMIN: "/admin/users",
    Role.STAFF: "/clients",
    Role.CUSTOMER: "/clients",
}


def normalize_role(value: Any) -> Optional[Role]:
    """Map a free-form role value onto Role, or None when unrecognized."""
    if not value:
        return None
    normalized = str(value).strip().lower()
    if not normalized:
        return None
    if normalized in ADMIN_ROLE_ALIASES:
        return Role.ADMIN
    if normalized in STAFF_ROLE_ALIASES or normalized.startswith("barber"):
        return Role.STAFF
    if normalized in CUSTOMER_ROLE_ALIASES:
        return Role.CUSTOMER
    return None


def role_from_record(fields: Optional[Mapping[str, Any]], kind: Optional[CollectionKind]) -> Optional[Role]:
    role = normalize_role((fields or {}).get(ROLE_FIELD))
    if role:
        return role
    if kind is CollectionKind.STAFF and fields:
        return Role.STAFF
    return None


def home_path_for(role: Optional[Role]) -> str:
    return HOME_PATHS.get(role, HOME_PATHS[Role.STAFF])


@dataclass(frozen=True)
class ResolvedProfile:
    role: Optional[Role] = None
    display_name: Optional[str] = None


def resolve_profile(store: DirectoryStore, uid: str, email: Optional[str]) -> ResolvedProfile:
    """Resolve role and profile name from the directory records linked to a user.

    The first role and first name found win; an admin record ends the search.
    """
    lookups: list[tuple[CollectionKind, str, str]] = [
        (CollectionKind.CUSTOMER, UID_FIELD, uid),
        (CollectionKind.STAFF, UID_FIELD, uid),
    ]
    normalized_email = (email or "").strip().lower()
    if normalized_email:
        lookups.extend([
            (CollectionKind.CUSTOMER, EMAIL_FIELD, normalized_email),
            (CollectionKind.CUSTOMER, EMAIL_LOWER_FIELD, normalized_email),
            (CollectionKind.STAFF, EMAIL_FIELD, normalized_email),
            (CollectionKind.STAFF, EMAIL_LOWER_FIELD, normalized_email),
        ])

    role: Optional[Role] = None
    name: Optional[str] = None
    for kind, field, value in lookups:
        record = store.find_one(kind, field, value)
        if record is None:
            continue
        candidate_role = role_from_record(record.fields, record.kind)
        candidate_name = derive_display_name(record.fields, collapse_surname=True)
        if candidate_role is Role.ADMIN:
            return ResolvedProfile(Role.ADMIN, candidate_name or name)
        role = role or candidate_role
        name = name or candidate_name
    return ResolvedProfile(role, name)


@dataclass(frozen=True)
class SessionState:
    identity: Optional[CredentialIdentity] = None
    role: Optional[Role] = None
    profile_name: Optional[str] = None
    loading: bool = False

    @property
    def signed_in(self) -> bool:
        return self.identity is not None


SessionListener = Callable[[str, SessionState], None]


class SessionContext:
    """Signed-in users' role and profile name, keyed by uid.

    Usage:
        context = SessionContext(store)
        context.attach(provider)
        unsubscribe = context.subscribe(lambda uid, state: ...)
        context.snapshot(uid).role
    """

    def __init__(
        self,
        store: DirectoryStore,
        fallback_admin_email: str = "",
        default_role: Role = Role.STAFF,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.store = store
        self.fallback_admin_email = (fallback_admin_email or "").strip().lower()
        self.default_role = default_role
        self.max_entries = max(1, max_entries)
        # Least recently published first; sessions that expire without a
        # sign-out age out once max_entries is reached
        self._states: OrderedDict[str, SessionState] = OrderedDict()
        self._listeners: list[SessionListener] = []
        self._lock = threading.Lock()
        self._detach: Optional[Callable[[], None]] = None

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────
    def attach(self, provider: CredentialProvider) -> None:
        """Start following the provider's auth-state stream."""
        self.detach()
        self._detach = provider.on_auth_state_changed(self._on_auth_state_changed)

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ─────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────
    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def snapshot(self, uid: Optional[str]) -> SessionState:
        if not uid:
            return SessionState()
        with self._lock:
            return self._states.get(uid, SessionState())

    # ─────────────────────────────────────────────────────────────────────
    # Provider stream
    # ─────────────────────────────────────────────────────────────────────
    def _on_auth_state_changed(self, change: AuthStateChange) -> None:
        if not change.signed_in:
            self._publish(change.uid, None)
            return
        identity = change.identity
        self._publish(change.uid, SessionState(identity=identity, loading=True))
        self._publish(change.uid, self._resolve_state(identity))

    def _resolve_state(self, identity: CredentialIdentity) -> SessionState:
        fallback_role = Role.ADMIN if (
            self.fallback_admin_email and identity.email.strip().lower() == self.fallback_admin_email
        ) else None
        try:
            profile = resolve_profile(self.store, identity.uid, identity.email)
        except DirectoryStoreError as exc:
            logger.error("Could not resolve profile for uid=%s: %s", identity.uid, exc)
            profile = ResolvedProfile()
        role = profile.role or fallback_role or self.default_role
        profile_name = profile.display_name or identity.display_name or identity.email or None
        return SessionState(identity=identity, role=role, profile_name=profile_name, loading=False)

    def _publish(self, uid: str, state: Optional[SessionState]) -> None:
        with self._lock:
            if state is None:
                self._states.pop(uid, None)
            else:
                self._states[uid] = state
                self._states.move_to_end(uid)
                while len(self._states) > self.max_entries:
                    evicted, _ = self._states.popitem(last=False)
                    logger.info("Session context full; dropped uid=%s", evicted)
            listeners = list(self._listeners)
        published = state or SessionState()
        for listener in listeners:
            try:
                listener(uid, published)
            except Exception:
                logger.exception("Session listener failed for uid=%s", uid)
