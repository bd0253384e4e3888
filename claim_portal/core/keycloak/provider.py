"""Keycloak-backed credential provider.

End-user sign-in uses the OAuth2 password grant (authlib OAuth2Session) and
the userinfo endpoint; account creation, profile updates and reset emails go
through the Admin API with a service account (KeycloakClient).
"""
from __future__ import annotations
import logging
from typing import Optional

import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.requests_client import OAuth2Session

from ..errors import CredentialProviderError
from ..models import CredentialIdentity
from ..provider import AuthStateChange, CredentialProvider
from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import KeycloakError, KeycloakAPIError, MalformedResponseError

logger = logging.getLogger(__name__)

# Keycloak error_description values for invalid_grant
_DISABLED_DESCRIPTIONS = {
    "account disabled": "auth/user-disabled",
    "account temporarily disabled": "auth/too-many-requests",
}
_INVALID_CREDENTIALS_DESCRIPTION = "invalid user credentials"

# Anything an Admin API call can raise once responses are parsed through _json()
_ADMIN_FAILURES = (KeycloakError, requests.RequestException)


class KeycloakCredentialProvider(CredentialProvider):
    """Credential provider for a single Keycloak realm.

    Keycloak answers ``invalid_grant`` for both unknown users and wrong
    passwords; an exact email lookup through the Admin API tells them apart.
    """

    def __init__(
        self,
        server_url: str,
        realm: str,
        client_id: str,
        admin_client: KeycloakClient,
        client_secret: Optional[str] = None,
    ):
        super().__init__()
        self.server_url = server_url.rstrip("/")
        self.realm = realm
        self.client_id = client_id
        self.client_secret = client_secret or None
        self.admin = admin_client

    @property
    def token_endpoint(self) -> str:
        return f"{self.server_url}/realms/{self.realm}/protocol/openid-connect/token"

    @property
    def userinfo_endpoint(self) -> str:
        return f"{self.server_url}/realms/{self.realm}/protocol/openid-connect/userinfo"

    @property
    def users_path(self) -> str:
        return f"/admin/realms/{self.realm}/users"

    # ─────────────────────────────────────────────────────────────────────
    # Capabilities
    # ─────────────────────────────────────────────────────────────────────
    def authenticate(self, email: str, password: str) -> CredentialIdentity:
        identity = self._password_grant(email, password)
        self._emit(AuthStateChange(identity.uid, identity))
        return identity

    def create_identity(self, email: str, password: str) -> CredentialIdentity:
        """Create an enabled user with a permanent password, then sign it in."""
        payload = {
            "username": email.lower(),
            "email": email,
            "enabled": True,
            "emailVerified": False,
            "credentials": [{"type": "password", "value": password, "temporary": False}],
        }
        try:
            resp = self.admin.post(self.users_path, json=payload)
        except KeycloakAPIError as exc:
            if exc.is_conflict:
                raise CredentialProviderError("auth/email-already-in-use", exc.message) from exc
            raise self._admin_error(exc) from exc
        except _ADMIN_FAILURES as exc:
            raise self._admin_error(exc) from exc

        location = str(resp.headers.get("Location") or "")
        uid = location.rstrip("/").rsplit("/", 1)[-1] if location else ""
        if not uid:
            user = self._find_user(email)
            uid = str(user.get("id") or "") if user else ""
        if not uid:
            raise CredentialProviderError("auth/internal-error", f"Created user for {email} could not be resolved")
        logger.info("Created Keycloak user %s for %s", uid, email)

        try:
            identity = self._password_grant(email, password)
        except CredentialProviderError as exc:
            logger.warning("User %s created but initial sign-in failed: %s", uid, exc)
            return CredentialIdentity(uid=uid, email=email)
        self._emit(AuthStateChange(identity.uid, identity))
        return identity

    def set_display_name(self, identity: CredentialIdentity, name: str) -> None:
        """Store the display name as firstName/lastName (split on the first space)."""
        first, _, last = name.strip().partition(" ")
        path = f"{self.users_path}/{identity.uid}"
        try:
            user_rep = self._json(self.admin.get(path), dict, path)
            user_rep["firstName"] = first
            user_rep["lastName"] = last.strip()
            self.admin.put(path, json=user_rep)
        except _ADMIN_FAILURES as exc:
            raise self._admin_error(exc) from exc

    def send_password_reset(self, email: str) -> None:
        user = self._find_user(email)
        if user is None:
            raise CredentialProviderError("auth/user-not-found")
        if not user.get("enabled", True):
            raise CredentialProviderError("auth/user-disabled")
        user_id = user.get("id")
        if not user_id:
            raise CredentialProviderError("auth/internal-error", f"User record for {email} has no id")
        try:
            self.admin.put(f"{self.users_path}/{user_id}/execute-actions-email", json=["UPDATE_PASSWORD"])
        except _ADMIN_FAILURES as exc:
            raise self._admin_error(exc) from exc

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────
    def _oauth_session(self) -> OAuth2Session:
        return OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_endpoint_auth_method="client_secret_post" if self.client_secret else "none",
            scope="openid profile email",
        )

    def _password_grant(self, email: str, password: str) -> CredentialIdentity:
        """Exchange email/password for tokens and resolve the identity from userinfo."""
        session = self._oauth_session()
        try:
            session.fetch_token(
                self.token_endpoint,
                grant_type="password",
                username=email,
                password=password,
                timeout=REQUEST_TIMEOUT,
            )
            resp = session.get(self.userinfo_endpoint, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            info = resp.json()
        except OAuthError as exc:
            raise CredentialProviderError(self._grant_error_code(email, exc), exc.description) from exc
        except requests.HTTPError as exc:
            raise CredentialProviderError("auth/internal-error", str(exc)) from exc
        except (requests.RequestException, ValueError) as exc:
            raise CredentialProviderError("auth/network-request-failed", str(exc)) from exc
        finally:
            session.close()

        uid = info.get("sub")
        if not uid:
            raise CredentialProviderError("auth/internal-error", "userinfo response has no subject")
        return CredentialIdentity(
            uid=uid,
            email=info.get("email") or email,
            display_name=info.get("name") or None,
        )

    def _grant_error_code(self, email: str, exc: OAuthError) -> str:
        """Translate a Keycloak token-endpoint error into an ``auth/`` code."""
        if exc.error != "invalid_grant":
            return "auth/internal-error"
        description = (exc.description or "").strip().lower()
        if description in _DISABLED_DESCRIPTIONS:
            return _DISABLED_DESCRIPTIONS[description]
        if description != _INVALID_CREDENTIALS_DESCRIPTION:
            return "auth/invalid-credential"
        try:
            user = self._find_user(email)
        except CredentialProviderError:
            logger.warning("Could not disambiguate failed sign-in for %s", email)
            return "auth/invalid-credential"
        return "auth/wrong-password" if user else "auth/user-not-found"

    def _find_user(self, email: str) -> Optional[dict]:
        """Return the user whose email matches exactly (case-insensitive), or None."""
        try:
            resp = self.admin.get(self.users_path, params={"email": email, "exact": "true"})
            users = self._json(resp, list, self.users_path)
        except _ADMIN_FAILURES as exc:
            raise self._admin_error(exc) from exc
        target = email.strip().lower()
        for user in users:
            if isinstance(user, dict) and str(user.get("email") or "").lower() == target:
                return user
        return None

    @staticmethod
    def _json(resp: requests.Response, expected: type, endpoint: str):
        """Parse an Admin API body, requiring the given JSON container type."""
        try:
            body = resp.json()
        except ValueError as exc:
            raise MalformedResponseError(endpoint, "response is not JSON") from exc
        if not isinstance(body, expected):
            raise MalformedResponseError(endpoint, f"expected a JSON {expected.__name__}")
        return body

    @staticmethod
    def _admin_error(exc: Exception) -> CredentialProviderError:
        """Map an Admin API failure to an opaque ``auth/`` code."""
        if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
            return CredentialProviderError("auth/network-request-failed", str(exc))
        return CredentialProviderError("auth/internal-error", str(exc))
