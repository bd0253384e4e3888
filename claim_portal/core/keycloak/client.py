"""Low-level HTTP client for Keycloak Admin API.

Handles service account authentication, token management, and HTTP operations.
"""
from __future__ import annotations
from typing import Optional, Dict
from datetime import datetime, timedelta

import requests

from .exceptions import KeycloakAPIError, ServiceAccountTokenError

REQUEST_TIMEOUT = 5


class KeycloakClient:
    """HTTP client for Keycloak Admin API with automatic token management.

    The service account token is fetched lazily on the first request and
    refreshed when it is about to expire.

    Usage:
        client = KeycloakClient("http://keycloak:8080", "demo", "automation-cli", "secret")
        response = client.get("/admin/realms/demo/users", params={"email": "a@b.com"})
    """

    def __init__(self, base_url: str, auth_realm: str, client_id: str, client_secret: str):
        self.base_url = base_url.rstrip("/")
        self.auth_realm = auth_realm
        self.client_id = client_id
        self.client_secret = client_secret
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        # Refresh if token missing, expired or expiring soon (within 10 seconds)
        if (
            not self._token
            or not self._token_expires_at
            or datetime.now() >= self._token_expires_at - timedelta(seconds=10)
        ):
            self._token, expires_in = self._get_service_account_token()
            self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def _headers(self, extra: Optional[Dict] = None) -> Dict[str, str]:
        self._ensure_authenticated()
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.get(f"{self.base_url}{path}", params=params, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.post(f"{self.base_url}{path}", json=json, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def put(self, path: str, json=None, **kwargs) -> requests.Response:
        """Execute PUT request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.put(f"{self.base_url}{path}", json=json, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def _get_service_account_token(self) -> tuple[str, int]:
        """Fetch a service account token using client credentials flow."""
        url = f"{self.base_url}/realms/{self.auth_realm}/protocol/openid-connect/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        resp = requests.post(url, data=data, timeout=REQUEST_TIMEOUT)
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
        try:
            payload = resp.json()
            token = payload["access_token"]
            # Conservative expiry: assume 60 seconds when the server omits it
            expires_in = int(payload.get("expires_in") or 60)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ServiceAccountTokenError(f"No access token in response from {url}") from exc
        return token, expires_in

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)
