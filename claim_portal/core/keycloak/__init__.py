"""Keycloak credential provider package.

Architecture:
- client.py: Admin API HTTP client with service account auto-refresh
- provider.py: CredentialProvider implementation (password grant + Admin API)
- exceptions.py: Typed exceptions for error handling

Usage:
    from claim_portal.core.keycloak import build_credential_provider

    provider = build_credential_provider(cfg)
    identity = provider.authenticate("jane@example.com", "secret1")
"""
from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import KeycloakError, KeycloakAPIError, MalformedResponseError, ServiceAccountTokenError
from .provider import KeycloakCredentialProvider


def build_credential_provider(cfg) -> KeycloakCredentialProvider:
    """Create the Keycloak provider from application settings."""
    admin_client = KeycloakClient(
        cfg.keycloak_url,
        cfg.keycloak_service_realm,
        cfg.keycloak_service_client_id,
        cfg.service_client_secret_resolved,
    )
    return KeycloakCredentialProvider(
        cfg.keycloak_url,
        cfg.keycloak_realm,
        cfg.oidc_client_id,
        admin_client,
        client_secret=cfg.oidc_client_secret,
    )


__all__ = [
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "KeycloakError",
    "KeycloakAPIError",
    "MalformedResponseError",
    "ServiceAccountTokenError",
    "KeycloakCredentialProvider",
    "build_credential_provider",
]
