"""Keycloak Admin API failures raised by KeycloakClient."""


class KeycloakError(Exception):
    """Base exception for Keycloak Admin API calls."""


class KeycloakAPIError(KeycloakError):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")

    @property
    def is_conflict(self) -> bool:
        """Username or email already taken (user creation)."""
        return self.status_code == 409


class ServiceAccountTokenError(KeycloakError):
    """The client-credentials grant returned no usable access token."""


class MalformedResponseError(KeycloakError):
    """An Admin API response body is not the JSON shape expected."""

    def __init__(self, endpoint: str, detail: str):
        self.endpoint = endpoint
        super().__init__(f"{endpoint}: {detail}")
