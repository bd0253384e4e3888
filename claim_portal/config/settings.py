"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Flask
    secret_key: str
    session_cookie_secure: bool = True

    # Keycloak (credential provider)
    keycloak_url: str = ""
    keycloak_realm: str = "demo"
    keycloak_service_realm: str = "demo"

    # OIDC client used for the password grant
    oidc_client_id: str = "claim-portal"
    oidc_client_secret: str = ""

    # Service account (admin operations)
    keycloak_service_client_id: str = "automation-cli"
    keycloak_service_client_secret: str = ""

    # Firestore (directory store)
    firestore_project_id: str = ""
    firestore_database: str = "(default)"
    firestore_credentials_file: str = ""

    # Reservations
    staff_collection: str = "staff"
    customer_collection: str = "customers"
    fallback_admin_email: str = ""
    session_context_max_entries: int = 1000

    # Messages
    message_locale: str = "en"

    @property
    def directory_configured(self) -> bool:
        """True when a Firestore project is configured for reservations."""
        return bool(self.firestore_project_id)

    @property
    def service_client_secret_resolved(self) -> str:
        """Get Keycloak service account client secret with smart fallback.

        Priority:
        1. Demo mode: hardcoded "demo-service-secret"
        2. Configured value in keycloak_service_client_secret
        3. Docker secrets: /run/secrets/keycloak_service_client_secret
        4. Environment variable: KEYCLOAK_SERVICE_CLIENT_SECRET

        Raises:
            ValueError: If secret not found in production mode
        """
        if self.demo_mode:
            return "demo-service-secret"

        if self.keycloak_service_client_secret:
            return self.keycloak_service_client_secret

        for secret_name in ["keycloak_service_client_secret", "keycloak-service-client-secret"]:
            secret_path = Path("/run/secrets") / secret_name
            if secret_path.exists():
                secret = secret_path.read_text().strip()
                if secret:
                    return secret

        secret = os.environ.get("KEYCLOAK_SERVICE_CLIENT_SECRET")
        if secret:
            return secret

        raise ValueError(
            "KEYCLOAK_SERVICE_CLIENT_SECRET not found. "
            "Set DEMO_MODE=true or provide secret via Docker secrets or environment variable."
        )


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        os.environ[var_name] = demo_default
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if demo_mode:
            secret_key = secrets.token_urlsafe(48)
            os.environ["FLASK_SECRET_KEY"] = secret_key
            print("[demo-mode] Generated temporary FLASK_SECRET_KEY")
        else:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")

    session_secure_str = os.environ.get("FLASK_SESSION_COOKIE_SECURE")
    session_cookie_secure = (session_secure_str or "true").lower() == "true"

    # Keycloak
    keycloak_url = _get_or_generate(
        "KEYCLOAK_URL",
        demo_default="http://127.0.0.1:8080",
        demo_mode=demo_mode,
    ).rstrip("/")
    keycloak_realm = os.environ.get("KEYCLOAK_REALM", "demo")
    keycloak_service_realm = os.environ.get("KEYCLOAK_SERVICE_REALM", keycloak_realm)

    oidc_client_id = _get_or_generate("OIDC_CLIENT_ID", demo_default="claim-portal", demo_mode=demo_mode)
    oidc_client_secret = _load_secret_from_file("oidc_client_secret", "OIDC_CLIENT_SECRET") or ""

    keycloak_service_client_id = _get_or_generate(
        "KEYCLOAK_SERVICE_CLIENT_ID",
        demo_default="automation-cli",
        demo_mode=demo_mode,
    )
    keycloak_service_client_secret = _load_secret_from_file(
        "keycloak_service_client_secret",
        "KEYCLOAK_SERVICE_CLIENT_SECRET",
    ) or ""
    if not keycloak_service_client_secret and not demo_mode:
        raise RuntimeError("KEYCLOAK_SERVICE_CLIENT_SECRET not found in /run/secrets or environment")

    # Firestore: an empty project id leaves the directory unconfigured
    firestore_project_id = os.environ.get("FIRESTORE_PROJECT_ID", "").strip()
    firestore_database = os.environ.get("FIRESTORE_DATABASE", "(default)").strip() or "(default)"
    # Service-account key file; empty falls back to Application Default Credentials
    firestore_credentials_file = (
        os.environ.get("FIRESTORE_CREDENTIALS_FILE")
        or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        or ""
    ).strip()

    staff_collection = os.environ.get("RESERVATION_STAFF_COLLECTION", "staff").strip() or "staff"
    customer_collection = os.environ.get("RESERVATION_CUSTOMER_COLLECTION", "customers").strip() or "customers"
    fallback_admin_email = os.environ.get("FALLBACK_ADMIN_EMAIL", "").strip().lower()
    session_context_max_entries = int(os.environ.get("SESSION_CONTEXT_MAX_ENTRIES", "1000"))

    message_locale = os.environ.get("LOGIN_MESSAGE_LOCALE", "en").strip().lower() or "en"

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    directory_label = firestore_project_id or "unconfigured"
    print(f"[settings] Mode={mode_label}; realm={keycloak_realm}; client_id={oidc_client_id}; directory={directory_label}")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        secret_key=secret_key,
        session_cookie_secure=session_cookie_secure,
        keycloak_url=keycloak_url,
        keycloak_realm=keycloak_realm,
        keycloak_service_realm=keycloak_service_realm,
        oidc_client_id=oidc_client_id,
        oidc_client_secret=oidc_client_secret,
        keycloak_service_client_id=keycloak_service_client_id,
        keycloak_service_client_secret=keycloak_service_client_secret,
        firestore_project_id=firestore_project_id,
        firestore_database=firestore_database,
        firestore_credentials_file=firestore_credentials_file,
        staff_collection=staff_collection,
        customer_collection=customer_collection,
        fallback_admin_email=fallback_admin_email,
        session_context_max_entries=session_context_max_entries,
        message_locale=message_locale,
    )
