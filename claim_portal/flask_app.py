"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import hmac
import os
import secrets
from tempfile import gettempdir

from flask import Flask, session, request, g, abort
from flask_session import Session
from werkzeug.middleware.proxy_fix import ProxyFix

from claim_portal.config import AppConfig, load_settings
from claim_portal.core.directory import DirectoryStore, build_directory_store
from claim_portal.core.keycloak import build_credential_provider
from claim_portal.core.orchestrator import SignInOrchestrator
from claim_portal.core.provider import CredentialProvider
from claim_portal.core.session_context import SessionContext

CSRF_SESSION_KEY = "_csrf_token"


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: AppConfig | None = None,
    provider: CredentialProvider | None = None,
    store: DirectoryStore | None = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings (loaded from the environment when omitted)
        provider: Credential provider (Keycloak when omitted)
        store: Directory store (Firestore or null store when omitted)
    """
    # Load configuration
    cfg = cfg or load_settings()

    # Create Flask app
    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["DEMO_MODE"] = cfg.demo_mode

    # Flask session configuration
    app.config["SECRET_KEY"] = cfg.secret_key

    app.config["SESSION_TYPE"] = os.environ.get("FLASK_SESSION_TYPE", "filesystem")
    if app.config["SESSION_TYPE"] == "filesystem":
        session_dir = os.environ.get("FLASK_SESSION_DIR") or os.path.join(gettempdir(), "claim_portal_flask_session")
        os.makedirs(session_dir, exist_ok=True)
        app.config["SESSION_FILE_DIR"] = session_dir

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = cfg.session_cookie_secure
    app.config["CSRF_SESSION_KEY"] = CSRF_SESSION_KEY

    # Initialize session
    Session(app)

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Wire services
    store = store if store is not None else build_directory_store(cfg)
    provider = provider if provider is not None else build_credential_provider(cfg)
    session_context = SessionContext(
        store,
        fallback_admin_email=cfg.fallback_admin_email,
        max_entries=cfg.session_context_max_entries,
    )
    session_context.attach(provider)

    app.config["DIRECTORY_STORE"] = store
    app.config["CREDENTIAL_PROVIDER"] = provider
    app.config["SESSION_CONTEXT"] = session_context
    app.config["ORCHESTRATOR"] = SignInOrchestrator(
        provider,
        store,
        session_context,
        locale=cfg.message_locale,
    )

    # Register blueprints
    from claim_portal.api import auth, errors, health

    app.register_blueprint(auth.bp)
    app.register_blueprint(health.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    # Register middleware/before_request handlers
    _register_middleware(app)

    # Log startup info
    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] Directory store available={store.available}")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")

    return app


def _register_middleware(app: Flask):
    """Register before_request middleware."""

    @app.before_request
    def ensure_csrf_token() -> None:
        g.csrf_token = _generate_csrf_token()

    @app.before_request
    def enforce_csrf() -> None:
        """Validate CSRF token for state-changing requests."""
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return

        submitted_token = (
            request.form.get("csrf_token")
            if not request.is_json
            else request.headers.get("X-CSRF-Token", "")
        )
        if not submitted_token:
            submitted_token = request.headers.get("X-CSRF-Token", "")

        csrf_session_key = app.config["CSRF_SESSION_KEY"]
        session_token = session.get(csrf_session_key, "")

        if not session_token or not submitted_token or not hmac.compare_digest(session_token, submitted_token):
            abort(400, description="CSRF validation failed")


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────
def _generate_csrf_token() -> str:
    """Generate or retrieve CSRF token for current session."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
