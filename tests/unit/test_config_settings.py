import os

import pytest

from claim_portal.config import settings
from claim_portal.config.settings import _get_or_generate


def make_config(**overrides):
    base = dict(
        demo_mode=False,
        secret_key="secret",
        session_cookie_secure=True,
        keycloak_url="https://localhost",
        keycloak_realm="demo",
        keycloak_service_realm="demo",
        oidc_client_id="claim-portal",
        oidc_client_secret="",
        keycloak_service_client_id="automation-cli",
        keycloak_service_client_secret="",
    )
    base.update(overrides)
    return settings.AppConfig(**base)


@pytest.fixture()
def empty_run_secrets(monkeypatch, tmp_path):
    real_path = settings.Path

    def fake_path(target):
        if str(target) == "/run/secrets":
            return tmp_path
        return real_path(target)

    monkeypatch.setattr(settings, "Path", fake_path)
    return tmp_path


def test_service_client_secret_demo_mode():
    cfg = make_config(demo_mode=True)
    assert cfg.service_client_secret_resolved == "demo-service-secret"


def test_service_client_secret_prefers_config_value():
    cfg = make_config(keycloak_service_client_secret="from-config")
    assert cfg.service_client_secret_resolved == "from-config"


def test_service_client_secret_reads_from_run_secrets(empty_run_secrets):
    (empty_run_secrets / "keycloak_service_client_secret").write_text("file-secret")
    cfg = make_config()
    assert cfg.service_client_secret_resolved == "file-secret"


def test_service_client_secret_falls_back_to_env(monkeypatch, empty_run_secrets):
    monkeypatch.setenv("KEYCLOAK_SERVICE_CLIENT_SECRET", "env-secret")
    cfg = make_config()
    assert cfg.service_client_secret_resolved == "env-secret"


def test_service_client_secret_raises_when_missing(monkeypatch, empty_run_secrets):
    monkeypatch.delenv("KEYCLOAK_SERVICE_CLIENT_SECRET", raising=False)
    cfg = make_config()
    with pytest.raises(ValueError):
        _ = cfg.service_client_secret_resolved


def test_directory_configured_follows_project_id():
    assert make_config().directory_configured is False
    assert make_config(firestore_project_id="proj").directory_configured is True


def test_get_or_generate_uses_demo_default(monkeypatch):
    monkeypatch.delenv("SAMPLE_VAR", raising=False)
    value = _get_or_generate("SAMPLE_VAR", demo_default="demo", demo_mode=True)
    assert value == "demo"
    assert os.environ["SAMPLE_VAR"] == "demo"


def test_get_or_generate_optional(monkeypatch):
    monkeypatch.delenv("OPTIONAL_VAR", raising=False)
    assert _get_or_generate("OPTIONAL_VAR", required=False) == ""


def test_get_or_generate_missing_required(monkeypatch):
    monkeypatch.delenv("REQUIRED_VAR", raising=False)
    with pytest.raises(RuntimeError):
        _get_or_generate("REQUIRED_VAR", required=True, demo_mode=False)


def test_load_settings_demo_mode_generates_defaults(monkeypatch):
    monkeypatch.setattr(settings, "_load_secret_from_file", lambda name, env_var=None: None)
    monkeypatch.setenv("DEMO_MODE", "true")
    for var in ("FLASK_SECRET_KEY", "KEYCLOAK_URL", "OIDC_CLIENT_ID", "KEYCLOAK_SERVICE_CLIENT_ID",
                "FIRESTORE_PROJECT_ID", "LOGIN_MESSAGE_LOCALE", "FALLBACK_ADMIN_EMAIL"):
        monkeypatch.delenv(var, raising=False)

    cfg = settings.load_settings()

    assert cfg.demo_mode is True
    assert cfg.secret_key
    assert cfg.keycloak_url == "http://127.0.0.1:8080"
    assert cfg.oidc_client_id == "claim-portal"
    assert cfg.directory_configured is False
    assert cfg.staff_collection == "staff"
    assert cfg.customer_collection == "customers"
    assert cfg.message_locale == "en"


def test_load_settings_reads_directory_and_locale(monkeypatch):
    monkeypatch.setattr(settings, "_load_secret_from_file", lambda name, env_var=None: None)
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("FIRESTORE_PROJECT_ID", "proj")
    monkeypatch.setenv("FIRESTORE_CREDENTIALS_FILE", "/run/secrets/firestore-sa.json")
    monkeypatch.setenv("RESERVATION_CUSTOMER_COLLECTION", "clientes")
    monkeypatch.setenv("LOGIN_MESSAGE_LOCALE", "ES")
    monkeypatch.setenv("FALLBACK_ADMIN_EMAIL", " Owner@X.com ")
    monkeypatch.setenv("SESSION_CONTEXT_MAX_ENTRIES", "250")

    cfg = settings.load_settings()

    assert cfg.firestore_project_id == "proj"
    assert cfg.firestore_credentials_file == "/run/secrets/firestore-sa.json"
    assert cfg.customer_collection == "clientes"
    assert cfg.message_locale == "es"
    assert cfg.fallback_admin_email == "owner@x.com"
    assert cfg.session_context_max_entries == 250


def test_load_settings_production_requires_secret_key(monkeypatch):
    monkeypatch.setattr(settings, "_load_secret_from_file", lambda name, env_var=None: None)
    monkeypatch.setenv("DEMO_MODE", "false")

    with pytest.raises(RuntimeError, match="FLASK_SECRET_KEY"):
        settings.load_settings()
