"""Pytest shared fixtures."""
import os
import pathlib
import sys
import json

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("FLASK_SESSION_COOKIE_SECURE", "false")
os.environ.pop("FIRESTORE_PROJECT_ID", None)

import pytest
import requests

from claim_portal.core.directory import DirectoryStore
from claim_portal.core.errors import CredentialProviderError
from claim_portal.core.models import CollectionKind, CredentialIdentity, RecordRef, ReservationRecord
from claim_portal.core.provider import AuthStateChange, CredentialProvider
from scripts import audit


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Fail loudly on any HTTP call a test did not stub itself."""

    def _unexpected(method):
        def _stub(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _stub

    for method in ("get", "post", "put", "patch", "delete"):
        monkeypatch.setattr(requests, method, _unexpected(method.upper()))


@pytest.fixture(autouse=True)
def temp_audit_dir(monkeypatch, tmp_path):
    """Isolated audit directory for each test."""
    audit_dir = tmp_path / "audit"
    audit_file = audit_dir / "first-login-events.jsonl"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_file)
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    return audit_dir, audit_file


def read_audit_events(audit_file) -> list[dict]:
    if not audit_file.exists():
        return []
    return [json.loads(line) for line in audit_file.read_text().splitlines() if line.strip()]


# ─────────────────────────────────────────────────────────────────────────────
# Test Doubles
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, payload=None, status_code: int = 200, headers: dict | None = None, url: str = ""):
        self._payload = payload if payload is not None else {}
        self.status_code = status_code
        self.headers = headers or {}
        self.url = url
        self.text = json.dumps(self._payload)
        self.ok = status_code < 400

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


class InMemoryDirectoryStore(DirectoryStore):
    """Dict-backed directory store that records every call."""

    def __init__(self, available: bool = True):
        self.records: dict[RecordRef, ReservationRecord] = {}
        self.queries: list[tuple[CollectionKind, str, object]] = []
        self.updates: list[tuple[RecordRef, dict]] = []
        self._available = available
        self._next_id = 1
        self.fail_updates_with: Exception | None = None

    def add(self, kind: CollectionKind, fields: dict, record_id: str | None = None) -> ReservationRecord:
        record_id = record_id or f"rec{self._next_id}"
        self._next_id += 1
        record = ReservationRecord(kind, record_id, dict(fields))
        self.records[record.ref] = record
        return record

    def find_matches(self, kind, field, value, limit=None):
        self.queries.append((kind, field, value))
        if not self._available:
            return []
        matches = [
            ReservationRecord(record.kind, record.record_id, dict(record.fields))
            for record in self.records.values()
            if record.kind is kind and record.fields.get(field) == value
        ]
        return matches if limit is None else matches[:limit]

    def update(self, ref, fields):
        if self.fail_updates_with is not None:
            raise self.fail_updates_with
        if not self._available:
            return False
        self.updates.append((ref, dict(fields)))
        self.records[ref].fields.update(fields)
        return True

    def create(self, kind, fields):
        return self.add(kind, fields)

    @property
    def available(self) -> bool:
        return self._available


class FakeCredentialProvider(CredentialProvider):
    """Scripted provider: known accounts plus optional forced failures."""

    def __init__(self):
        super().__init__()
        self.accounts: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.authenticate_error: str | None = None
        self.create_error: str | None = None
        self.display_name_error: str | None = None
        self.reset_error: str | None = None
        self._next_uid = 1

    def add_account(self, email: str, password: str, uid: str | None = None, disabled: bool = False):
        uid = uid or f"uid-{self._next_uid}"
        self._next_uid += 1
        self.accounts[email.lower()] = {"uid": uid, "email": email, "password": password, "disabled": disabled}
        return uid

    def authenticate(self, email, password):
        self.calls.append(("authenticate", email))
        if self.authenticate_error:
            raise CredentialProviderError(self.authenticate_error)
        account = self.accounts.get(email.lower())
        if account is None:
            raise CredentialProviderError("auth/user-not-found")
        if account["disabled"]:
            raise CredentialProviderError("auth/user-disabled")
        if account["password"] != password:
            raise CredentialProviderError("auth/wrong-password")
        identity = CredentialIdentity(account["uid"], account["email"], account.get("display_name"))
        self._emit(AuthStateChange(identity.uid, identity))
        return identity

    def create_identity(self, email, password):
        self.calls.append(("create_identity", email))
        if self.create_error:
            raise CredentialProviderError(self.create_error)
        if email.lower() in self.accounts:
            raise CredentialProviderError("auth/email-already-in-use")
        uid = self.add_account(email, password)
        identity = CredentialIdentity(uid, email)
        self._emit(AuthStateChange(uid, identity))
        return identity

    def set_display_name(self, identity, name):
        self.calls.append(("set_display_name", identity.uid, name))
        if self.display_name_error:
            raise CredentialProviderError(self.display_name_error)
        self.accounts[identity.email.lower()]["display_name"] = name

    def send_password_reset(self, email):
        self.calls.append(("send_password_reset", email))
        if self.reset_error:
            raise CredentialProviderError(self.reset_error)
        if email.lower() not in self.accounts:
            raise CredentialProviderError("auth/user-not-found")

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture()
def store():
    return InMemoryDirectoryStore()


@pytest.fixture()
def provider():
    return FakeCredentialProvider()


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_config():
    from claim_portal.config import load_settings
    return load_settings()


@pytest.fixture()
def flask_app(app_config, provider, store):
    from claim_portal.flask_app import create_app
    flask_app = create_app(app_config, provider=provider, store=store)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(flask_app):
    with flask_app.test_client() as client:
        yield client


def get_csrf_token(client) -> str:
    """Fetch the CSRF token handed out by GET /login."""
    return client.get("/login").get_json()["csrf_token"]


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "critical: marks tests as critical security tests (P0 priority)"
    )
