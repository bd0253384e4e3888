"""Tests for health check endpoints."""
import pytest
from flask import Flask

from claim_portal.api.health import bp as health_bp
from claim_portal.core.directory import NullDirectoryStore

from tests.conftest import InMemoryDirectoryStore


def _client(store):
    app = Flask(__name__)
    app.config["DIRECTORY_STORE"] = store
    app.register_blueprint(health_bp)
    return app.test_client()


def test_health_check():
    response = _client(None).get("/health")
    assert response.status_code == 200
    assert response.data == b"ok"
    assert response.content_type.startswith("text/plain")


@pytest.mark.parametrize(
    "store,directory",
    [(InMemoryDirectoryStore(), True), (NullDirectoryStore(), False), (None, False)],
)
def test_readiness_reports_directory(store, directory):
    response = _client(store).get("/ready")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ready", "directory": directory}
