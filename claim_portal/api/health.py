"""Health check endpoints."""
from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check: reports whether reservations can be looked up."""
    store = current_app.config.get("DIRECTORY_STORE")
    directory_ready = bool(store is not None and store.available)
    return jsonify({"status": "ready", "directory": directory_ready}), 200
