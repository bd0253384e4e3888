"""Signed audit trail for first-login provisioning events.

Each event is one JSON line carrying an HMAC-SHA256 signature over its
canonical form, so edits to the file after the fact are detectable with
``python scripts/audit.py``.
"""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import os
import sys
from pathlib import Path
from typing import Any, Iterator, Literal

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "first-login-events.jsonl"

DEMO_SIGNING_KEY = "demo-audit-signing-key-change-in-production"

EventType = Literal[
    "first_login_provisioned",
    "first_login_refused",
    "first_login_race",
    "identity_bound",
    "reservation_created",
    "password_reset_requested",
]


def _signing_key_files() -> list[Path]:
    paths = []
    if os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE"):
        paths.append(Path(os.environ["AUDIT_LOG_SIGNING_KEY_FILE"]))
    paths.append(Path("/run/secrets/audit_log_signing_key"))
    paths.append(Path(".runtime/secrets/audit_log_signing_key"))
    return paths


def _get_signing_key() -> bytes:
    """Signing key from env, then secret files, then the demo default.

    Read on every call so a rotated key applies without a restart. An empty
    AUDIT_LOG_SIGNING_KEY disables signing.
    """
    if "AUDIT_LOG_SIGNING_KEY" in os.environ:
        return os.environ["AUDIT_LOG_SIGNING_KEY"].strip().encode("utf-8")
    for path in _signing_key_files():
        try:
            key = path.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if key:
            return key.encode("utf-8")
    return os.environ.get("AUDIT_LOG_SIGNING_KEY_DEMO", DEMO_SIGNING_KEY).encode("utf-8")


def _signature(event: dict[str, Any], key: bytes) -> str:
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append a signed event to the audit trail.

    Args:
        event_type: Kind of provisioning event
        subject: Email the event is about
        operator: Who performed the operation ("sign-in", "cli", ...)
        details: Additional context (record path, uid, ...)
        success: Whether the operation succeeded
    """
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)

    event: dict[str, Any] = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "subject": subject,
        "operator": operator,
        "success": success,
        "details": details or {},
    }
    key = _get_signing_key()
    if key:
        event["signature"] = _signature(event, key)

    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")
    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log an event; failures go to stderr so they never break sign-in.

    Returns:
        True if the event was written
    """
    try:
        log_event(event_type, subject, operator=operator, details=details, success=success)
        return True
    except Exception as e:
        print(f"[audit] Warning: Failed to log {event_type} event for {subject}: {e}", file=sys.stderr)
        return False


def iter_events() -> Iterator[tuple[int, dict[str, Any] | None]]:
    """Yield (line number, event) for each non-blank line; None for unreadable JSON."""
    if not AUDIT_LOG_FILE.exists():
        return
    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                yield lineno, None
                continue
            yield lineno, event if isinstance(event, dict) else None


def is_authentic(event: dict[str, Any] | None, key: bytes | None = None) -> bool:
    """True when the event carries a signature matching its content."""
    if not event or not event.get("signature"):
        return False
    key = _get_signing_key() if key is None else key
    unsigned = {name: value for name, value in event.items() if name != "signature"}
    return hmac.compare_digest(str(event["signature"]), _signature(unsigned, key))


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    key = _get_signing_key()
    results = [is_authentic(event, key) for _, event in iter_events()]
    return len(results), sum(results)


def invalid_lines() -> list[int]:
    """Line numbers whose event is unreadable or fails verification."""
    key = _get_signing_key()
    return [lineno for lineno, event in iter_events() if not is_authentic(event, key)]


if __name__ == "__main__":
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
