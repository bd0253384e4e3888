"""Administrator CLI for reservations.

Creates the personnel records that allow a first sign-in, looks them up the
way the sign-in flow does, and verifies the audit trail.
"""
from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from claim_portal.config import load_settings
from claim_portal.core.directory import DirectoryStore, build_directory_store
from claim_portal.core.errors import DirectoryStoreError
from claim_portal.core.locator import find_reservation
from claim_portal.core.models import (
    DISPLAY_NAME_FIELD,
    EMAIL_FIELD,
    EMAIL_LOWER_FIELD,
    ROLE_FIELD,
    CollectionKind,
    Role,
)
from claim_portal.core.validators import validate_email, validate_name
from scripts import audit


def build_reservation_fields(email: str, name: str, last_name: str | None = None, role: str | None = None) -> dict:
    """Validate inputs and return the fields of a new reservation."""
    email = validate_email(email)
    fields = {
        EMAIL_FIELD: email,
        EMAIL_LOWER_FIELD: email.lower(),
        DISPLAY_NAME_FIELD: validate_name(name, "Name"),
    }
    if last_name:
        fields["lastName"] = validate_name(last_name, "Last name")
    if role:
        fields[ROLE_FIELD] = role
    return fields


def reserve(store: DirectoryStore, kind: CollectionKind, fields: dict, operator: str = "cli"):
    """Create a reservation unless an unclaimed one already exists for the email."""
    existing = find_reservation(store, fields[EMAIL_FIELD])
    if existing is not None:
        print(f"[reserve] Reservation already exists: {existing.ref.path}", file=sys.stderr)
        return existing

    record = store.create(kind, fields)
    audit.safe_log_event(
        "reservation_created",
        fields[EMAIL_FIELD],
        operator=operator,
        details={"record": record.ref.path, "role": fields.get(ROLE_FIELD)},
    )
    print(f"[reserve] Created {record.ref.path} for {fields[EMAIL_FIELD]}")
    return record


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Reservation helper for first-login provisioning")
    parser.add_argument("--operator", default="cli",
                        help="Operator identifier for audit logs (default: cli)")

    sub = parser.add_subparsers(dest="cmd")

    sr = sub.add_parser("reserve")
    sr.add_argument("--kind", choices=[k.value for k in CollectionKind], default=CollectionKind.STAFF.value)
    sr.add_argument("--email", required=True)
    sr.add_argument("--name", required=True)
    sr.add_argument("--last-name")
    sr.add_argument("--role", choices=[r.value for r in Role])

    sl = sub.add_parser("lookup")
    sl.add_argument("--email", required=True)

    sub.add_parser("verify-audit")

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    if args.cmd == "verify-audit":
        total, valid = audit.verify_audit_log()
        print(f"Audit log: {valid}/{total} events with valid signatures")
        for lineno in audit.invalid_lines():
            print(f"[reserve] Line {lineno} failed verification", file=sys.stderr)
        return 0 if total == valid else 1

    store = build_directory_store(load_settings())
    if not store.available:
        print("[reserve] Directory store is not configured (set FIRESTORE_PROJECT_ID)", file=sys.stderr)
        return 2

    try:
        if args.cmd == "reserve":
            try:
                fields = build_reservation_fields(args.email, args.name, args.last_name, args.role)
            except ValueError as exc:
                parser.error(str(exc))
            reserve(store, CollectionKind(args.kind), fields, operator=args.operator)
            return 0

        if args.cmd == "lookup":
            record = find_reservation(store, args.email.strip())
            if record is None:
                print(f"[reserve] No unclaimed reservation for {args.email}", file=sys.stderr)
                return 1
            print(json.dumps({"record": record.ref.path, "fields": record.fields}, indent=2, default=str))
            return 0
    except DirectoryStoreError as exc:
        print(f"[reserve] Directory error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
