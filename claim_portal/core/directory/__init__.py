"""Directory store (reservation records) package.

Architecture:
- base.py: DirectoryStore interface and NullDirectoryStore
- firestore.py: Cloud Firestore implementation (google-cloud-firestore)

Usage:
    from claim_portal.core.directory import build_directory_store

    store = build_directory_store(cfg)
    record = store.find_one(CollectionKind.STAFF, "emailLower", "jane@x.com")
"""
from __future__ import annotations

from ..models import CollectionKind
from .base import DirectoryStore, NullDirectoryStore
from .firestore import FirestoreDirectoryStore, get_firestore_client


def build_directory_store(cfg) -> DirectoryStore:
    """Return the configured directory store, or a NullDirectoryStore."""
    if not cfg.directory_configured:
        print("[directory] FIRESTORE_PROJECT_ID not set; reservations lookups will miss")
        return NullDirectoryStore()
    return FirestoreDirectoryStore(
        cfg.firestore_project_id,
        {
            CollectionKind.STAFF: cfg.staff_collection,
            CollectionKind.CUSTOMER: cfg.customer_collection,
        },
        database=cfg.firestore_database,
        credentials_file=cfg.firestore_credentials_file,
    )


__all__ = [
    "DirectoryStore",
    "NullDirectoryStore",
    "FirestoreDirectoryStore",
    "build_directory_store",
    "get_firestore_client",
]
