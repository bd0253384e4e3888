"""Firestore directory store (google-cloud-firestore).

Reservations are plain Firestore documents looked up with a single equality
filter. Credentials come from a service-account key file when one is
configured, otherwise from Application Default Credentials; google-auth
refreshes the access token as it expires.
"""
from __future__ import annotations
import logging
import os
from typing import Any, Optional

from google.api_core import exceptions as google_exceptions
from google.auth import default as google_auth_default
from google.auth import exceptions as google_auth_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from ..errors import DirectoryStoreError
from ..models import CollectionKind, RecordRef, ReservationRecord
from .base import DirectoryStore

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/datastore"]

# Outages, expired or missing credentials: the store is treated as unreachable
UNAVAILABLE_ERRORS = (
    google_exceptions.ServerError,
    google_exceptions.Unauthenticated,
    google_exceptions.PermissionDenied,
    google_exceptions.RetryError,
    google_auth_exceptions.GoogleAuthError,
)


def _build_credentials(key_path: str = ""):
    if key_path and os.path.exists(key_path):
        return service_account.Credentials.from_service_account_file(key_path, scopes=SCOPES)
    credentials, _ = google_auth_default(scopes=SCOPES)
    return credentials


def get_firestore_client(project_id: str, database: str = "(default)", credentials_file: str = "") -> firestore.Client:
    """Create a Firestore client for the reservation project."""
    return firestore.Client(
        project=project_id,
        credentials=_build_credentials(credentials_file),
        database=database,
    )


class FirestoreDirectoryStore(DirectoryStore):
    """Directory store backed by Cloud Firestore.

    Usage:
        store = FirestoreDirectoryStore(
            "my-project",
            {CollectionKind.STAFF: "staff", CollectionKind.CUSTOMER: "customers"},
        )
        record = store.find_one(CollectionKind.STAFF, "emailLower", "jane@x.com")

    The client is created on first use so that a missing credential shows up
    as an unavailable store instead of a startup failure.
    """

    def __init__(
        self,
        project_id: str,
        collections: dict[CollectionKind, str],
        database: str = "(default)",
        credentials_file: str = "",
        client: Optional[firestore.Client] = None,
    ):
        self.project_id = project_id
        self.collections = dict(collections)
        self.database = database
        self.credentials_file = credentials_file
        self._client = client

    @property
    def client(self) -> firestore.Client:
        if self._client is None:
            self._client = get_firestore_client(self.project_id, self.database, self.credentials_file)
        return self._client

    def collection_name(self, kind: CollectionKind) -> str:
        return self.collections[kind]

    def find_matches(
        self,
        kind: CollectionKind,
        field: str,
        value: Any,
        limit: Optional[int] = None,
    ) -> list[ReservationRecord]:
        """Documents whose ``field`` equals ``value``; empty when the store is unreachable."""
        try:
            query = self.client.collection(self.collection_name(kind)).where(filter=FieldFilter(field, "==", value))
            if limit is not None:
                query = query.limit(limit)
            snapshots = list(query.stream())
        except UNAVAILABLE_ERRORS as exc:
            logger.warning("Directory store unavailable during lookup (%s.%s): %s", kind.value, field, exc)
            return []
        except google_exceptions.GoogleAPICallError as exc:
            raise self._store_error(exc, f"{self.collection_name(kind)}.{field}") from exc
        return [self._to_record(kind, snapshot) for snapshot in snapshots]

    def update(self, ref: RecordRef, fields: dict[str, Any]) -> bool:
        """Merge ``fields`` into an existing document; False when the store is unreachable."""
        try:
            self.client.collection(self.collection_name(ref.kind)).document(ref.record_id).update(fields)
        except UNAVAILABLE_ERRORS as exc:
            logger.warning("Directory store unavailable during update of %s: %s", ref.path, exc)
            return False
        except google_exceptions.GoogleAPICallError as exc:
            raise self._store_error(exc, ref.path) from exc
        return True

    def create(self, kind: CollectionKind, fields: dict[str, Any]) -> ReservationRecord:
        """Create a document with an auto-generated id."""
        try:
            _, doc_ref = self.client.collection(self.collection_name(kind)).add(dict(fields))
        except google_auth_exceptions.GoogleAuthError as exc:
            raise DirectoryStoreError(0, f"Directory store credentials unavailable: {exc}", self.collection_name(kind)) from exc
        except google_exceptions.GoogleAPICallError as exc:
            raise self._store_error(exc, self.collection_name(kind)) from exc
        return ReservationRecord(kind=kind, record_id=doc_ref.id, fields=dict(fields))

    @staticmethod
    def _to_record(kind: CollectionKind, snapshot) -> ReservationRecord:
        return ReservationRecord(kind=kind, record_id=snapshot.id, fields=snapshot.to_dict() or {})

    @staticmethod
    def _store_error(exc: google_exceptions.GoogleAPICallError, endpoint: str) -> DirectoryStoreError:
        return DirectoryStoreError(int(exc.code or 0), exc.message, endpoint)
