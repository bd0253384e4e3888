"""Tests for binding reservations to credential identities."""
import pytest

from claim_portal.core.binder import bind_identity, build_binding_payload, derive_display_name
from claim_portal.core.errors import ReservationAlreadyClaimedError
from claim_portal.core.models import CollectionKind

from tests.conftest import InMemoryDirectoryStore, read_audit_events


@pytest.mark.parametrize(
    "fields,expected",
    [
        ({"displayName": "Ana", "lastName": "Ruiz"}, "Ana Ruiz"),
        ({"nombre": "Ana", "apellido": "Ruiz"}, "Ana Ruiz"),
        ({"nombre": "Ana", "Apellido": "Ruiz"}, "Ana Ruiz"),
        ({"displayName": "Lee"}, "Lee"),
        ({"Nombre": " Ana ", "Apellido": " Ruiz "}, "Ana Ruiz"),
        ({"displayName": "Ana"}, "Ana"),
        ({"lastName": "Ruiz"}, "Ruiz"),
        ({"displayName": "  ", "nombre": "Ana"}, "Ana"),
        ({"email": "a@x.com"}, None),
        ({}, None),
        (None, None),
    ],
)
def test_derive_display_name(fields, expected):
    assert derive_display_name(fields) == expected


def test_derive_display_name_collapses_repeated_surname():
    fields = {"displayName": "Ana Ruiz", "lastName": "Ruiz"}
    assert derive_display_name(fields) == "Ana Ruiz Ruiz"
    assert derive_display_name(fields, collapse_surname=True) == "Ana Ruiz"


def test_binding_payload_lowercases_email_and_omits_empty_name():
    assert build_binding_payload("u1", "Jane@X.com") == {
        "uid": "u1",
        "email": "Jane@X.com",
        "emailLower": "jane@x.com",
    }
    assert build_binding_payload("u1", "j@x.com", "Jane")["displayName"] == "Jane"


def test_bind_identity_writes_record_and_audits(store, temp_audit_dir):
    _, audit_file = temp_audit_dir
    record = store.add(CollectionKind.STAFF, {"emailLower": "jane@x.com", "role": "staff"}, "s1")

    payload = bind_identity(store, record, "u1", "Jane@X.com", "Jane Doe")

    stored = store.records[record.ref].fields
    assert stored["uid"] == "u1"
    assert stored["emailLower"] == "jane@x.com"
    assert stored["displayName"] == "Jane Doe"
    assert stored["role"] == "staff"
    assert payload["uid"] == "u1"
    assert read_audit_events(audit_file)[-1]["event_type"] == "identity_bound"


def test_bind_identity_is_idempotent(store):
    record = store.add(CollectionKind.STAFF, {"emailLower": "jane@x.com"}, "s1")

    bind_identity(store, record, "u1", "jane@x.com")
    again = store.records[record.ref]
    bind_identity(store, again, "u1", "jane@x.com")

    assert store.records[record.ref].fields["uid"] == "u1"
    assert len(store.updates) == 2
    assert store.updates[0][1] == store.updates[1][1]


def test_bind_identity_refuses_record_owned_by_another_uid(store):
    record = store.add(CollectionKind.STAFF, {"emailLower": "jane@x.com", "uid": "u-other"}, "s1")

    with pytest.raises(ReservationAlreadyClaimedError):
        bind_identity(store, record, "u1", "jane@x.com")
    assert store.updates == []


def test_bind_identity_with_unavailable_store_returns_payload(temp_audit_dir):
    _, audit_file = temp_audit_dir
    store = InMemoryDirectoryStore(available=False)
    record = store.add(CollectionKind.STAFF, {"emailLower": "jane@x.com"}, "s1")

    payload = bind_identity(store, record, "u1", "jane@x.com")

    assert payload["uid"] == "u1"
    assert "uid" not in store.records[record.ref].fields
    assert read_audit_events(audit_file) == []
