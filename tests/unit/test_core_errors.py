"""Tests for provider error classification."""
import pytest

from claim_portal.core.errors import (
    AuthErrorKind,
    CredentialProviderError,
    classify_auth_error,
    is_provider_code,
    normalize_error_code,
)


@pytest.mark.parametrize(
    "code,expected",
    [
        ("auth/invalid-email", AuthErrorKind.INVALID_EMAIL),
        ("auth/user-not-found", AuthErrorKind.IDENTITY_NOT_FOUND),
        ("auth/wrong-password", AuthErrorKind.WRONG_CREDENTIAL),
        ("auth/invalid-credential", AuthErrorKind.WRONG_CREDENTIAL),
        ("auth/invalid-login-credentials", AuthErrorKind.WRONG_CREDENTIAL),
        ("auth/user-disabled", AuthErrorKind.DISABLED),
        ("auth/too-many-requests", AuthErrorKind.RATE_LIMITED),
        ("auth/email-already-in-use", AuthErrorKind.DUPLICATE_IDENTITY),
    ],
)
def test_known_codes_are_classified(code, expected):
    assert classify_auth_error(code) is expected


def test_classification_ignores_case_and_whitespace():
    assert classify_auth_error("  AUTH/User-Not-Found ") is AuthErrorKind.IDENTITY_NOT_FOUND


@pytest.mark.parametrize("code", [None, "", "auth/network-request-failed", "boom", 42])
def test_unrecognized_codes_are_unknown(code):
    assert classify_auth_error(code) is AuthErrorKind.UNKNOWN


def test_normalize_error_code_handles_none():
    assert normalize_error_code(None) == ""
    assert normalize_error_code(" Auth/X ") == "auth/x"


def test_is_provider_code():
    assert is_provider_code("auth/internal-error")
    assert not is_provider_code("firestore/unavailable")
    assert not is_provider_code(None)


def test_credential_provider_error_exposes_kind():
    exc = CredentialProviderError("auth/user-disabled", "Account disabled")
    assert exc.kind is AuthErrorKind.DISABLED
    assert "Account disabled" in str(exc)
