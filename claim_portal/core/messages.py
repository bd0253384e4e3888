"""User-facing message tables for the sign-in flow."""
from __future__ import annotations

from .errors import AuthErrorKind, classify_auth_error, is_provider_code

DEFAULT_LOCALE = "en"

# Keys other than AuthErrorKind values
INVALID_EMAIL_INPUT = "invalid_email_input"
MISSING_PASSWORD = "missing_password"
NOT_RESERVED = "not_reserved"
PROVISION_RACE = "provision_race"
PROVIDER_GENERIC = "provider_generic"
GENERIC = "generic"
RESET_SENT = "reset_sent"
RESET_INVALID_EMAIL = "reset_invalid_email"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        AuthErrorKind.INVALID_EMAIL.value: "The email address is not valid.",
        AuthErrorKind.IDENTITY_NOT_FOUND.value: "We could not find an account with that email.",
        AuthErrorKind.WRONG_CREDENTIAL.value: "Invalid credentials. Check your email and password.",
        AuthErrorKind.DISABLED.value: "This account is disabled. Contact your administrator.",
        AuthErrorKind.RATE_LIMITED.value: "Too many failed attempts. Wait a few minutes and try again.",
        AuthErrorKind.DUPLICATE_IDENTITY.value: "This email is already registered.",
        INVALID_EMAIL_INPUT: "Enter a valid email address (name@domain.com).",
        MISSING_PASSWORD: "Enter a password.",
        NOT_RESERVED: "Your email has not been registered by an administrator.",
        PROVISION_RACE: "Your account was just created from another session. Try signing in again.",
        PROVIDER_GENERIC: "We could not sign you in. Check your details.",
        GENERIC: "We could not sign you in. Check your email and password.",
        RESET_SENT: "We sent you an email to reset your password.",
        RESET_INVALID_EMAIL: "Enter a valid email address to reset your password.",
    },
    "es": {
        AuthErrorKind.INVALID_EMAIL.value: "El correo no tiene un formato valido.",
        AuthErrorKind.IDENTITY_NOT_FOUND.value: "No encontramos una cuenta con ese correo.",
        AuthErrorKind.WRONG_CREDENTIAL.value: "Credenciales invalidas. Verifica tu correo y contrasena.",
        AuthErrorKind.DISABLED.value: "La cuenta esta deshabilitada. Contacta al administrador.",
        AuthErrorKind.RATE_LIMITED.value: "Demasiados intentos fallidos. Espera unos minutos e intenta de nuevo.",
        AuthErrorKind.DUPLICATE_IDENTITY.value: "El correo ya esta registrado.",
        INVALID_EMAIL_INPUT: "Ingresa un correo valido (ejemplo@dominio.com).",
        MISSING_PASSWORD: "Ingresa una contrasena.",
        NOT_RESERVED: "Tu correo no esta registrado por el administrador.",
        PROVISION_RACE: "Tu cuenta acaba de crearse desde otra sesion. Intenta iniciar sesion de nuevo.",
        PROVIDER_GENERIC: "No pudimos iniciar sesion. Verifica tus datos.",
        GENERIC: "No pudimos iniciar sesion. Verifica tu correo y contrasena.",
        RESET_SENT: "Te enviamos un correo para restablecer tu contrasena.",
        RESET_INVALID_EMAIL: "Ingresa un correo valido para recuperar tu contrasena.",
    },
}


def _table(locale: str | None) -> dict[str, str]:
    return MESSAGES.get((locale or DEFAULT_LOCALE).lower(), MESSAGES[DEFAULT_LOCALE])


def message_for(key: str, locale: str | None = None) -> str:
    """Return the message for a table key, falling back to the generic message."""
    table = _table(locale)
    return table.get(key, table[GENERIC])


def has_specific_message(kind: AuthErrorKind) -> bool:
    return kind.value in MESSAGES[DEFAULT_LOCALE]


def resolve_auth_message(code: object, locale: str | None = None) -> str:
    """Map a provider error code to a user-facing message.

    Known kinds use their table entry. Unknown codes in the provider's
    ``auth/`` namespace get the provider-generic message; anything else
    gets the generic one.
    """
    table = _table(locale)
    kind = classify_auth_error(code)
    if kind.value in table:
        return table[kind.value]
    if is_provider_code(code):
        return table[PROVIDER_GENERIC]
    return table[GENERIC]
