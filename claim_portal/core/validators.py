"""Input validation helpers for sign-in submissions and reservations."""
from __future__ import annotations
import re

EMAIL_MAX_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str | None) -> bool:
    """Return True when the trimmed email matches the address pattern."""
    if not email:
        return False
    candidate = email.strip()
    if len(candidate) > EMAIL_MAX_LENGTH:
        return False
    return bool(EMAIL_PATTERN.match(candidate))


def validate_email(email: str | None) -> str:
    """Validate email address.

    Args:
        email: Email address to validate

    Returns:
        Trimmed email address, case preserved

    Raises:
        ValueError: If email is invalid
    """
    if not is_valid_email(email):
        raise ValueError("Invalid email format")
    return email.strip()


def validate_password(password: str | None) -> str:
    """Require a non-empty password and return it trimmed.

    Raises:
        ValueError: If password is empty after trimming
    """
    trimmed = (password or "").strip()
    if not trimmed:
        raise ValueError("Password is required")
    return trimmed


def validate_name(name: str, field: str) -> str:
    """Validate first/last name fields.

    Args:
        name: Name to validate
        field: Field name for error messages (e.g., "First name")

    Returns:
        Trimmed name

    Raises:
        ValueError: If name is invalid
    """
    name = name.strip()
    if not name:
        raise ValueError(f"{field} is required")
    if len(name) > 128:
        raise ValueError(f"{field} exceeds maximum length")

    # Prevent injection attacks
    if any(char in name for char in "<>\"'`;&|$"):
        raise ValueError(f"{field} contains invalid characters")

    return name
