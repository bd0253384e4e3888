"""Core Business Logic Module

This module provides the reserve-then-claim provisioning logic,
independent of HTTP frameworks (Flask).

Architecture:
    - Pure Python (no Flask dependencies in core logic)
    - Testable with in-memory providers and stores
    - Reusable across different interfaces (HTTP API, CLI)

Module Structure:
    - directory/        : Directory store (Firestore REST, null store)
    - keycloak/         : Keycloak credential provider and Admin API client
    - locator.py        : Reservation lookup by email
    - binder.py         : Link a reservation to its credential identity
    - orchestrator.py   : Sign-in state machine (authenticate or provision)
    - session_context.py: Observable role/profile state per signed-in user
    - errors.py         : Error classification and failure categories
    - messages.py       : Localized user-facing messages
    - validators.py     : Input validation

Usage Pattern:
    These modules are NOT auto-imported.

    Import explicitly when needed:
        from claim_portal.core.orchestrator import SignInOrchestrator
        from claim_portal.core.locator import find_reservation
        from claim_portal.core.binder import bind_identity
        from claim_portal.core.session_context import SessionContext
"""
