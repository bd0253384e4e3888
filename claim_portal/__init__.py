"""Claim portal: first-login provisioning for administrator-reserved accounts.

To use the Flask app:
    from claim_portal.flask_app import create_app

To run the sign-in flow directly:
    from claim_portal.core.orchestrator import SignInOrchestrator
"""
# Note: flask_app is not imported here so the CLI in scripts/ can use
# claim_portal.core without pulling in Flask.
