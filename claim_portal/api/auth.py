"""Sign-in routes.

The browser posts credentials here; the SignInOrchestrator decides between
plain authentication and first-login provisioning. On success the Flask
session records the uid and email, and the landing path comes from the
shared SessionContext.
"""
from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, request, session

from claim_portal.core.models import CredentialIdentity, ResetStatus, SignInStatus

bp = Blueprint("auth", __name__)

_STATUS_CODES = {
    SignInStatus.DONE: 200,
    SignInStatus.FAILED: 401,
    SignInStatus.VALIDATION_ERROR: 400,
}


def _payload() -> dict:
    """Form fields or JSON body, whichever the client sent."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def _current_identity() -> CredentialIdentity | None:
    uid = session.get("uid")
    if not uid:
        return None
    return CredentialIdentity(uid, session.get("email", ""), session.get("display_name"))


# ─────────────────────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/login", methods=["GET"])
def login_form():
    """Hand out the CSRF token the sign-in form must echo back."""
    return jsonify({
        "csrf_token": g.get("csrf_token"),
        "authenticated": _current_identity() is not None,
    })


@bp.route("/login", methods=["POST"])
def login():
    """Run one sign-in submission."""
    data = _payload()
    orchestrator = current_app.config["ORCHESTRATOR"]
    result = orchestrator.submit(data.get("email", ""), data.get("password", ""))

    if result.ok:
        identity = result.identity
        session["uid"] = identity.uid
        session["email"] = identity.email
        if identity.display_name:
            session["display_name"] = identity.display_name
        current_app.logger.info(
            f"[Auth] Signed in uid={identity.uid} provisioned={result.provisioned}"
        )
    else:
        current_app.logger.info(f"[Auth] Sign-in {result.status.value}: {result.error}")

    return jsonify({
        "status": result.status.value,
        "message": result.message,
        "redirect": result.redirect_to,
        "provisioned": result.provisioned,
    }), _STATUS_CODES[result.status]


@bp.route("/password-reset", methods=["POST"])
def password_reset():
    """Request a password-reset email."""
    data = _payload()
    orchestrator = current_app.config["ORCHESTRATOR"]
    result = orchestrator.request_password_reset(data.get("email", ""))
    status_code = 200 if result.status is ResetStatus.SENT else 400
    return jsonify({"status": result.status.value, "message": result.message}), status_code


@bp.route("/logout", methods=["POST"])
def logout():
    """Sign out with the provider and clear the Flask session."""
    identity = _current_identity()
    if identity is not None:
        provider = current_app.config["CREDENTIAL_PROVIDER"]
        provider.sign_out(identity)
        current_app.logger.info(f"[Auth] Signed out uid={identity.uid}")
    session.clear()
    return jsonify({"status": "signed_out"})


@bp.route("/me")
def me():
    """Current user's identity, role and profile name."""
    identity = _current_identity()
    if identity is None:
        abort(401)

    context = current_app.config["SESSION_CONTEXT"]
    state = context.snapshot(identity.uid)
    return jsonify({
        "uid": identity.uid,
        "email": identity.email,
        "role": state.role.value if state.role else None,
        "profile_name": state.profile_name,
        "loading": state.loading,
    })
