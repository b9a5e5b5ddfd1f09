# backend/kardex/routes/sessions.py
"""Session identity routes (idempotent create-or-touch)."""

from flask import Blueprint, request, current_app

from ..models import Session
from ..validation import ModelValidationPolicy, validate_payload, ValidationError
from ..services import session_service
from .errors import DOMAIN_ERRORS, error_response


sessions_bp = Blueprint("sessions", __name__, url_prefix="/sessions")

SESSION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "custom_code", "origin"},
    required_on_create={"type", "custom_code", "origin"},
)


@sessions_bp.post("")
def upsert_session_route():
    """
    Create the session for (type, custom_code, origin) or refresh it.

    Always 200: the caller cannot tell (and does not need to) whether the
    row already existed.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Session,
            payload=payload,
            policy=SESSION_POLICY,
            partial=False,
        )
    except ValidationError as e:
        return error_response(e)

    try:
        session = session_service.upsert_session(
            type=patch["type"],
            custom_code=patch["custom_code"],
            origin=patch["origin"],
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to upsert session")
        return {"error": "Internal server error"}, 500

    return session.to_dict(), 200


@sessions_bp.get("/<int:session_id>")
def get_session_route(session_id: int):
    try:
        session = session_service.get_session(session_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return session.to_dict(), 200
