# backend/kardex/routes/finance.py
"""
Financial ledger routes.

Balances are computed from the ledger on every request; amounts are
serialized as strings with two decimals.
"""

from flask import Blueprint, request, current_app

from ..models import FinancialLedgerEntry
from ..decimal_utils import money_str
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    enforce_rules_finance_entry,
)
from ..services import finance_service
from .errors import DOMAIN_ERRORS, error_response


finance_bp = Blueprint("finance", __name__, url_prefix="/finance")

FINANCE_ENTRY_POLICY = ModelValidationPolicy(
    writable_fields={"session_id", "type", "concept", "amount", "order_id", "description"},
    required_on_create={"session_id", "type", "concept", "amount"},
)


@finance_bp.get("/balance/<int:session_id>")
def balance_route(session_id: int):
    try:
        balance = finance_service.get_balance(session_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {key: money_str(value) for key, value in balance.items()}, 200


@finance_bp.get("/history/<int:session_id>")
def history_route(session_id: int):
    page = request.args.get("page", default=1, type=int)
    limit = request.args.get("limit", default=finance_service.DEFAULT_PAGE_SIZE, type=int)

    try:
        history = finance_service.list_history(session_id, page=page, limit=limit)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return history, 200


@finance_bp.post("/entries")
def create_entry_route():
    """Manual refund or adjustment. concept "sale" is rejected; checkout writes sale income."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=FinancialLedgerEntry,
            payload=payload,
            policy=FINANCE_ENTRY_POLICY,
            partial=False,
        )
        enforce_rules_finance_entry(patch)
    except ValidationError as e:
        return error_response(e)

    try:
        entry = finance_service.record_financial_entry(
            session_id=patch["session_id"],
            type=patch["type"],
            concept=patch["concept"],
            amount=patch["amount"],
            order_id=patch.get("order_id"),
            description=patch.get("description"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record financial entry")
        return {"error": "Internal server error"}, 500

    return {"entry": entry.to_dict()}, 201
