# Overview: Service-layer operations for finance; encapsulates business logic and database work.

"""
Financial ledger for sessions.

Append-only money movements: amount is always stored as an absolute value
and the direction comes from type (income/expense). A session's balance is
never stored; it is SUM(income) - SUM(expense) over its rows.
"""

from __future__ import annotations

import math
from decimal import Decimal

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import FinancialLedgerEntry, Order, ENTRY_TYPES, ENTRY_CONCEPTS
from ..decimal_utils import quantize_money, money_str
from ..validation import ValidationError, NotFoundError, enforce_rules_finance_entry
from .concurrency import run_with_retry
from .session_service import get_session


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Sale income is written by checkout only
MANUAL_CONCEPTS = ("refund", "adjustment")


def append_financial_entry(
    *,
    session_id: int,
    type: str,
    concept: str,
    amount,
    order_id: int | None = None,
    description: str | None = None,
) -> FinancialLedgerEntry:
    """Flush-only primitive; the entry joins the caller's transaction."""
    if type not in ENTRY_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(ENTRY_TYPES)}")
    if concept not in ENTRY_CONCEPTS:
        raise ValidationError(f"concept must be one of: {', '.join(ENTRY_CONCEPTS)}")

    try:
        value = quantize_money(amount)
    except ValueError:
        raise ValidationError("amount must be a number")
    enforce_rules_finance_entry({"amount": value})

    entry = FinancialLedgerEntry(
        session_id=session_id,
        order_id=order_id,
        type=type,
        concept=concept,
        amount=value,
        description=description,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_financial_entry(
    *,
    session_id: int,
    type: str,
    concept: str,
    amount,
    order_id: int | None = None,
    description: str | None = None,
) -> FinancialLedgerEntry:
    """
    Manual refund/adjustment entry, committed on its own.

    Ledger rows cannot be corrected after the fact, so a referenced order must
    exist and belong to the same session.
    """
    if concept not in MANUAL_CONCEPTS:
        raise ValidationError(f"concept must be one of: {', '.join(MANUAL_CONCEPTS)}")

    def _op():
        get_session(session_id)
        if order_id is not None:
            order = db.session.get(Order, order_id)
            if order is None:
                raise NotFoundError(f"Order {order_id} not found")
            if order.session_id != session_id:
                raise ValidationError(f"Order {order_id} does not belong to session {session_id}")
        entry = append_financial_entry(
            session_id=session_id,
            type=type,
            concept=concept,
            amount=amount,
            order_id=order_id,
            description=description,
        )
        db.session.commit()
        return entry

    entry = run_with_retry(_op)
    current_app.logger.info(
        "financial entry recorded: session_id=%s type=%s concept=%s amount=%s",
        session_id, entry.type, entry.concept, money_str(entry.amount),
    )
    return entry


def get_balance(session_id: int) -> dict[str, Decimal]:
    get_session(session_id)

    income, expense = db.session.query(
        func.coalesce(
            func.sum(case((FinancialLedgerEntry.type == "income", FinancialLedgerEntry.amount), else_=0)),
            0,
        ),
        func.coalesce(
            func.sum(case((FinancialLedgerEntry.type == "expense", FinancialLedgerEntry.amount), else_=0)),
            0,
        ),
    ).filter(FinancialLedgerEntry.session_id == session_id).one()

    total_income = quantize_money(income)
    total_expense = quantize_money(expense)
    return {
        "total_income": total_income,
        "total_expense": total_expense,
        "current_balance": total_income - total_expense,
    }


def list_history(session_id: int, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict:
    """Newest-first page of a session's financial entries."""
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    get_session(session_id)

    q = db.session.query(FinancialLedgerEntry).filter(FinancialLedgerEntry.session_id == session_id)
    total = q.count()
    entries = (
        q.order_by(FinancialLedgerEntry.created_at.desc(), FinancialLedgerEntry.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "data": [e.to_dict() for e in entries],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if total else 0,
        },
    }
