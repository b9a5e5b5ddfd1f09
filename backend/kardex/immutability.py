"""
ORM-level append-only enforcement for ledger rows.

Protected entities (updates and deletes rejected from creation on):
- InventoryLedgerEntry: stock is derived from it; corrections are new rows
- FinancialLedgerEntry: balances are derived from it
- OrderItem: frozen price snapshot of a sale

Listeners fire before SQL is emitted, so a violating flush raises
ImmutableRecordError and the surrounding transaction is rolled back by the
caller. Bulk query.update()/delete() and raw SQL are not intercepted.
"""

from flask import current_app, has_app_context
from sqlalchemy import event, inspect
from sqlalchemy.orm import ColumnProperty

from .models import InventoryLedgerEntry, FinancialLedgerEntry, OrderItem


PROTECTED_MODELS = (InventoryLedgerEntry, FinancialLedgerEntry, OrderItem)


class ImmutableRecordError(Exception):
    """Raised when code tries to modify or delete an append-only record."""

    def __init__(self, entity_type: str, entity_id, operation: str):
        super().__init__(f"{entity_type} {entity_id} is append-only and cannot be {operation}")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.operation = operation


def _log_violation(target, operation: str) -> None:
    if has_app_context():
        current_app.logger.error(
            "immutability violation blocked: %s id=%s operation=%s",
            type(target).__name__,
            getattr(target, "id", None),
            operation,
        )


def _has_column_changes(target) -> bool:
    state = inspect(target)
    for attr in state.mapper.attrs:
        if not isinstance(attr, ColumnProperty):
            continue
        if state.attrs[attr.key].history.has_changes():
            return True
    return False


def _reject_update(mapper, connection, target):
    # before_update also fires for rows only touched through relationships
    if not _has_column_changes(target):
        return
    _log_violation(target, "UPDATE")
    raise ImmutableRecordError(type(target).__name__, target.id, "modified")


def _reject_delete(mapper, connection, target):
    _log_violation(target, "DELETE")
    raise ImmutableRecordError(type(target).__name__, target.id, "deleted")


def register_immutability_listeners() -> None:
    """Safe to call repeatedly (idempotent)."""
    for model in PROTECTED_MODELS:
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)
