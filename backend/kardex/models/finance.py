from __future__ import annotations

from ..extensions import db
from ..decimal_utils import money_str
from ..time_utils import to_utc_z


ENTRY_TYPES = ("income", "expense")

ENTRY_CONCEPTS = ("sale", "refund", "adjustment")


class FinancialLedgerEntry(db.Model):
    """
    Money movement for a session, optionally tied to an order.

    amount is always the absolute value; direction comes from type.
    Balance for a session = SUM(income) - SUM(expense). Append-only.
    """
    __tablename__ = "financial_ledger"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_financial_ledger_amount_nonneg"),
        db.Index("ix_financial_ledger_session_created", "session_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("sessions.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False)
    concept = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "order_id": self.order_id,
            "type": self.type,
            "concept": self.concept,
            "amount": money_str(self.amount),
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
