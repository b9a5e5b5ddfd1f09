from __future__ import annotations

from ..extensions import db
from ..decimal_utils import quantity_str
from ..time_utils import to_utc_z


TRANSACTION_TYPES = (
    "purchase",
    "sale",
    "waste",
    "transfer_out",
    "transfer_in",
    "adjustment",
    "production_usage",
    "production_output",
)


class InventoryLedgerEntry(db.Model):
    """
    Kardex row: one signed quantity movement of a product at a location.

    Append-only. Stock for a (product, location) pair is SUM(quantity) over
    its rows; corrections are new rows, never edits. Updates and deletes are
    rejected by kardex.immutability.
    """
    __tablename__ = "inventory_ledger"
    __table_args__ = (
        db.Index("ix_inventory_ledger_product_location", "product_id", "location_id"),
        db.Index("ix_inventory_ledger_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    # Positive = into the location, negative = out of it
    quantity = db.Column(db.Numeric(14, 4), nullable=False)

    transaction_type = db.Column(db.String(32), nullable=False, index=True)

    # Order id for sales, production batch id for production entries
    reference_id = db.Column(db.String(64), nullable=True, index=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    product = db.relationship("Product")
    location = db.relationship("Location")

    def __repr__(self) -> str:
        return (
            f"<InventoryLedgerEntry id={self.id} product_id={self.product_id} "
            f"location_id={self.location_id} quantity={self.quantity} type={self.transaction_type}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "location_id": self.location_id,
            "quantity": quantity_str(self.quantity),
            "transaction_type": self.transaction_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
