from __future__ import annotations

from ..extensions import db
from ..decimal_utils import money_str, quantity_str
from ..time_utils import to_utc_z


class Session(db.Model):
    """
    Logical actor (guest, kiosk, cashier, ...) identified by the natural key
    (type, custom_code, origin). Anchors both the cart and the financial
    ledger. Created and touched by the same idempotent upsert.
    """
    __tablename__ = "sessions"
    __table_args__ = (
        db.UniqueConstraint("type", "custom_code", "origin", name="uq_sessions_identity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(50), nullable=False)
    custom_code = db.Column(db.String(100), nullable=False)
    origin = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cart_items = db.relationship(
        "CartItem",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Session id={self.id} type={self.type!r} custom_code={self.custom_code!r} origin={self.origin!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "custom_code": self.custom_code,
            "origin": self.origin,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartItem(db.Model):
    """Mutable staging line owned by exactly one session."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_cart_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = db.Column(db.Numeric(14, 4), nullable=False, default=1)

    # List of {"name": str, "value": scalar}; see validation.normalize_options
    options = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    session = db.relationship("Session", back_populates="cart_items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "product_id": self.product_id,
            "quantity": quantity_str(self.quantity),
            "options": list(self.options or []),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Order(db.Model):
    """
    Checkout header. total_amount and received_amount are fixed at checkout;
    received_amount defaults to the total (no change-due calculation).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_session_created", "session_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("sessions.id"), nullable=False, index=True)

    # Location the sale was debited from
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    received_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(50), nullable=False, default="created", index=True)  # created, processing, completed, cancelled
    payment_status = db.Column(db.String(50), nullable=False, default="pending")  # pending, paid, failed
    delivery_status = db.Column(db.String(50), nullable=False, default="pending")  # pending, shipped, delivered
    payment_method = db.Column(db.String(50), nullable=True)  # label only: cash, card, ...

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    session = db.relationship("Session")
    location = db.relationship("Location")
    items = db.relationship("OrderItem", back_populates="order", order_by="OrderItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "location_id": self.location_id,
            "total_amount": money_str(self.total_amount),
            "received_amount": money_str(self.received_amount),
            "status": self.status,
            "payment_status": self.payment_status,
            "delivery_status": self.delivery_status,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """
    Order line with prices copied from ProductPrice at checkout time.

    Prices are never re-joined from the catalog, so later price changes do
    not alter historical orders. Rows are immutable once written.
    """
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(14, 4), nullable=False)
    options = db.Column(db.JSON, nullable=False, default=list)

    purchase_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    store_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    public_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    published_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": quantity_str(self.quantity),
            "options": list(self.options or []),
            "purchase_price": money_str(self.purchase_price),
            "store_price": money_str(self.store_price),
            "public_price": money_str(self.public_price),
            "published_price": money_str(self.published_price),
            "created_at": to_utc_z(self.created_at),
        }
