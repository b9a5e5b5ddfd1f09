# Overview: Service-layer operations for checkout; encapsulates business logic and database work.

"""
Checkout: turns a session's cart into an order in one transaction.

Sequence (all or nothing):
1. Lock the session so two checkouts of the same cart serialize.
2. Snapshot the cart joined with current prices.
3. Compute the total from public prices.
4. Write the order header and one item per line with copied prices.
5. Debit each line from the selling location (sale entries).
6. Credit the session's financial ledger with the total.
7. Clear the cart, then commit.

Prices on order items are copies, never references: changing a catalog
price later must not change what an old order says was charged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import CartItem, Order, OrderItem, ProductPrice, Session
from ..decimal_utils import to_decimal, quantize_money, money_str
from ..validation import ValidationError, NotFoundError
from .concurrency import acquire_session_lock, lock_for_update, run_with_retry
from .finance_service import append_financial_entry
from .inventory_service import append_entry, get_default_selling_location, get_location, normalize_quantity


class EmptyCartError(Exception):
    """Raised when checkout is attempted on a session with no cart items."""


class ConfigurationError(Exception):
    """Raised when the deployment lacks data checkout depends on (e.g. no store location)."""


@dataclass(frozen=True)
class CheckoutResult:
    order_id: int
    total: Decimal
    status: str


def _resolve_location(location_id: int | None):
    if location_id is not None:
        return get_location(location_id)
    location = get_default_selling_location()
    if location is None:
        raise ConfigurationError("No store location configured; cannot debit inventory for checkout")
    return location


def checkout(
    *,
    session_id: int,
    payment_method: str | None = None,
    received_amount=None,
    location_id: int | None = None,
) -> CheckoutResult:
    """
    Convert the session's cart into an order.

    The sale is debited from location_id when given, otherwise from the first
    store location. received_amount defaults to the order total.
    """
    received = None
    if received_amount is not None:
        try:
            received = quantize_money(received_amount)
        except ValueError:
            raise ValidationError("received_amount must be a number")
        if received < 0:
            raise ValidationError("received_amount must be >= 0")

    def _op():
        session = lock_for_update(db.session.query(Session).filter_by(id=session_id)).first()
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        acquire_session_lock(session.id)

        lines = (
            db.session.query(CartItem, ProductPrice)
            .outerjoin(ProductPrice, ProductPrice.product_id == CartItem.product_id)
            .filter(CartItem.session_id == session.id)
            .order_by(CartItem.id.asc())
            .all()
        )
        if not lines:
            raise EmptyCartError("Cart is empty")

        for item, price in lines:
            if price is None:
                raise ValidationError(f"Product {item.product_id} has no price")

        total = quantize_money(sum(
            (to_decimal(price.public_price) * to_decimal(item.quantity) for item, price in lines),
            Decimal("0"),
        ))

        location = _resolve_location(location_id)

        order = Order(
            session_id=session.id,
            location_id=location.id,
            total_amount=total,
            received_amount=received if received is not None else total,
            status="created",
            payment_status="pending",
            payment_method=payment_method or current_app.config.get("DEFAULT_PAYMENT_METHOD", "cash"),
        )
        db.session.add(order)
        db.session.flush()

        for item, price in lines:
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                quantity=item.quantity,
                options=list(item.options or []),
                purchase_price=to_decimal(price.purchase_price),
                store_price=to_decimal(price.store_price),
                public_price=to_decimal(price.public_price),
                published_price=to_decimal(price.published_price),
            ))

        for item, _price in lines:
            append_entry(
                product_id=item.product_id,
                location_id=location.id,
                quantity=normalize_quantity("sale", item.quantity),
                transaction_type="sale",
                reference_id=str(order.id),
                notes=f"Order #{order.id}",
            )

        append_financial_entry(
            session_id=session.id,
            type="income",
            concept="sale",
            amount=total,
            order_id=order.id,
            description=f"Order #{order.id}",
        )

        for item, _price in lines:
            db.session.delete(item)

        db.session.commit()
        return CheckoutResult(order_id=order.id, total=total, status=order.status)

    result = run_with_retry(_op)
    current_app.logger.info(
        "checkout completed: session_id=%s order_id=%s total=%s",
        session_id, result.order_id, money_str(result.total),
    )
    return result


def get_order(order_id: int) -> dict:
    """Order header plus its frozen items."""
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")

    data = order.to_dict()
    data["items"] = [item.to_dict() for item in order.items]
    return data
