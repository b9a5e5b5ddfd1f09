# Overview: Service-layer operations for cart; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import CartItem, Product, ProductPrice
from ..decimal_utils import to_decimal, quantize_money, quantize_quantity, money_str
from ..validation import (
    ValidationError,
    NotFoundError,
    ProductNotFoundError,
    enforce_positive_quantity,
    normalize_options,
)
from .concurrency import run_with_retry
from .session_service import get_session


def _clean_quantity(quantity):
    try:
        qty = to_decimal(quantity)
    except ValueError:
        raise ValidationError("quantity must be a number")
    enforce_positive_quantity(qty)
    return quantize_quantity(qty)


def _get_item(cart_item_id: int) -> CartItem:
    item = db.session.get(CartItem, cart_item_id)
    if item is None:
        raise NotFoundError(f"Cart item {cart_item_id} not found")
    return item


def add_item(*, session_id: int, product_id: int, quantity=1, options=None) -> CartItem:
    """Stage a product in the session's cart. Each call adds its own line."""
    qty = _clean_quantity(quantity)
    pairs = normalize_options(options)

    def _op():
        get_session(session_id)
        if db.session.get(Product, product_id) is None:
            raise ProductNotFoundError(f"Product {product_id} not found")

        item = CartItem(
            session_id=session_id,
            product_id=product_id,
            quantity=qty,
            options=pairs,
        )
        db.session.add(item)
        db.session.commit()
        return item

    return run_with_retry(_op)


def list_items(session_id: int) -> list[dict]:
    """Cart lines with the product name and the current (not frozen) public price."""
    get_session(session_id)

    rows = (
        db.session.query(CartItem, Product.name, ProductPrice.public_price)
        .join(Product, Product.id == CartItem.product_id)
        .outerjoin(ProductPrice, ProductPrice.product_id == CartItem.product_id)
        .filter(CartItem.session_id == session_id)
        .order_by(CartItem.id.asc())
        .all()
    )

    result = []
    for item, product_name, public_price in rows:
        data = item.to_dict()
        data["product_name"] = product_name
        data["public_price"] = money_str(public_price)
        data["line_total"] = (
            money_str(quantize_money(to_decimal(public_price) * to_decimal(item.quantity)))
            if public_price is not None
            else None
        )
        result.append(data)
    return result


def update_quantity(*, cart_item_id: int, quantity) -> CartItem:
    qty = _clean_quantity(quantity)

    def _op():
        item = _get_item(cart_item_id)
        item.quantity = qty
        db.session.commit()
        return item

    return run_with_retry(_op)


def remove_item(cart_item_id: int) -> None:
    def _op():
        item = _get_item(cart_item_id)
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)


def clear_cart(session_id: int) -> int:
    """Delete every line of the session's cart. Returns the number removed."""
    def _op():
        get_session(session_id)
        removed = (
            db.session.query(CartItem)
            .filter(CartItem.session_id == session_id)
            .delete(synchronize_session=False)
        )
        db.session.commit()
        return removed

    return run_with_retry(_op)

