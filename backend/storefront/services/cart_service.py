# Overview: Service-layer operations for the shopping cart; encapsulates business logic and database work.

"""
Cart Service

Every function takes the acting user_id explicitly; nothing here reads
request state.

Invariants:
- At most one Cart per user (unique user_id), created lazily on first add.
- At most one CartItem per (cart, product); re-adding merges quantities.
- A line's quantity never exceeds the product's stock at the time of the
  write. For re-adds the MERGED quantity is what gets checked.
- Stock is only checked here, never reserved. Checkout re-validates.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem, Product
from ..money import format_money, to_money
from ..validation import NotFoundError, InvalidStateError
from .catalog_service import format_image_url
from .concurrency import atomic, lock_for_update, run_with_retry


def _require_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _require_stock(product: Product, quantity: int) -> None:
    if quantity > product.stock:
        raise InvalidStateError(
            f"Insufficient stock. Available: {product.stock}",
            details={
                "product_id": product.id,
                "available": product.stock,
                "requested": quantity,
            },
        )


def find_cart(user_id: int) -> Cart | None:
    return db.session.query(Cart).filter_by(user_id=user_id).first()


def _require_cart(user_id: int) -> Cart:
    cart = find_cart(user_id)
    if cart is None:
        raise NotFoundError("Cart not found")
    return cart


def get_or_create_cart(user_id: int) -> Cart:
    """
    Find-or-create keyed on the unique user_id.

    The insert runs in a savepoint; if a concurrent request created the
    cart first, the unique constraint fires and we read theirs instead.
    """
    cart = find_cart(user_id)
    if cart is not None:
        return cart

    try:
        with db.session.begin_nested():
            cart = Cart(user_id=user_id)
            db.session.add(cart)
    except IntegrityError:
        cart = db.session.query(Cart).filter_by(user_id=user_id).one()
    return cart


def add_item(user_id: int, product_id: int, quantity: int) -> dict:
    """
    Add quantity of a product to the user's cart.

    Raises:
        NotFoundError: product does not exist
        InvalidStateError: requested (or merged) quantity exceeds stock
    """
    def _op():
        with atomic():
            product = _require_product(product_id, lock=True)
            _require_stock(product, quantity)

            cart = get_or_create_cart(user_id)

            existing = (
                db.session.query(CartItem)
                .filter_by(cart_id=cart.id, product_id=product.id)
                .first()
            )

            if existing:
                merged = existing.quantity + quantity
                _require_stock(product, merged)
                existing.quantity = merged
                line_quantity = merged
            else:
                db.session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
                line_quantity = quantity

            cart_id = cart.id

        return {"cart_id": cart_id, "product_id": product_id, "quantity": line_quantity}

    return run_with_retry(_op)


def get_cart(user_id: int) -> dict:
    """
    Cart contents joined with the live product snapshot.

    A user without a cart gets the empty shape, not an error.
    """
    cart = find_cart(user_id)
    if cart is None:
        return {
            "cart_id": None,
            "items": [],
            "total_items": 0,
            "total_price": 0,
        }

    lines = (
        db.session.query(CartItem, Product)
        .join(Product, Product.id == CartItem.product_id)
        .filter(CartItem.cart_id == cart.id)
        .order_by(CartItem.id.asc())
        .all()
    )

    items = []
    total_items = 0
    total_price = Decimal("0.00")

    for line, product in lines:
        item_total = to_money(product.price * line.quantity)
        total_items += line.quantity
        total_price += item_total

        items.append({
            "product_id": product.id,
            "name": product.name,
            "description": product.description,
            "price": format_money(product.price),
            "image_url": format_image_url(product.image_url),
            "stock": product.stock,
            "quantity": line.quantity,
            "item_total": format_money(item_total),
        })

    return {
        "cart_id": cart.id,
        "items": items,
        "total_items": total_items,
        "total_price": format_money(total_price),
    }


def update_item(user_id: int, product_id: int, quantity: int) -> dict:
    """
    Overwrite a line's quantity.

    The new quantity is checked against current stock as-is; the line's
    previous quantity is not credited back.
    """
    def _op():
        with atomic():
            product = _require_product(product_id, lock=True)
            _require_stock(product, quantity)

            cart = _require_cart(user_id)

            line = (
                db.session.query(CartItem)
                .filter_by(cart_id=cart.id, product_id=product.id)
                .first()
            )
            if line is None:
                raise NotFoundError("Product not found in cart")

            line.quantity = quantity

        return {"product_id": product_id, "quantity": quantity}

    return run_with_retry(_op)


def remove_item(user_id: int, product_id: int) -> dict:
    with atomic():
        _require_product(product_id)
        cart = _require_cart(user_id)

        deleted = (
            db.session.query(CartItem)
            .filter_by(cart_id=cart.id, product_id=product_id)
            .delete(synchronize_session=False)
        )
        # Zero rows means the product was never in this cart
        if deleted == 0:
            raise NotFoundError("Product not found in cart")

        db.session.expire(cart, ["items"])

    return {"product_id": product_id}


def clear_cart(user_id: int) -> dict:
    """Delete every line; the Cart row itself stays. Returns the count removed."""
    with atomic():
        cart = _require_cart(user_id)
        removed = (
            db.session.query(CartItem)
            .filter_by(cart_id=cart.id)
            .delete(synchronize_session=False)
        )
        db.session.expire(cart, ["items"])
        cart_id = cart.id

    current_app.logger.info("Cleared cart %s for user %s (%s lines)", cart_id, user_id, removed)
    return {"items_removed": removed, "cart_id": cart_id}
