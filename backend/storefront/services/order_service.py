# Overview: Service-layer operations for checkout and order history; encapsulates business logic and database work.

"""
Order Service - checkout and order reads

Checkout turns the user's cart into an Order aggregate in ONE transaction:

    load cart lines -> lock + re-check stock -> total -> Order
    -> ShippingInfo + PaymentInfo -> OrderItems (price snapshot)
    -> guarded stock decrement -> clear cart lines -> commit

Invariants:
- No order is ever created from an empty cart.
- Product.stock never goes below zero. The up-front check produces a
  friendly error; the conditional UPDATE is what actually guarantees it
  when two checkouts race for the same product.
- OrderItem.price is copied from Product.price at checkout, so later price
  changes never alter an existing order's lines or total.
- total_price == sum(line price * quantity), rounded half-up to cents.
- Any failure after the first write rolls back the order, its children,
  every stock decrement, and leaves the cart untouched.
- Payment status always starts "pending"; settlement is not our concern.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Cart, CartItem, Order, OrderItem, PaymentInfo, Product, ShippingInfo
from ..money import format_money, to_money
from ..time_utils import to_utc_z, utcnow
from ..validation import InvalidStateError, NotFoundError
from .catalog_service import format_image_url
from .concurrency import atomic, lock_for_update, run_with_retry
from .pagination import paginate


def _insufficient_stock(product: Product, available: int, requested: int) -> InvalidStateError:
    return InvalidStateError(
        f"Insufficient stock for {product.name}. Available: {available}, Requested: {requested}",
        details={
            "product_id": product.id,
            "name": product.name,
            "available": available,
            "requested": requested,
        },
    )


def _load_checkout_lines(cart: Cart | None) -> list[tuple[CartItem, Product]]:
    """Cart lines paired with their product rows, products locked for update."""
    if cart is None:
        return []

    lines = (
        db.session.query(CartItem)
        .filter(CartItem.cart_id == cart.id)
        .order_by(CartItem.id.asc())
        .all()
    )
    if not lines:
        return []

    product_ids = [line.product_id for line in lines]
    products = lock_for_update(
        db.session.query(Product)
        .filter(Product.id.in_(product_ids))
        .order_by(Product.id.asc())
    ).all()
    by_id = {p.id: p for p in products}

    return [(line, by_id[line.product_id]) for line in lines]


def _validate_stock(lines: list[tuple[CartItem, Product]]) -> None:
    # First offending line aborts; nothing has been written yet
    for line, product in lines:
        if line.quantity > product.stock:
            raise _insufficient_stock(product, product.stock, line.quantity)


def compute_total(lines) -> Decimal:
    """Sum of unit price * quantity over (quantity, unit_price) pairs, in cents."""
    total = Decimal("0.00")
    for quantity, unit_price in lines:
        total += to_money(unit_price) * quantity
    return to_money(total)


def decrement_stock(product: Product, quantity: int) -> None:
    """
    Compare-and-decrement: only succeeds while stock >= quantity at the
    moment the UPDATE runs, regardless of what was read earlier.
    """
    updated = (
        db.session.query(Product)
        .filter(Product.id == product.id, Product.stock >= quantity)
        .update({Product.stock: Product.stock - quantity}, synchronize_session=False)
    )
    if updated != 1:
        available = db.session.query(Product.stock).filter(Product.id == product.id).scalar()
        raise _insufficient_stock(product, available or 0, quantity)

    db.session.expire(product, ["stock"])


def place_order(user_id: int, shipping: dict, payment: dict, order_note: str | None = None) -> dict:
    """
    Checkout the user's cart.

    shipping / payment must already have passed validation.validate_checkout;
    this function does not re-validate field formats.

    Returns the receipt dict.

    Raises:
        InvalidStateError: empty cart, or a line exceeds current stock
    """
    default_country = current_app.config.get("DEFAULT_COUNTRY", "United States")

    def _op():
        with atomic():
            cart = db.session.query(Cart).filter_by(user_id=user_id).first()
            lines = _load_checkout_lines(cart)

            if not lines:
                raise InvalidStateError("Cart is empty. Cannot create order.")

            _validate_stock(lines)

            snapshot = [(line.quantity, to_money(product.price)) for line, product in lines]
            total = compute_total(snapshot)

            order = Order(
                user_id=user_id,
                total_price=total,
                status="pending",
                ordered_at=utcnow(),
                order_note=order_note or None,
            )
            order.shipping_info = ShippingInfo(
                first_name=shipping["first_name"],
                last_name=shipping["last_name"],
                email=shipping["email"],
                phone=shipping["phone"],
                address=shipping["address"],
                city=shipping["city"],
                state=shipping["state"],
                zip_code=shipping["zip_code"],
                country=shipping.get("country") or default_country,
            )
            order.payment_info = PaymentInfo(
                card_last_four=payment["card_last_four"],
                card_type=payment["card_type"],
                payment_status="pending",
                transaction_id=payment.get("transaction_id"),
            )
            db.session.add(order)
            db.session.flush()

            for (line, product), (quantity, unit_price) in zip(lines, snapshot):
                order.items.append(OrderItem(
                    product_id=product.id,
                    quantity=quantity,
                    price=unit_price,
                ))
                decrement_stock(product, quantity)

            db.session.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
            db.session.expire(cart, ["items"])
            db.session.flush()

            receipt = _receipt(order, items_count=len(lines))

        current_app.logger.info(
            "Order %s placed by user %s: %s lines, total %s",
            receipt["order_id"], user_id, receipt["items_count"], receipt["total_price"],
        )
        return receipt

    try:
        return run_with_retry(_op)
    except InvalidStateError as e:
        current_app.logger.warning("Checkout rejected for user %s: %s", user_id, e)
        raise


def _receipt(order: Order, *, items_count: int) -> dict:
    shipping = order.shipping_info
    payment = order.payment_info
    return {
        "order_id": order.id,
        "total_price": format_money(order.total_price),
        "status": order.status,
        "items_count": items_count,
        "order_note": order.order_note,
        "shipping_info": {
            "first_name": shipping.first_name,
            "last_name": shipping.last_name,
            "email": shipping.email,
            "address": shipping.address,
            "city": shipping.city,
            "state": shipping.state,
            "zip_code": shipping.zip_code,
            "country": shipping.country,
        },
        # Never more than last four, card type and status
        "payment_info": {
            "card_last_four": payment.card_last_four,
            "card_type": payment.card_type,
            "payment_status": payment.payment_status,
        },
    }


def get_order_history(user_id: int, page: int | None = None, limit: int | None = None) -> dict:
    """The user's own orders, newest first."""
    query = (
        db.session.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.ordered_at.desc(), Order.id.desc())
    )
    orders, pagination = paginate(query, page, limit)
    return {
        "orders": [o.to_summary_dict() for o in orders],
        "pagination": pagination,
    }


def get_order(user_id: int, order_id: int) -> dict:
    """
    Full order detail.

    Someone else's order is reported exactly like a missing one.
    """
    order = (
        db.session.query(Order)
        .filter(Order.id == order_id, Order.user_id == user_id)
        .first()
    )
    if order is None:
        raise NotFoundError("Order not found")

    items = []
    for item in order.items:
        line = item.to_dict()
        line["image_url"] = format_image_url(line["image_url"])
        items.append(line)

    return {
        "order_id": order.id,
        "total_price": format_money(order.total_price),
        "status": order.status,
        "orderedAt": to_utc_z(order.ordered_at),
        "order_note": order.order_note,
        "items": items,
        "items_count": len(items),
        "shipping_info": order.shipping_info.to_dict() if order.shipping_info else None,
        "payment_info": order.payment_info.to_dict() if order.payment_info else None,
    }
