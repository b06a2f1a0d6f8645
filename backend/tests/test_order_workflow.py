# Overview: Pytest coverage for checkout, order history and order detail.

"""
Order Workflow Tests

Verifies:
- Checkout turns the cart into an order with a correct total and receipt
- Stock is re-checked at checkout and decremented exactly once
- Failures at any step leave no order behind and the cart untouched
- Line prices are snapshots, unaffected by later price changes
- Orders are only visible to their owner
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from storefront.models import Cart, CartItem, Order, OrderItem, PaymentInfo, Product, ShippingInfo
from storefront.services import cart_service, order_service
from storefront.services.concurrency import run_with_retry
from storefront.validation import InvalidStateError, NotFoundError

from conftest import VALID_CHECKOUT, make_product


SHIPPING = {k: v for k, v in VALID_CHECKOUT["shippingInfo"].items()}
PAYMENT = {k: v for k, v in VALID_CHECKOUT["paymentInfo"].items()}


def _cart_lines(db_session, user_id):
    cart = db_session.query(Cart).filter_by(user_id=user_id).first()
    if cart is None:
        return []
    return db_session.query(CartItem).filter_by(cart_id=cart.id).all()


def _stock(db_session, product_id):
    db_session.expire_all()
    return db_session.get(Product, product_id).stock


# =============================================================================
# HAPPY PATH
# =============================================================================


class TestPlaceOrder:

    def test_checkout_totals_stock_and_cart(self, db_session, user, product):
        """P at 32.50 x 3 -> 97.50, stock 8 -> 5, cart emptied."""
        cart_service.add_item(user.id, product.id, 3)

        receipt = order_service.place_order(user.id, SHIPPING, PAYMENT)

        assert receipt["total_price"] == "97.50"
        assert receipt["status"] == "pending"
        assert receipt["items_count"] == 1
        assert _stock(db_session, product.id) == 5
        assert _cart_lines(db_session, user.id) == []

        order = db_session.get(Order, receipt["order_id"])
        assert order.total_price == Decimal("97.50")
        assert order.user_id == user.id
        assert len(order.items) == 1
        assert order.items[0].price == Decimal("32.50")
        assert order.items[0].quantity == 3

    def test_cart_row_survives_checkout(self, db_session, user, product):
        cart_service.add_item(user.id, product.id, 1)
        order_service.place_order(user.id, SHIPPING, PAYMENT)

        db_session.expire_all()
        assert db_session.query(Cart).filter_by(user_id=user.id).count() == 1

    def test_receipt_shape(self, db_session, user, product):
        cart_service.add_item(user.id, product.id, 1)

        receipt = order_service.place_order(user.id, SHIPPING, PAYMENT, order_note="Gift wrap please")

        assert receipt["order_note"] == "Gift wrap please"
        assert receipt["shipping_info"] == {
            "first_name": "Alice",
            "last_name": "Liddell",
            "email": "alice@example.com",
            "address": "12 Rabbit Hole Lane",
            "city": "Oxford",
            "state": "OX",
            "zip_code": "12345",
            "country": "United States",
        }
        assert receipt["payment_info"] == {
            "card_last_four": "4242",
            "card_type": "visa",
            "payment_status": "pending",
        }

    def test_explicit_country_is_kept(self, db_session, user, product):
        cart_service.add_item(user.id, product.id, 1)
        shipping = dict(SHIPPING, country="Canada")

        receipt = order_service.place_order(user.id, shipping, PAYMENT)

        assert receipt["shipping_info"]["country"] == "Canada"

    def test_multi_line_total_rounds_half_up(self, db_session, user, category):
        a = make_product(db_session, category, "Yarn", price="0.35", stock=10)
        b = make_product(db_session, category, "Hook", price="10.99", stock=10)
        cart_service.add_item(user.id, a.id, 3)
        cart_service.add_item(user.id, b.id, 2)

        receipt = order_service.place_order(user.id, SHIPPING, PAYMENT)

        # 1.05 + 21.98
        assert receipt["total_price"] == "23.03"
        assert receipt["items_count"] == 2

        order = db_session.get(Order, receipt["order_id"])
        assert order.total_price == sum(item.line_total for item in order.items)

    def test_payment_status_always_pending(self, db_session, user, product):
        cart_service.add_item(user.id, product.id, 1)
        payment = dict(PAYMENT, payment_status="completed")

        receipt = order_service.place_order(user.id, SHIPPING, payment)

        assert receipt["payment_info"]["payment_status"] == "pending"
        info = db_session.query(PaymentInfo).filter_by(order_id=receipt["order_id"]).one()
        assert info.payment_status == "pending"


# =============================================================================
# REJECTED CHECKOUTS
# =============================================================================


class TestCheckoutRejections:

    def test_no_cart(self, db_session, user):
        with pytest.raises(InvalidStateError, match="Cart is empty"):
            order_service.place_order(user.id, SHIPPING, PAYMENT)

        assert db_session.query(Order).count() == 0

    def test_empty_cart(self, db_session, user, product):
        cart_service.add_item(user.id, product.id, 1)
        cart_service.clear_cart(user.id)

        with pytest.raises(InvalidStateError, match="Cart is empty"):
            order_service.place_order(user.id, SHIPPING, PAYMENT)

        assert db_session.query(Order).count() == 0

    def test_insufficient_stock_names_product(self, db_session, user, scarce_product):
        """Q in cart at 5, stock dropped to 2 -> rejected, nothing changes."""
        scarce_product.stock = 10
        db_session.commit()
        cart_service.add_item(user.id, scarce_product.id, 5)

        scarce_product = db_session.get(Product, scarce_product.id)
        scarce_product.stock = 2
        db_session.commit()

        with pytest.raises(InvalidStateError) as exc:
            order_service.place_order(user.id, SHIPPING, PAYMENT)

        assert "Gary Snail" in str(exc.value)
        assert "Available: 2" in str(exc.value)
        assert exc.value.details["available"] == 2
        assert exc.value.details["requested"] == 5

        db_session.expire_all()
        assert db_session.query(Order).count() == 0
        assert _stock(db_session, scarce_product.id) == 2
        lines = _cart_lines(db_session, user.id)
        assert [(l.product_id, l.quantity) for l in lines] == [(scarce_product.id, 5)]

    def test_second_line_short_aborts_everything(self, db_session, user, product, scarce_product):
        cart_service.add_item(user.id, product.id, 2)
        cart_service.add_item(user.id, scarce_product.id, 2)

        scarce = db_session.get(Product, scarce_product.id)
        scarce.stock = 1
        db_session.commit()

        with pytest.raises(InvalidStateError):
            order_service.place_order(user.id, SHIPPING, PAYMENT)

        assert db_session.query(Order).count() == 0
        assert _stock(db_session, product.id) == 8
        assert len(_cart_lines(db_session, user.id)) == 2


# =============================================================================
# ATOMICITY
# =============================================================================


class TestAtomicity:

    def test_failure_mid_sequence_rolls_back(self, db_session, user, product, category, monkeypatch):
        other = make_product(db_session, category, "Pixie", price="15.00", stock=10)
        cart_service.add_item(user.id, product.id, 2)
        cart_service.add_item(user.id, other.id, 1)

        real_decrement = order_service.decrement_stock
        calls = []

        def flaky_decrement(p, quantity):
            calls.append(p.id)
            if len(calls) == 2:
                raise RuntimeError("storage went away")
            real_decrement(p, quantity)

        monkeypatch.setattr(order_service, "decrement_stock", flaky_decrement)

        with pytest.raises(RuntimeError):
            order_service.place_order(user.id, SHIPPING, PAYMENT)

        db_session.expire_all()
        assert len(calls) == 2
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert db_session.query(ShippingInfo).count() == 0
        assert db_session.query(PaymentInfo).count() == 0
        assert _stock(db_session, product.id) == 8
        assert _stock(db_session, other.id) == 10
        assert len(_cart_lines(db_session, user.id)) == 2

    def test_guarded_decrement_refuses_to_go_negative(self, db_session, scarce_product):
        p = db_session.get(Product, scarce_product.id)

        with pytest.raises(InvalidStateError, match="Available: 2"):
            order_service.decrement_stock(p, 3)

        db_session.rollback()
        assert _stock(db_session, scarce_product.id) == 2

    def test_guard_catches_stock_lost_after_check(self, db_session, user, scarce_product, monkeypatch):
        """Simulates a concurrent checkout taking stock between check and decrement."""
        cart_service.add_item(user.id, scarce_product.id, 2)

        def check_then_lose_stock(lines):
            db_session.query(Product).filter_by(id=scarce_product.id).update({"stock": 1})

        monkeypatch.setattr(order_service, "_validate_stock", check_then_lose_stock)

        with pytest.raises(InvalidStateError, match="Available: 1"):
            order_service.place_order(user.id, SHIPPING, PAYMENT)

        assert db_session.query(Order).count() == 0
        # The simulated competing write was inside the rolled back unit too
        assert _stock(db_session, scarce_product.id) == 2
        assert len(_cart_lines(db_session, user.id)) == 1

    def test_retry_on_transient_lock(self, db_session):
        attempts = []

        def op():
            attempts.append(1)
            if len(attempts) < 3:
                raise OperationalError("UPDATE products", {}, Exception("database is locked"))
            return "ok"

        assert run_with_retry(op, backoff_base=0) == "ok"
        assert len(attempts) == 3

    def test_retry_gives_up(self, db_session):
        def op():
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            run_with_retry(op, attempts=2, backoff_base=0)


# =============================================================================
# READS
# =============================================================================


class TestOrderReads:

    def test_price_snapshot_is_stable(self, db_session, user, product):
        cart_service.add_item(user.id, product.id, 3)
        receipt = order_service.place_order(user.id, SHIPPING, PAYMENT)

        p = db_session.get(Product, product.id)
        p.price = Decimal("99.99")
        db_session.commit()

        detail = order_service.get_order(user.id, receipt["order_id"])
        assert detail["total_price"] == "97.50"
        assert detail["items"][0]["price"] == "32.50"
        assert detail["items"][0]["item_total"] == "97.50"

    def test_order_detail(self, db_session, user, product):
        cart_service.add_item(user.id, product.id, 2)
        receipt = order_service.place_order(user.id, SHIPPING, PAYMENT, order_note="Leave at door")

        detail = order_service.get_order(user.id, receipt["order_id"])

        assert detail["order_id"] == receipt["order_id"]
        assert detail["status"] == "pending"
        assert detail["order_note"] == "Leave at door"
        assert detail["orderedAt"].endswith("Z")
        assert detail["items_count"] == 1
        item = detail["items"][0]
        assert item["product_id"] == product.id
        assert item["name"] == "Crochet Teddy Bear"
        assert item["quantity"] == 2
        assert item["image_url"] == "http://assets.test/public/images/crochet-teddy-bear.svg"
        assert detail["shipping_info"]["phone"] == "5551234567"
        assert detail["payment_info"]["card_last_four"] == "4242"
        assert detail["payment_info"]["payment_status"] == "pending"

    def test_foreign_order_is_not_found(self, db_session, user, other_user, product):
        cart_service.add_item(user.id, product.id, 1)
        receipt = order_service.place_order(user.id, SHIPPING, PAYMENT)

        with pytest.raises(NotFoundError, match="Order not found"):
            order_service.get_order(other_user.id, receipt["order_id"])

    def test_missing_order_is_not_found(self, db_session, user):
        with pytest.raises(NotFoundError, match="Order not found"):
            order_service.get_order(user.id, 424242)

    def test_history_newest_first_and_paginated(self, db_session, user, other_user, product):
        ids = []
        for _ in range(3):
            cart_service.add_item(user.id, product.id, 1)
            ids.append(order_service.place_order(user.id, SHIPPING, PAYMENT)["order_id"])

        cart_service.add_item(other_user.id, product.id, 1)
        order_service.place_order(other_user.id, SHIPPING, PAYMENT)

        page1 = order_service.get_order_history(user.id, page=1, limit=2)
        assert [o["id"] for o in page1["orders"]] == [ids[2], ids[1]]
        assert page1["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalItems": 3,
            "itemsPerPage": 2,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

        page2 = order_service.get_order_history(user.id, page=2, limit=2)
        assert [o["id"] for o in page2["orders"]] == [ids[0]]
        assert page2["pagination"]["hasNextPage"] is False
        assert page2["pagination"]["hasPrevPage"] is True

    def test_history_empty(self, db_session, user):
        result = order_service.get_order_history(user.id)
        assert result["orders"] == []
        assert result["pagination"]["totalItems"] == 0
        assert result["pagination"]["totalPages"] == 0
