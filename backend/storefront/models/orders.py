from __future__ import annotations

from ..extensions import db
from ..money import format_money, to_money
from ..time_utils import to_utc_z, utcnow

# Only "pending" is ever written by checkout; later states belong to fulfilment.
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "completed", "failed")


def _in_clause(column: str, values) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


class Order(db.Model):
    """
    Order aggregate root.

    OrderItem, ShippingInfo and PaymentInfo have no meaning outside their
    Order and are created in the same transaction. total_price is computed
    once at checkout and never recalculated.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            _in_clause("status", ORDER_STATUSES),
            name="ck_orders_status",
        ),
        db.Index("ix_orders_user_ordered_at", "user_id", "ordered_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    ordered_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    order_note = db.Column(db.Text, nullable=True)

    items = db.relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    shipping_info = db.relationship("ShippingInfo", back_populates="order", uselist=False, cascade="all, delete-orphan")
    payment_info = db.relationship("PaymentInfo", back_populates="order", uselist=False, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Order id={self.id} user_id={self.user_id} status={self.status!r}>"

    def to_summary_dict(self) -> dict:
        return {
            "id": self.id,
            "total_price": format_money(self.total_price),
            "status": self.status,
            "orderedAt": to_utc_z(self.ordered_at),
            "order_note": self.order_note,
        }


class OrderItem(db.Model):
    """
    Order line. price is a snapshot copied from Product.price at checkout,
    deliberately not a live reference.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "product_id", name="uq_order_items_order_product"),
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    @property
    def line_total(self):
        return to_money(self.price * self.quantity)

    def to_dict(self) -> dict:
        product = self.product
        return {
            "product_id": self.product_id,
            "name": product.name if product else None,
            "description": product.description if product else None,
            "image_url": product.image_url if product else None,
            "quantity": self.quantity,
            "price": format_money(self.price),
            "item_total": format_money(self.line_total),
        }


class ShippingInfo(db.Model):
    __tablename__ = "shipping_info"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_shipping_info_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(40), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(120), nullable=False)
    state = db.Column(db.String(120), nullable=False)
    zip_code = db.Column(db.String(20), nullable=False)
    country = db.Column(db.String(120), nullable=False, default="United States")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="shipping_info")

    def to_dict(self) -> dict:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
        }


class PaymentInfo(db.Model):
    """
    Card summary for an order. Only the last four digits are ever stored.
    payment_status is owned by settlement, which is outside this service.
    """
    __tablename__ = "payment_info"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_payment_info_order"),
        db.CheckConstraint(
            _in_clause("payment_status", PAYMENT_STATUSES),
            name="ck_payment_info_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    card_last_four = db.Column(db.String(4), nullable=False)
    card_type = db.Column(db.String(40), nullable=False)
    payment_status = db.Column(db.String(20), nullable=False, default="pending")
    transaction_id = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="payment_info")

    def to_dict(self) -> dict:
        return {
            "card_last_four": self.card_last_four,
            "card_type": self.card_type,
            "payment_status": self.payment_status,
            "transaction_id": self.transaction_id,
        }
