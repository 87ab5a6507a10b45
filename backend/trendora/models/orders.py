from __future__ import annotations

from ..extensions import db
from trendora.time_utils import to_utc_z


ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled", "refunded")
PAYMENT_STATUSES = ("pending", "completed", "failed")
PAYMENT_METHODS = ("Transfer", "Card")
REFUND_STATUSES = ("pending", "processed", "rejected")


class Order(db.Model):
    """
    Customer order (checkout document).

    Line items capture name and unit price at creation time; they are a price
    snapshot, not a live join against products.

    STOCK: stock_reversed_at is the idempotency marker for the stock ledger.
    Once set, the order's quantities have been credited back and a second
    reversal is refused.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_customer_ordered", "customer_id", "ordered_at"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "INV-000123")
    invoice_number = db.Column(db.String(64), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    shipping_address = db.Column(db.JSON, nullable=False)
    tracking_number = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending")
    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    # Refund sub-record
    refund_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    refund_status = db.Column(db.String(16), nullable=True)
    refund_reason = db.Column(db.String(500), nullable=True)

    stock_reversed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    ordered_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} invoice={self.invoice_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer": {
                "id": self.customer_id,
                "fullname": self.customer.fullname if self.customer else None,
                "email": self.customer.email if self.customer else None,
            },
            "items": [item.to_dict() for item in self.items],
            "total_amount_cents": self.total_amount_cents,
            "shipping_address": self.shipping_address,
            "tracking_number": self.tracking_number,
            "status": self.status,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "refund": {
                "amount_cents": self.refund_amount_cents,
                "status": self.refund_status,
                "reason": self.refund_reason,
            },
            "stock_reversed_at": to_utc_z(self.stock_reversed_at),
            "ordered_at": to_utc_z(self.ordered_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # Nullable: the product may be deleted later, the snapshot survives
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    name = db.Column(db.String(100), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    variant = db.Column(db.String(128), nullable=True)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "variant": self.variant,
            "line_total_cents": self.line_total_cents,
        }
