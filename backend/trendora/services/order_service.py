# Overview: Order lifecycle (checkout, payment, cancellation, admin edits, removal) on top of the stock ledger.

"""
Order Lifecycle

STATES:
    pending -> processing -> shipped -> delivered
    cancelled / refunded reachable from any non-terminal state

STOCK:
- create_order decrements through stock_ledger_service.apply_order_creation
  inside the same transaction as the order insert
- cancel_order / remove_order credit back through reverse_order, which is
  guarded by orders.stock_reversed_at
- refunded does not restock (goods are not assumed to come back)

Customer emails go out after commit and never affect the outcome.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Order, OrderItem, Product
from ..models.orders import PAYMENT_METHODS, PAYMENT_STATUSES, REFUND_STATUSES
from ..pagination import paginate
from ..validation import ForbiddenError, NotFoundError, ValidationError, normalize_address
from . import catalog_service, notification_service, stock_ledger_service
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_invoice_number
from .stock_ledger_service import ProductNotFoundError, StockLedgerError


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "cancelled", "refunded"}),
    "processing": frozenset({"shipped", "cancelled", "refunded"}),
    "shipped": frozenset({"delivered", "cancelled", "refunded"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
    "refunded": frozenset(),
}

DEFAULT_CANCEL_REASON = "Order cancelled by customer"
DEFAULT_REFUND_REASON = "Order refunded"
ORDER_EDITOR_ROLES = ("admin", "manager", "staff")


class OrderTransitionError(Exception):
    """Requested status change is not allowed from the current status (400)."""
    pass


def can_transition(current: str, requested: str) -> bool:
    return requested == current or requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def _is_customer(actor) -> bool:
    return getattr(actor, "kind", None) == "customer"


def _load(order_id: int, *, lock: bool = False) -> Order:
    q = db.session.query(Order).filter(Order.id == order_id)
    if lock:
        q = lock_for_update(q)
    order = q.first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _ensure_owner_or_role(actor, order: Order, roles: tuple[str, ...], action: str) -> None:
    if _is_customer(actor):
        if order.customer_id != actor.id:
            raise ForbiddenError(f"Not authorized to {action} this order")
        return
    if actor.role not in roles:
        raise ForbiddenError(f"User role {actor.role} is not authorized to {action} this order")


def _notify(send, order: Order) -> None:
    customer = order.customer
    if customer is None:
        return
    try:
        send(order, customer)
    except Exception:
        current_app.logger.warning("Failed to notify customer about order %s", order.invoice_number, exc_info=True)


# --- Checkout ----------------------------------------------------------------

def _parse_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Order must contain at least one item")

    parsed = []
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError("product_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("quantity must be a positive integer")
        variant = raw.get("variant")
        variant = str(variant).strip() if variant not in (None, "") else None
        parsed.append({"product_id": product_id, "quantity": quantity, "variant": variant})
    return parsed


def _line_for(product: Product, quantity: int, variant: str | None) -> OrderItem:
    unit_price = product.discounted_price_cents
    if variant:
        option = catalog_service.find_variant(product, variant)
        if option is None:
            raise ValidationError(f"Variant {variant!r} is not available for {product.name}")
        unit_price += option["additional_price_cents"]
    return OrderItem(
        product_id=product.id,
        name=product.name,
        unit_price_cents=unit_price,
        quantity=quantity,
        variant=variant,
        line_total_cents=unit_price * quantity,
    )


def create_order(customer: Customer, *, items, payment_method, shipping_address=None) -> Order:
    """
    Checkout: price snapshot, invoice number, stock decrement, commit, receipt email.

    All-or-nothing: any ledger failure rolls back the order insert and every
    decrement made so far.
    """
    lines = _parse_items(items)
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    address = (
        normalize_address(shipping_address) if shipping_address not in (None, "", {})
        else dict(customer.shipping_address)
    )
    customer_id = customer.id

    def _op() -> int:
        wanted = {line["product_id"] for line in lines}
        products = {
            p.id: p for p in db.session.query(Product).filter(Product.id.in_(wanted)).all()
        }
        for line in lines:
            if line["product_id"] not in products:
                raise ProductNotFoundError(
                    f"Product {line['product_id']} not found",
                    details={"product_id": line["product_id"]},
                )

        order_items = [
            _line_for(products[line["product_id"]], line["quantity"], line["variant"])
            for line in lines
        ]
        order = Order(
            invoice_number=next_invoice_number(),
            customer_id=customer_id,
            items=order_items,
            total_amount_cents=sum(i.line_total_cents for i in order_items),
            shipping_address=address,
            payment_method=payment_method,
            payment_status="pending",
            status="pending",
            refund_amount_cents=0,
        )
        db.session.add(order)
        db.session.flush()

        stock_ledger_service.apply_order_creation(order.items)
        db.session.commit()
        return order.id

    try:
        order_id = run_with_retry(_op)
    except (StockLedgerError, ValidationError):
        db.session.rollback()
        raise

    order = db.session.get(Order, order_id)
    current_app.logger.info(
        "Order %s created for customer %s: %s cents",
        order.invoice_number, customer_id, order.total_amount_cents,
    )
    _notify(notification_service.send_order_confirmation_email, order)
    return order


# --- Reads -------------------------------------------------------------------

def list_orders(actor, *, search=None, status=None, page=None, per_page=None) -> dict:
    q = db.session.query(Order)
    if _is_customer(actor):
        q = q.filter(Order.customer_id == actor.id)
    if status:
        q = q.filter(Order.status == status)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Order.invoice_number.ilike(like),
            Order.items.any(OrderItem.name.ilike(like)),
        ))
    q = q.order_by(Order.ordered_at.desc(), Order.id.desc())
    return paginate(q, page=page, per_page=per_page, serialize=lambda o: o.to_dict())


def get_order(actor, order_id: int) -> Order:
    order = _load(order_id)
    if _is_customer(actor) and order.customer_id != actor.id:
        raise ForbiddenError("Not authorized to view this order")
    return order


# --- Lifecycle ---------------------------------------------------------------

def process_payment(actor, order_id: int) -> Order:
    """Mark paid; a pending order moves on to processing."""
    def _op() -> Order:
        order = _load(order_id, lock=True)
        _ensure_owner_or_role(actor, order, ("admin",), "process payment for")
        if order.status in ("cancelled", "refunded"):
            raise OrderTransitionError(f"Cannot process payment for a {order.status} order")

        order.payment_status = "completed"
        if order.status == "pending":
            order.status = "processing"
        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except (OrderTransitionError, ForbiddenError, NotFoundError):
        db.session.rollback()
        raise
    _notify(notification_service.send_order_update_email, order)
    return order


def _cancel(order: Order, reason: str | None) -> None:
    if order.status == "cancelled":
        raise OrderTransitionError("Order is already cancelled")
    if not can_transition(order.status, "cancelled"):
        raise OrderTransitionError(f"Cannot cancel a {order.status} order")

    order.status = "cancelled"
    order.payment_status = "failed"
    order.refund_amount_cents = order.total_amount_cents
    order.refund_status = "pending"
    order.refund_reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
    stock_ledger_service.reverse_order(order)


def cancel_order(actor, order_id: int, reason: str | None = None) -> Order:
    """
    Owning customer or admin. Opens a refund for the full amount and restocks.
    A second cancel is rejected and leaves stock alone.
    """
    def _op() -> Order:
        order = _load(order_id, lock=True)
        _ensure_owner_or_role(actor, order, ("admin",), "cancel")
        _cancel(order, reason)
        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except (OrderTransitionError, StockLedgerError, ForbiddenError, NotFoundError):
        db.session.rollback()
        raise

    current_app.logger.info("Order %s cancelled", order.invoice_number)
    _notify(notification_service.send_order_update_email, order)
    return order


def _clean_refund(order: Order, refund) -> dict:
    if not isinstance(refund, dict):
        raise ValidationError("refund must be an object")
    unknown = set(refund) - {"amount_cents", "status", "reason"}
    if unknown:
        raise ValidationError(f"Unknown refund field: {', '.join(sorted(unknown))}")

    out = {}
    if refund.get("amount_cents") is not None:
        amount = refund["amount_cents"]
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("refund.amount_cents must be an integer")
        if not 0 <= amount <= order.total_amount_cents:
            raise ValidationError("refund.amount_cents must be between 0 and the order total")
        out["refund_amount_cents"] = amount
    if refund.get("status") is not None:
        if refund["status"] not in REFUND_STATUSES:
            raise ValidationError(f"refund.status must be one of: {', '.join(REFUND_STATUSES)}")
        out["refund_status"] = refund["status"]
    if refund.get("reason") is not None:
        reason = str(refund["reason"]).strip()
        if len(reason) > 500:
            raise ValidationError("refund.reason cannot exceed 500 characters")
        out["refund_reason"] = reason or None
    return out


def update_order(actor, order_id: int, patch: dict) -> Order:
    """
    Admin: status (validated against ALLOWED_TRANSITIONS).
    Staff roles: payment_status, tracking_number, refund.
    Customers: only {"status": "cancelled"} on their own order.
    """
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("Nothing to update")
    unknown = set(patch) - {"status", "payment_status", "tracking_number", "refund", "reason"}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    if _is_customer(actor):
        if patch.get("status") != "cancelled" or set(patch) - {"status", "reason"}:
            raise ForbiddenError("Customers can only cancel their own orders")
        return cancel_order(actor, order_id, patch.get("reason"))

    if actor.role not in ORDER_EDITOR_ROLES:
        raise ForbiddenError(f"User role {actor.role} is not authorized to update orders")
    if "status" in patch and actor.role != "admin":
        raise ForbiddenError("Only admins can update order status")

    requested = patch.get("status")
    if requested is not None and requested not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"status must be one of: {', '.join(ALLOWED_TRANSITIONS)}")
    if patch.get("payment_status") is not None and patch["payment_status"] not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")

    def _op() -> Order:
        order = _load(order_id, lock=True)

        if requested is not None and requested != order.status:
            if not can_transition(order.status, requested):
                raise OrderTransitionError(f"Cannot change status from {order.status} to {requested}")
            if requested == "cancelled":
                reason = patch.get("reason") or (patch.get("refund") or {}).get("reason")
                _cancel(order, reason)
            else:
                order.status = requested
                if requested == "refunded" and order.refund_status is None:
                    order.refund_amount_cents = order.total_amount_cents
                    order.refund_status = "pending"
                    order.refund_reason = DEFAULT_REFUND_REASON

        if patch.get("payment_status") is not None:
            order.payment_status = patch["payment_status"]
        if "tracking_number" in patch:
            tracking = str(patch["tracking_number"] or "").strip()
            if len(tracking) > 128:
                raise ValidationError("tracking_number cannot exceed 128 characters")
            order.tracking_number = tracking or None
        if patch.get("refund") is not None:
            for k, v in _clean_refund(order, patch["refund"]).items():
                setattr(order, k, v)

        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except (OrderTransitionError, StockLedgerError, ValidationError, NotFoundError):
        db.session.rollback()
        raise

    _notify(notification_service.send_order_update_email, order)
    return order


def remove_order(actor, order_id: int) -> None:
    """Admin hard delete. Restocks first unless the order was already reversed."""
    if _is_customer(actor) or actor.role != "admin":
        raise ForbiddenError("Only admins can remove orders")

    def _op() -> str:
        order = _load(order_id, lock=True)
        if order.stock_reversed_at is None:
            stock_ledger_service.reverse_order(order)
        invoice = order.invoice_number
        db.session.delete(order)
        db.session.commit()
        return invoice

    try:
        invoice = run_with_retry(_op)
    except (StockLedgerError, NotFoundError):
        db.session.rollback()
        raise
    current_app.logger.info("Order %s removed", invoice)


def manage_stock(product_id: int, quantity) -> Product:
    """Admin stock correction; quantity is a signed delta."""
    if isinstance(quantity, bool):
        raise ValidationError("quantity must be an integer")
    try:
        delta = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be an integer")
    if isinstance(quantity, float) and quantity != delta:
        raise ValidationError("quantity must be an integer")

    def _op() -> Product:
        product = stock_ledger_service.adjust_stock(product_id, delta)
        db.session.commit()
        return product

    try:
        product = run_with_retry(_op)
    except StockLedgerError:
        db.session.rollback()
        raise
    current_app.logger.info("Stock for product %s adjusted by %+d to %s", product_id, delta, product.stock)
    return product
