# Overview: Keeps product stock consistent with the set of live orders.

"""
Stock Ledger.

INVARIANTS:
- products.stock >= 0 at all times (DB check constraint + conditional updates)
- every committed order's quantities are decremented exactly once
- an order's quantities are credited back at most once (orders.stock_reversed_at)

Nothing here commits. Callers own the unit of work and roll back on any
raised error, so a failed order never leaves a partial decrement behind.
"""

from __future__ import annotations

from collections import OrderedDict

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Product
from trendora.time_utils import utcnow


class StockLedgerError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(StockLedgerError):
    pass


class OutOfStockError(StockLedgerError):
    pass


class StockAlreadyReversedError(StockLedgerError):
    pass


def _aggregate(items) -> "OrderedDict[int, int]":
    """Sum quantities per product, keeping first-seen order for error reporting."""
    totals: "OrderedDict[int, int]" = OrderedDict()
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + int(item.quantity)
    return totals


def _conditional_decrement(product_id: int, quantity: int) -> bool:
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session="fetch")
    )
    return db.session.execute(stmt).rowcount == 1


def _credit(product_id: int, quantity: int) -> bool:
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session="fetch")
    )
    return db.session.execute(stmt).rowcount == 1


def apply_order_creation(items) -> None:
    """
    Decrement stock for every line of a new order.

    items: iterable of objects with product_id and quantity (OrderItem rows).

    All products are checked before any write so the caller gets one error
    listing every short line. The decrement itself is conditional
    (stock >= qty); a zero rowcount means a concurrent checkout took the
    stock after the check.
    """
    totals = _aggregate(items)
    if not totals:
        return

    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(list(totals))).all()
    }

    for product_id in totals:
        if product_id not in products:
            raise ProductNotFoundError(
                f"Product {product_id} not found",
                details={"product_id": product_id},
            )

    insufficient = []
    for product_id, qty in totals.items():
        product = products[product_id]
        if product.stock < qty:
            insufficient.append({
                "product_id": product_id,
                "name": product.name,
                "requested_quantity": qty,
                "available": product.stock,
            })
    if insufficient:
        raise OutOfStockError("Insufficient stock", details={"items": insufficient})

    for product_id, qty in totals.items():
        if not _conditional_decrement(product_id, qty):
            product = db.session.get(Product, product_id, populate_existing=True)
            raise OutOfStockError(
                "Insufficient stock",
                details={"items": [{
                    "product_id": product_id,
                    "name": product.name if product else None,
                    "requested_quantity": qty,
                    "available": product.stock if product else 0,
                }]},
            )


def reverse_order(order) -> None:
    """
    Credit an order's quantities back and stamp the reversal marker.

    Lines whose product was deleted since checkout are skipped.
    """
    if order.stock_reversed_at is not None:
        raise StockAlreadyReversedError(
            f"Stock for order {order.invoice_number} was already reversed",
            details={"order_id": order.id},
        )

    for product_id, qty in _aggregate(i for i in order.items if i.product_id is not None).items():
        if not _credit(product_id, qty):
            current_app.logger.warning(
                "Order %s: product %s no longer exists, %s unit(s) not restocked",
                order.invoice_number, product_id, qty,
            )

    order.stock_reversed_at = utcnow()


def adjust_stock(product_id: int, delta: int) -> Product:
    """
    Manual stock correction (admin). Positive delta restocks, negative removes.

    Raises OutOfStockError if the result would go below zero.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found", details={"product_id": product_id})

    delta = int(delta)
    if delta == 0:
        return product

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock + delta >= 0)
        .values(stock=Product.stock + delta, version_id=Product.version_id + 1)
        .execution_options(synchronize_session="fetch")
    )
    if db.session.execute(stmt).rowcount != 1:
        raise OutOfStockError(
            "Stock cannot go below zero",
            details={"items": [{
                "product_id": product_id,
                "name": product.name,
                "requested_quantity": -delta,
                "available": product.stock,
            }]},
        )
    db.session.refresh(product)
    return product
