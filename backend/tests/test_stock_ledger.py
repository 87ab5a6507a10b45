# Overview: Pytest coverage for the stock ledger service.

"""
Stock Ledger Tests

- decrements are checked for every line before any write
- reversal is guarded by orders.stock_reversed_at
- manual adjustments never take stock below zero
"""

from types import SimpleNamespace

import pytest

from trendora.extensions import db
from trendora.models import Product
from trendora.services import order_service, stock_ledger_service
from trendora.services.stock_ledger_service import (
    OutOfStockError,
    ProductNotFoundError,
    StockAlreadyReversedError,
)


def _line(product_id, quantity):
    return SimpleNamespace(product_id=product_id, quantity=quantity)


def _stock(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id).stock


class TestApplyOrderCreation:
    def test_decrements_each_product(self, db_session, make_product):
        a = make_product(stock=10)
        b = make_product(stock=3)

        stock_ledger_service.apply_order_creation([_line(a["id"], 4), _line(b["id"], 3)])
        db_session.commit()

        assert _stock(a["id"]) == 6
        assert _stock(b["id"]) == 0

    def test_reports_every_short_line(self, db_session, make_product):
        a = make_product(stock=1, name="Scarf")
        b = make_product(stock=0, name="Belt")
        c = make_product(stock=9)

        with pytest.raises(OutOfStockError) as exc:
            stock_ledger_service.apply_order_creation([_line(a["id"], 2), _line(c["id"], 1), _line(b["id"], 1)])
        db_session.rollback()

        short = exc.value.details["items"]
        assert [s["name"] for s in short] == ["Scarf", "Belt"]
        assert short[1] == {"product_id": b["id"], "name": "Belt", "requested_quantity": 1, "available": 0}
        assert _stock(c["id"]) == 9

    def test_missing_product(self, db_session, make_product):
        a = make_product(stock=5)
        with pytest.raises(ProductNotFoundError) as exc:
            stock_ledger_service.apply_order_creation([_line(a["id"], 1), _line(424242, 1)])
        db_session.rollback()

        assert exc.value.details == {"product_id": 424242}
        assert _stock(a["id"]) == 5

    def test_empty_order_is_noop(self, db_session):
        stock_ledger_service.apply_order_creation([])


class TestReverseOrder:
    def test_reverse_once(self, db_session, customer, make_product):
        p = make_product(stock=5)
        order = order_service.create_order(customer, items=[{"product_id": p["id"], "quantity": 2}], payment_method="Card")
        assert _stock(p["id"]) == 3

        stock_ledger_service.reverse_order(order)
        db_session.commit()

        assert _stock(p["id"]) == 5
        assert order.stock_reversed_at is not None

    def test_second_reverse_raises(self, db_session, customer, make_product):
        p = make_product(stock=5)
        order = order_service.create_order(customer, items=[{"product_id": p["id"], "quantity": 2}], payment_method="Card")
        stock_ledger_service.reverse_order(order)
        db_session.commit()

        with pytest.raises(StockAlreadyReversedError):
            stock_ledger_service.reverse_order(order)
        db_session.rollback()

        assert _stock(p["id"]) == 5

    def test_cancel_then_reverse_rejected(self, db_session, customer, make_product):
        p = make_product(stock=5)
        order = order_service.create_order(customer, items=[{"product_id": p["id"], "quantity": 1}], payment_method="Transfer")
        order_service.cancel_order(customer, order.id)

        with pytest.raises(StockAlreadyReversedError):
            stock_ledger_service.reverse_order(order)
        db_session.rollback()
        assert _stock(p["id"]) == 5


class TestAdjustStock:
    def test_restock_and_remove(self, db_session, make_product):
        p = make_product(stock=5)
        assert stock_ledger_service.adjust_stock(p["id"], 7).stock == 12
        assert stock_ledger_service.adjust_stock(p["id"], -12).stock == 0
        db_session.commit()
        assert _stock(p["id"]) == 0

    def test_never_below_zero(self, db_session, make_product):
        p = make_product(stock=2)
        with pytest.raises(OutOfStockError):
            stock_ledger_service.adjust_stock(p["id"], -3)
        db_session.rollback()
        assert _stock(p["id"]) == 2

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            stock_ledger_service.adjust_stock(999999, 1)
