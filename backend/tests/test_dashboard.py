# Overview: Pytest coverage for dashboard counts and monthly sales trends.

from datetime import datetime

from trendora.extensions import db
from trendora.models import Order
from trendora.services import dashboard_service, order_service

from conftest import headers_for


def _order(customer, product, quantity=1):
    return order_service.create_order(
        customer,
        items=[{"product_id": product["id"], "quantity": quantity}],
        payment_method="Card",
    )


class TestDashboardStats:
    def test_counts_and_revenue(self, db_session, customer, make_customer, make_product):
        make_customer()
        p = make_product(price_cents=1000, stock=20)
        _order(customer, p, 2)
        _order(customer, p, 3)
        cancelled = _order(customer, p, 4)
        order_service.cancel_order(customer, cancelled.id)

        stats = dashboard_service.dashboard_stats()

        assert stats == {
            "total_customers": 2,
            "total_orders": 3,
            "total_products": 1,
            "total_revenue_cents": 5000,
        }

    def test_empty_store(self, db_session):
        assert dashboard_service.dashboard_stats()["total_revenue_cents"] == 0
        assert dashboard_service.sales_trends() == []


class TestSalesTrends:
    def test_groups_completed_payments_by_month(self, db_session, customer, admin, make_product):
        p = make_product(price_cents=1000, stock=50)
        march = [_order(customer, p, 1), _order(customer, p, 2)]
        april = _order(customer, p, 5)
        unpaid = _order(customer, p, 7)

        for order in march:
            order_service.process_payment(admin, order.id)
            order.ordered_at = datetime(2026, 3, 15, 12, 0)
        order_service.process_payment(admin, april.id)
        april.ordered_at = datetime(2026, 4, 2, 9, 30)
        unpaid.ordered_at = datetime(2026, 4, 3, 9, 30)
        db_session.commit()

        trends = dashboard_service.sales_trends()

        assert trends == [
            {"year": 2026, "month": 4, "total_sales_cents": 5000, "order_count": 1},
            {"year": 2026, "month": 3, "total_sales_cents": 3000, "order_count": 2},
        ]

    def test_route_shape(self, client, make_staff, db_session):
        resp = client.get("/api/dashboard/sales-trends", headers=headers_for(make_staff("staff")))
        assert resp.status_code == 200
        assert resp.json == {"items": [], "count": 0}

    def test_stats_route(self, client, make_staff, make_product):
        make_product()
        resp = client.get("/api/dashboard/stats", headers=headers_for(make_staff("manager")))
        assert resp.status_code == 200
        assert resp.json["total_products"] == 1
        assert db.session.query(Order).count() == resp.json["total_orders"] == 0
