# Overview: Dashboard aggregates (headline counts and monthly sales trends).

from __future__ import annotations

from sqlalchemy import extract, func

from ..extensions import db
from ..models import Customer, Order, Product


REVENUE_EXCLUDED_STATUSES = ("cancelled", "refunded")
TREND_MONTHS = 12


def dashboard_stats() -> dict:
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total_amount_cents), 0))
        .filter(Order.status.notin_(REVENUE_EXCLUDED_STATUSES))
        .scalar()
    )
    return {
        "total_customers": db.session.query(func.count(Customer.id)).scalar(),
        "total_orders": db.session.query(func.count(Order.id)).scalar(),
        "total_products": db.session.query(func.count(Product.id)).scalar(),
        "total_revenue_cents": int(revenue or 0),
    }


def sales_trends(limit: int = TREND_MONTHS) -> list[dict]:
    """
    Completed-payment totals per calendar month, most recent first.
    """
    year = extract("year", Order.ordered_at)
    month = extract("month", Order.ordered_at)

    rows = (
        db.session.query(
            year.label("year"),
            month.label("month"),
            func.sum(Order.total_amount_cents).label("total_sales_cents"),
            func.count(Order.id).label("order_count"),
        )
        .filter(Order.payment_status == "completed")
        .group_by(year, month)
        .order_by(year.desc(), month.desc())
        .limit(limit)
        .all()
    )

    return [
        {
            "year": int(r.year),
            "month": int(r.month),
            "total_sales_cents": int(r.total_sales_cents or 0),
            "order_count": int(r.order_count),
        }
        for r in rows
    ]
