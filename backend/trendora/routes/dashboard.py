# Overview: Dashboard aggregate routes under /api/dashboard.

from flask import Blueprint

from ..decorators import require_auth, require_roles
from ..services import dashboard_service
from .common import json_error


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_roles("admin", "manager", "staff")
def stats():
    try:
        data = dashboard_service.dashboard_stats()
    except Exception as e:
        return json_error(e, "build dashboard stats")
    return data


@dashboard_bp.get("/sales-trends")
@require_auth
@require_roles("admin", "manager", "staff")
def sales_trends():
    try:
        items = dashboard_service.sales_trends()
    except Exception as e:
        return json_error(e, "build sales trends")
    return {"items": items, "count": len(items)}
