# backend/trendora/routes/system.py
"""
Health endpoint for load balancers and deploy checks.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from trendora.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }
    return {
        "status": "healthy",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
    }


@system_bp.get("/health")
def health():
    """
    200 when the database answers, 503 otherwise.
    """
    database = check_database_health()
    http_status = 200 if database["status"] == "healthy" else 503
    return {
        "status": database["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database},
    }, http_status
