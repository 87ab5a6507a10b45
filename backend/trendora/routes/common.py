# Overview: Shared exception-to-JSON mapping and query-string helpers for the blueprints.

from __future__ import annotations

from flask import current_app, jsonify, request

from ..extensions import db
from ..services.credentials import AuthenticationError
from ..services.order_service import OrderTransitionError
from ..services.stock_ledger_service import (
    OutOfStockError,
    ProductNotFoundError,
    StockAlreadyReversedError,
)
from ..validation import ConflictError, ForbiddenError, NotFoundError, ValidationError


# Most specific first: PasswordValidationError and ConflictError are ValueErrors
ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (ProductNotFoundError, 404),
    (OutOfStockError, 409),
    (StockAlreadyReversedError, 400),
    (OrderTransitionError, 400),
    (AuthenticationError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 400),
    (ValidationError, 400),
    (ValueError, 400),
)


def json_error(exc: Exception, action: str):
    """
    Map a service exception to ({"message", ["details"]}, status).

    Pending session work is discarded first. Anything unmapped is logged with
    its traceback and reported as a bare 500.
    """
    db.session.rollback()
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            body = {"message": str(exc)}
            details = getattr(exc, "details", None)
            if details:
                body["details"] = details
            return jsonify(body), status

    current_app.logger.exception("Failed to %s", action)
    return jsonify({"message": "Server Error"}), 500


def arg_int(name: str, *, minimum: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    return value


def arg_bool(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    lowered = raw.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{name} must be true or false")


def page_args() -> dict:
    """page / per_page, with the legacy "limit" alias for per_page."""
    per_page = arg_int("per_page", minimum=1)
    if per_page is None:
        per_page = arg_int("limit", minimum=1)
    return {"page": arg_int("page", minimum=1), "per_page": per_page}
