# Overview: Order routes under /api/orders, including payment, cancellation and admin stock correction.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..services import order_service
from .common import arg_bool, json_error, page_args


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
@require_roles("customer")
def create_order():
    """
    Body:
    {
      "items": [{"product_id": 1, "quantity": 2, "variant": "XL"}],
      "payment_method": "Card" | "Transfer",
      "shipping_address": {...}   # optional, defaults to the customer's
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = order_service.create_order(
            g.current_principal,
            items=payload.get("items"),
            payment_method=payload.get("payment_method"),
            shipping_address=payload.get("shipping_address"),
        )
    except Exception as e:
        return json_error(e, "create order")
    return order.to_dict(), 201


@orders_bp.get("")
@require_auth
def list_orders():
    try:
        result = order_service.list_orders(
            g.current_principal,
            search=request.args.get("search"),
            status=request.args.get("status"),
            **page_args(),
        )
    except Exception as e:
        return json_error(e, "list orders")
    return result


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order(order_id: int):
    try:
        order = order_service.get_order(g.current_principal, order_id)
    except Exception as e:
        return json_error(e, "load order")
    return order.to_dict()


@orders_bp.put("/<int:order_id>")
@require_auth
def update_order(order_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        order = order_service.update_order(g.current_principal, order_id, payload)
    except Exception as e:
        return json_error(e, "update order")
    return order.to_dict()


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_roles("customer", "admin")
def delete_order(order_id: int):
    """
    Cancels the order and opens a refund. Admins may pass ?purge=true to
    delete the record instead (stock is restored if it was not already).
    """
    try:
        if arg_bool("purge"):
            order_service.remove_order(g.current_principal, order_id)
            return {"message": "Order removed"}
        payload = request.get_json(silent=True) or {}
        order = order_service.cancel_order(g.current_principal, order_id, payload.get("reason"))
    except Exception as e:
        return json_error(e, "cancel order")
    return {"message": "Order cancelled and refund initiated", "order": order.to_dict()}


@orders_bp.post("/<int:order_id>/process-payment")
@require_auth
@require_roles("customer", "admin")
def process_payment(order_id: int):
    try:
        order = order_service.process_payment(g.current_principal, order_id)
    except Exception as e:
        return json_error(e, "process payment")
    return order.to_dict()


@orders_bp.put("/stock/<int:product_id>")
@require_auth
@require_roles("admin")
def manage_stock(product_id: int):
    """Body: {"quantity": <signed delta>}"""
    payload = request.get_json(silent=True) or {}
    try:
        product = order_service.manage_stock(product_id, payload.get("quantity"))
    except Exception as e:
        return json_error(e, "adjust stock")
    return product.to_dict()
