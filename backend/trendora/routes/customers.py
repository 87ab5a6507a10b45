# Overview: Customer sign-up, login and administration routes under /api/customers.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..services import customer_service
from .common import json_error, page_args


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

STAFF = ("admin", "manager", "staff")


@customers_bp.post("/register")
def register():
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.register_customer(payload)
    except Exception as e:
        return json_error(e, "register customer")
    return {
        "message": "Registration successful. Please check your email to verify your account.",
        "customer": customer.to_dict(),
    }, 201


@customers_bp.post("/login")
def login():
    payload = request.get_json(silent=True) or {}
    try:
        customer, token = customer_service.login_customer(payload.get("email"), payload.get("password"))
    except Exception as e:
        return json_error(e, "log in customer")
    return {"token": token, "customer": customer.to_dict()}


@customers_bp.get("/verify/<token>")
def verify_email(token: str):
    try:
        customer_service.verify_customer_email(token)
    except Exception as e:
        return json_error(e, "verify customer email")
    return {"message": "Email verified successfully"}


@customers_bp.post("/forgot-password")
def forgot_password():
    payload = request.get_json(silent=True) or {}
    try:
        customer_service.forgot_password(payload.get("email"))
    except Exception as e:
        return json_error(e, "start customer password reset")
    return {"message": "Password reset link sent to your email"}


@customers_bp.post("/reset-password/<token>")
def reset_password(token: str):
    payload = request.get_json(silent=True) or {}
    try:
        customer_service.reset_password(token, payload.get("password"))
    except Exception as e:
        return json_error(e, "reset customer password")
    return {"message": "Password reset successfully"}


@customers_bp.get("")
@require_auth
@require_roles(*STAFF)
def list_customers():
    try:
        result = customer_service.list_customers(
            search=request.args.get("search"),
            status=request.args.get("status"),
            **page_args(),
        )
    except Exception as e:
        return json_error(e, "list customers")
    return result


@customers_bp.post("")
@require_auth
@require_roles(*STAFF)
def create_customer():
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.create_customer(payload)
    except Exception as e:
        return json_error(e, "create customer")
    return {"customer": customer.to_dict()}, 201


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_roles("admin", "manager", "customer")
def get_customer(customer_id: int):
    try:
        customer_service.ensure_can_access(g.current_principal, customer_id)
        customer = customer_service.get_customer(customer_id)
    except Exception as e:
        return json_error(e, "load customer")
    return {"customer": customer.to_dict(include_orders=True)}


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_roles("admin", "manager", "customer")
def update_customer(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.update_customer(g.current_principal, customer_id, payload)
    except Exception as e:
        return json_error(e, "update customer")
    return {"customer": customer.to_dict()}


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_roles("admin")
def delete_customer(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
    except Exception as e:
        return json_error(e, "delete customer")
    return {"message": "Customer deleted"}
