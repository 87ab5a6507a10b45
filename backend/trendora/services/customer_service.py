# Overview: Customer accounts: registration, login, verification, password reset and administration.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Order, ProductReview
from ..models.accounts import ACCOUNT_STATUSES, CUSTOMER_ROLE
from ..pagination import paginate
from ..validation import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PHONE_RE,
    ValidationError,
    normalize_address,
    normalize_email,
)
from . import catalog_service, credentials, media_service, token_service


CUSTOMER_MANAGERS = ("admin", "manager")


def _clean_fullname(value) -> str:
    fullname = str(value or "").strip()
    if not fullname:
        raise ValidationError("Full name is required")
    if len(fullname) > 128:
        raise ValidationError("Full name cannot exceed 128 characters")
    return fullname


def _clean_phone(value) -> str:
    phone = str(value or "").strip()
    if not PHONE_RE.match(phone):
        raise ValidationError("Please provide a valid phone number")
    return phone


def _ensure_unique(*, email: str | None = None, phone: str | None = None, exclude_id: int | None = None) -> None:
    if email is not None:
        q = db.session.query(Customer.id).filter(Customer.email == email)
        if exclude_id is not None:
            q = q.filter(Customer.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Customer already exists")
    if phone is not None:
        q = db.session.query(Customer.id).filter(Customer.phone_number == phone)
        if exclude_id is not None:
            q = q.filter(Customer.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Phone number already registered")


def _build_customer(payload: dict) -> Customer:
    email = normalize_email(payload.get("email"))
    phone = _clean_phone(payload.get("phone_number"))
    _ensure_unique(email=email, phone=phone)

    customer = Customer(
        fullname=_clean_fullname(payload.get("fullname")),
        email=email,
        phone_number=phone,
        shipping_address=normalize_address(payload.get("shipping_address")),
        password_hash=credentials.hash_password(payload.get("password")),
        status="active",
    )
    if payload.get("avatar"):
        credentials.apply_avatar(customer, payload["avatar"])

    db.session.add(customer)
    db.session.flush()
    return customer


def register_customer(payload: dict) -> Customer:
    """Self sign-up. The account can buy once its email is verified."""
    customer = _build_customer(payload)
    credentials.send_verification(customer)
    return customer


def create_customer(payload: dict) -> Customer:
    """Staff-created customer. Same rules as sign-up, verification still emailed."""
    return register_customer(payload)


def login_customer(email, password) -> tuple[Customer, str]:
    customer = credentials.authenticate(Customer, email, password, allowed_roles=(CUSTOMER_ROLE,))
    return customer, token_service.issue_token(customer)


def verify_customer_email(token: str) -> Customer:
    return credentials.verify_email(Customer, token)


def forgot_password(email) -> None:
    credentials.request_password_reset(Customer, email)


def reset_password(token: str, password) -> Customer:
    return credentials.reset_password(Customer, token, password)


# --- Administration ----------------------------------------------------------

def ensure_can_access(actor, customer_id: int) -> None:
    """admin / manager, or the customer themself."""
    if getattr(actor, "kind", None) == "customer":
        if actor.id != customer_id:
            raise ForbiddenError("Not authorized to access this customer")
        return
    if actor.role not in CUSTOMER_MANAGERS:
        raise ForbiddenError(f"User role {actor.role} is not authorized to access this route")


def list_customers(*, search=None, status=None, page=None, per_page=None) -> dict:
    q = db.session.query(Customer)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Customer.fullname.ilike(like),
            Customer.email.ilike(like),
            Customer.phone_number.ilike(like),
        ))
    if status:
        q = q.filter(Customer.status == status)
    q = q.order_by(Customer.date_joined.desc(), Customer.id.desc())
    return paginate(q, page=page, per_page=per_page, serialize=lambda c: c.to_dict(include_orders=True))


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def update_customer_fields(customer: Customer, payload: dict, *, allowed: set[str]) -> str | None:
    """
    Apply an edit in place (no commit). Returns a replaced avatar public id.
    """
    unknown = set(payload) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    released = None
    if "fullname" in payload:
        customer.fullname = _clean_fullname(payload["fullname"])
    if "email" in payload:
        email = normalize_email(payload["email"])
        _ensure_unique(email=email, exclude_id=customer.id)
        customer.email = email
    if "phone_number" in payload:
        phone = _clean_phone(payload["phone_number"])
        _ensure_unique(phone=phone, exclude_id=customer.id)
        customer.phone_number = phone
    if "shipping_address" in payload:
        customer.shipping_address = normalize_address(payload["shipping_address"])
    if "avatar" in payload:
        released = credentials.apply_avatar(customer, payload["avatar"])
    if "status" in payload:
        if payload["status"] not in ACCOUNT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ACCOUNT_STATUSES)}")
        customer.status = payload["status"]
    return released


def update_customer(actor, customer_id: int, payload: dict) -> Customer:
    ensure_can_access(actor, customer_id)
    customer = get_customer(customer_id)

    allowed = {"fullname", "email", "phone_number", "shipping_address", "avatar"}
    if getattr(actor, "kind", None) == "user":
        allowed.add("status")

    released = update_customer_fields(customer, payload, allowed=allowed)
    db.session.commit()
    media_service.release_images([released] if released else [])
    return customer


def delete_customer(customer_id: int) -> None:
    """
    Remove a customer and their reviews. Customers with orders are kept so
    invoices keep their owner.
    """
    customer = get_customer(customer_id)
    if db.session.query(Order.id).filter(Order.customer_id == customer.id).first() is not None:
        raise ConflictError("Customer has orders and cannot be deleted")

    reviewed = [r.product for r in db.session.query(ProductReview).filter_by(customer_id=customer.id)]
    db.session.query(ProductReview).filter_by(customer_id=customer.id).delete(synchronize_session="fetch")
    db.session.flush()
    for product in reviewed:
        catalog_service.recompute_rating(product)

    avatar = customer.avatar_public_id
    db.session.delete(customer)
    db.session.commit()
    media_service.release_images([avatar] if avatar else [])
