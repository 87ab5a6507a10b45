# Overview: Request payload validation and the domain rules for products, reviews and settings.

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from trendora.time_utils import parse_iso_datetime


# 9,999,999.99 in the store currency
MAX_PRICE_CENTS = 999_999_999

EMAIL_RE = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$")
PHONE_RE = re.compile(r"^\+?\d{10,15}$")
PLAIN_INT_RE = re.compile(r"^[+-]?\d+$")

PRODUCT_CATEGORIES = ("electronics", "clothing", "home", "beauty", "sports", "other")
ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")

SUPPORTED_LANGUAGES = ("en", "fr", "es", "de", "zh")
SUPPORTED_DATE_FORMATS = ("dd/mm/yyyy", "mm/dd/yyyy", "yyyy-mm-dd")
SUPPORTED_CURRENCIES = ("NGN", "USD", "EUR", "GBP", "JPY")

TRUTHY_STRINGS = ("true", "1", "yes", "on")


class ValidationError(ValueError):
    """Bad input from the client (400)."""


class ConflictError(ValueError):
    """Uniqueness violation (duplicate SKU, email, review...)."""


class NotFoundError(LookupError):
    """404-level missing entity."""


class ForbiddenError(PermissionError):
    """403-level role or ownership failure."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns a client may write, and which of them a create must carry."""
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _to_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{name} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and PLAIN_INT_RE.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{name} must be a whole number")


def _to_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def _to_datetime(name: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
    return parsed


def coerce_column_value(column, value: Any):
    """Convert a JSON value to the Python type of ``column``; JSON columns pass through."""
    kind = column.type
    if isinstance(kind, Integer):
        return _to_int(column.key, value)
    if isinstance(kind, Float):
        return _to_float(column.key, value)
    if isinstance(kind, Boolean):
        return _to_bool(value)
    if isinstance(kind, DateTime):
        return _to_datetime(column.key, value)
    if isinstance(kind, (String, Text)):
        return str(value).strip()
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON body against a model and return the cleaned column patch.

    Keys outside ``policy.writable_fields`` are rejected outright. Values are
    coerced using the mapped column types, then checked for nullability and
    String length. With ``partial=False`` every ``required_on_create`` field
    must also be present and non-empty.
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    if not partial:
        missing = sorted(name for name in policy.required_on_create if payload.get(name) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    rejected = sorted(k for k in payload if k not in policy.writable_fields or k not in columns)
    if rejected:
        raise ValidationError(f"Field not allowed: {', '.join(rejected)}")

    cleaned: dict = {}
    for name, raw in payload.items():
        column = columns[name]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{name} is required")
            cleaned[name] = None
            continue

        value = coerce_column_value(column, raw)
        if isinstance(value, str):
            if value == "" and not column.nullable:
                raise ValidationError(f"{name} is required")
            limit = getattr(column.type, "length", None)
            if limit and len(value) > limit:
                raise ValidationError(f"{name} must be at most {limit} characters")
        cleaned[name] = value

    return cleaned


def normalize_email(value: Any) -> str:
    email = str(value or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email address")
    return email


def normalize_address(value: Any, *, field: str = "shipping_address") -> dict:
    """
    Accepts an address object (or its JSON string form) and returns a dict
    with every ADDRESS_FIELDS key present and non-blank. "zipCode" is accepted
    as an alias for zip_code.
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError(f"Invalid {field} format: must be a valid JSON object")
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")

    if "zip_code" not in value and "zipCode" in value:
        value = {**value, "zip_code": value["zipCode"]}

    address = {}
    missing = []
    for key in ADDRESS_FIELDS:
        raw = value.get(key)
        text = str(raw).strip() if raw is not None else ""
        if not text:
            missing.append(key)
        address[key] = text
    if missing:
        raise ValidationError(
            f"All {field} fields are required: {', '.join(ADDRESS_FIELDS)}"
        )
    return address


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    if "discount" in patch and patch["discount"] is not None:
        if not 0 <= patch["discount"] <= 100:
            raise ValidationError("discount must be between 0 and 100")

    if "stock" in patch and patch["stock"] is not None:
        if patch["stock"] < 0:
            raise ValidationError("stock cannot be negative")

    if "category" in patch and patch["category"] is not None:
        patch["category"] = patch["category"].lower()
        if patch["category"] not in PRODUCT_CATEGORIES:
            raise ValidationError("Invalid category")


def enforce_rules_review(rating: Any, comment: Any) -> tuple[int, str | None]:
    try:
        value = int(rating)
    except (TypeError, ValueError):
        raise ValidationError("rating must be an integer between 1 and 5")
    if isinstance(rating, float) and rating != value:
        raise ValidationError("rating must be an integer between 1 and 5")
    if not 1 <= value <= 5:
        raise ValidationError("rating must be an integer between 1 and 5")

    text = str(comment).strip() if comment is not None else None
    if text and len(text) > 500:
        raise ValidationError("Review comment cannot exceed 500 characters")
    return value, (text or None)


def enforce_rules_settings(patch: dict) -> None:
    if "store_name" in patch and patch["store_name"] is not None:
        if not 3 <= len(patch["store_name"]) <= 50:
            raise ValidationError("store_name must be between 3 and 50 characters")

    if "store_email" in patch and patch["store_email"] is not None:
        patch["store_email"] = normalize_email(patch["store_email"])

    if "store_contact" in patch and patch["store_contact"] is not None:
        if not PHONE_RE.match(patch["store_contact"]):
            raise ValidationError("Please provide a valid phone number")

    if "store_address" in patch and patch["store_address"] is not None:
        patch["store_address"] = normalize_address(patch["store_address"], field="store_address")

    if patch.get("images_per_product") is not None:
        if not 1 <= patch["images_per_product"] <= 20:
            raise ValidationError("images_per_product must be between 1 and 20")

    choices = {
        "default_language": SUPPORTED_LANGUAGES,
        "default_date_format": SUPPORTED_DATE_FORMATS,
        "default_currency": SUPPORTED_CURRENCIES,
    }
    for key, allowed in choices.items():
        if patch.get(key) is not None and patch[key] not in allowed:
            raise ValidationError(f"{key} must be one of: {', '.join(allowed)}")

    if patch.get("tax_rate") is not None and not 0 <= patch["tax_rate"] <= 100:
        raise ValidationError("tax_rate must be between 0 and 100")

    for key in ("shipping_flat_rate_cents", "free_shipping_threshold_cents"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")

    if patch.get("session_timeout_minutes") is not None and patch["session_timeout_minutes"] < 1:
        raise ValidationError("session_timeout_minutes must be >= 1")

    if "shipping_regions" in patch and patch["shipping_regions"] is not None:
        regions = patch["shipping_regions"]
        if not isinstance(regions, list):
            raise ValidationError("shipping_regions must be a list")
        patch["shipping_regions"] = [str(r).strip() for r in regions if str(r).strip()]

    if "social_links" in patch and patch["social_links"] is not None:
        links = patch["social_links"]
        if not isinstance(links, dict):
            raise ValidationError("social_links must be an object")
        allowed = {"facebook", "twitter", "instagram", "linkedin"}
        unknown = set(links) - allowed
        if unknown:
            raise ValidationError(f"Unknown social link: {', '.join(sorted(unknown))}")
        patch["social_links"] = {k: str(v or "").strip() for k, v in links.items()}
