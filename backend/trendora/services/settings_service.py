# Overview: Store settings singleton (create, read, update, delete).

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import StoreSettings
from ..models.settings import MASKED_SECRET, SETTINGS_ROW_ID
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    enforce_rules_settings,
    validate_payload,
)


SETTINGS_FIELDS = {
    "store_name", "store_email", "store_contact", "store_address",
    "images_per_product", "default_language", "default_date_format",
    "default_timezone", "default_currency",
    "tax_enabled", "tax_rate",
    "stripe_enabled", "stripe_publishable_key", "stripe_secret_key",
    "shipping_flat_rate_cents", "free_shipping_threshold_cents", "shipping_regions",
    "enable_newsletter", "allow_auto_translation", "social_links",
    "two_factor_enabled", "session_timeout_minutes",
    "maintenance_enabled", "maintenance_message",
    "seo_meta_title", "seo_meta_description",
}

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields=SETTINGS_FIELDS,
    required_on_create={"store_name", "store_email", "store_contact", "store_address"},
)

DEFAULT_SETTINGS = {
    "store_name": "Trendora",
    "store_email": "support@trendora.local",
    "store_contact": "+2348000000000",
    "store_address": {
        "street": "1 Market Street",
        "city": "Lagos",
        "state": "Lagos",
        "zip_code": "100001",
        "country": "Nigeria",
    },
}


def _clean(payload: dict, *, partial: bool) -> dict:
    # A client echoing the masked secret back means "unchanged"
    if partial and payload.get("stripe_secret_key") == MASKED_SECRET:
        payload = {k: v for k, v in payload.items() if k != "stripe_secret_key"}
    patch = validate_payload(model=StoreSettings, payload=payload, policy=SETTINGS_POLICY, partial=partial)
    enforce_rules_settings(patch)
    return patch


def get_settings_or_none() -> StoreSettings | None:
    return db.session.get(StoreSettings, SETTINGS_ROW_ID)


def get_settings() -> StoreSettings:
    settings = get_settings_or_none()
    if settings is None:
        raise NotFoundError("Settings not found")
    return settings


def create_settings(payload: dict) -> StoreSettings:
    if get_settings_or_none() is not None:
        raise ConflictError("Settings already exist. Use the update endpoint to modify.")

    patch = _clean(payload, partial=False)
    settings = StoreSettings(id=SETTINGS_ROW_ID, **patch)
    db.session.add(settings)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Settings already exist. Use the update endpoint to modify.")
    return settings


def update_settings(payload: dict) -> StoreSettings:
    settings = get_settings_or_none()
    if settings is None:
        raise NotFoundError("Settings not found. Create settings first.")

    patch = _clean(payload, partial=True)
    for k, v in patch.items():
        setattr(settings, k, v)
    db.session.commit()
    return settings


def delete_settings() -> None:
    settings = get_settings()
    db.session.delete(settings)
    db.session.commit()


def ensure_default_settings() -> tuple[StoreSettings, bool]:
    """Used by `flask system init`. Returns (settings, created)."""
    existing = get_settings_or_none()
    if existing is not None:
        return existing, False
    return create_settings(dict(DEFAULT_SETTINGS)), True
