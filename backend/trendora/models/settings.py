from __future__ import annotations

from ..extensions import db
from trendora.time_utils import to_utc_z


SETTINGS_ROW_ID = 1
MASKED_SECRET = "********"


class StoreSettings(db.Model):
    """
    Store-wide configuration.

    Singleton: the primary key is pinned to 1 by a check constraint, so a
    second row cannot exist regardless of how it is inserted.
    """
    __tablename__ = "store_settings"
    __table_args__ = (
        db.CheckConstraint("id = 1", name="ck_store_settings_singleton"),
    )

    id = db.Column(db.Integer, primary_key=True, default=SETTINGS_ROW_ID, autoincrement=False)

    # Store identity
    store_name = db.Column(db.String(50), nullable=False)
    store_email = db.Column(db.String(255), nullable=False)
    store_contact = db.Column(db.String(32), nullable=False)
    store_address = db.Column(db.JSON, nullable=False)

    # Display / locale
    images_per_product = db.Column(db.Integer, nullable=False, default=5)
    default_language = db.Column(db.String(8), nullable=False, default="en")
    default_date_format = db.Column(db.String(16), nullable=False, default="dd/mm/yyyy")
    default_timezone = db.Column(db.String(64), nullable=False, default="UTC")
    default_currency = db.Column(db.String(3), nullable=False, default="NGN")

    # Tax
    tax_enabled = db.Column(db.Boolean, nullable=False, default=False)
    tax_rate = db.Column(db.Float, nullable=False, default=0.0)

    # Payment gateway
    stripe_enabled = db.Column(db.Boolean, nullable=False, default=False)
    stripe_publishable_key = db.Column(db.String(255), nullable=True)
    stripe_secret_key = db.Column(db.String(255), nullable=True)

    # Shipping
    shipping_flat_rate_cents = db.Column(db.Integer, nullable=False, default=0)
    free_shipping_threshold_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_regions = db.Column(db.JSON, nullable=False, default=list)

    enable_newsletter = db.Column(db.Boolean, nullable=False, default=False)
    allow_auto_translation = db.Column(db.Boolean, nullable=False, default=False)
    social_links = db.Column(db.JSON, nullable=False, default=dict)

    # Security
    two_factor_enabled = db.Column(db.Boolean, nullable=False, default=False)
    session_timeout_minutes = db.Column(db.Integer, nullable=False, default=30)

    maintenance_enabled = db.Column(db.Boolean, nullable=False, default=False)
    maintenance_message = db.Column(db.String(500), nullable=True)

    # SEO
    seo_meta_title = db.Column(db.String(60), nullable=True)
    seo_meta_description = db.Column(db.String(160), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "store_name": self.store_name,
            "store_email": self.store_email,
            "store_contact": self.store_contact,
            "store_address": self.store_address,
            "images_per_product": self.images_per_product,
            "default_language": self.default_language,
            "default_date_format": self.default_date_format,
            "default_timezone": self.default_timezone,
            "default_currency": self.default_currency,
            "tax": {"enabled": self.tax_enabled, "rate": self.tax_rate},
            "payment_gateways": {
                "stripe": {
                    "enabled": self.stripe_enabled,
                    "publishable_key": self.stripe_publishable_key,
                    "secret_key": MASKED_SECRET if self.stripe_secret_key else None,
                },
            },
            "shipping": {
                "flat_rate_cents": self.shipping_flat_rate_cents,
                "free_shipping_threshold_cents": self.free_shipping_threshold_cents,
                "regions": self.shipping_regions or [],
            },
            "enable_newsletter": self.enable_newsletter,
            "allow_auto_translation": self.allow_auto_translation,
            "social_links": self.social_links or {},
            "security": {
                "two_factor_enabled": self.two_factor_enabled,
                "session_timeout_minutes": self.session_timeout_minutes,
            },
            "maintenance": {
                "enabled": self.maintenance_enabled,
                "message": self.maintenance_message,
            },
            "seo": {
                "meta_title": self.seo_meta_title,
                "meta_description": self.seo_meta_description,
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
