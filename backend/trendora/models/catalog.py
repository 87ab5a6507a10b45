from __future__ import annotations

from ..extensions import db
from trendora.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog entry.

    Prices are authoritative in cents. discounted_price_cents is derived from
    price_cents and discount on every save (see catalog_service); stock is the
    on-hand quantity that the stock ledger decrements and credits.

    Images, tags and variants are value lists embedded as JSON:
    - images: [{"public_id": str, "url": str}]
    - tags: [str]
    - variants: [{"type": str, "value": str, "additional_price_cents": int}]
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("discount >= 0 AND discount <= 100", name="ck_products_discount_range"),
        db.Index("ix_products_category_published", "category", "published"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(1000), nullable=False)

    price_cents = db.Column(db.Integer, nullable=False)
    discount = db.Column(db.Integer, nullable=False, default=0)
    discounted_price_cents = db.Column(db.Integer, nullable=False, index=True)

    category = db.Column(db.String(32), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    images = db.Column(db.JSON, nullable=False, default=list)
    tags = db.Column(db.JSON, nullable=False, default=list)
    variants = db.Column(db.JSON, nullable=False, default=list)

    published = db.Column(db.Boolean, nullable=False, default=False)
    published_at = db.Column(db.DateTime(timezone=True), nullable=True)

    ratings_average = db.Column(db.Float, nullable=False, default=0.0)
    ratings_count = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    reviews = db.relationship(
        "ProductReview",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductReview.created_at",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.stock}>"

    def to_dict(self, include_reviews: bool = False) -> dict:
        data = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "discount": self.discount,
            "discounted_price_cents": self.discounted_price_cents,
            "category": self.category,
            "stock": self.stock,
            "images": self.images or [],
            "tags": self.tags or [],
            "variants": self.variants or [],
            "published": self.published,
            "published_at": to_utc_z(self.published_at),
            "ratings": {
                "average": self.ratings_average,
                "count": self.ratings_count,
            },
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_reviews:
            data["reviews"] = [r.to_dict() for r in self.reviews]
        return data


class ProductReview(db.Model):
    """One review per (product, customer)."""
    __tablename__ = "product_reviews"
    __table_args__ = (
        db.UniqueConstraint("product_id", "customer_id", name="uq_product_reviews_customer"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_reviews_rating"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("reviews", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "customer": {
                "id": self.customer_id,
                "fullname": self.customer.fullname if self.customer else None,
            },
            "rating": self.rating,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }
