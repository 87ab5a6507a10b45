# backend/trendora/services/catalog_service.py
"""
Catalog Service

Products are stored with integer cents. Derived fields are recomputed on
every save through apply_product_patch:
- discounted_price_cents = round_half_up(price_cents * (100 - discount) / 100)
- published_at set on the first publish, cleared when unpublished

Image references are validated by media_service; images dropped by an update
or a delete are released on the image host after commit.
"""
from __future__ import annotations

import json

from sqlalchemy import func, literal, or_, select, update

from ..extensions import db
from ..models import OrderItem, Product, ProductReview
from ..validation import ConflictError, NotFoundError, ValidationError, enforce_rules_review
from ..pagination import paginate
from . import media_service, settings_service
from trendora.time_utils import utcnow


PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "price_cents", "discount", "category",
    "stock", "images", "tags", "variants", "published",
}

MAX_TAG_LENGTH = 50

SORT_COLUMNS = {
    "created_at": Product.created_at,
    "name": Product.name,
    "price": Product.price_cents,
    "discounted_price": Product.discounted_price_cents,
    "rating": Product.ratings_average,
    "stock": Product.stock,
}
SORT_ALIASES = {
    "createdAt": "created_at",
    "ratings.average": "rating",
    "discountedPrice": "discounted_price",
}


def discounted_price(price_cents: int, discount: int) -> int:
    """Half-up rounding in integer arithmetic."""
    return (price_cents * (100 - discount) + 50) // 100


def normalize_tags(value) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ValidationError("tags must be a list or a comma-separated string")
    tags = [str(t).strip() for t in value if str(t).strip()]
    too_long = [t for t in tags if len(t) > MAX_TAG_LENGTH]
    if too_long:
        raise ValidationError(f"Tags cannot exceed {MAX_TAG_LENGTH} characters")
    return tags


def normalize_variants(value) -> list[dict]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError("Invalid variants format: must be a valid JSON array")
    if not isinstance(value, list):
        raise ValidationError("variants must be a list")

    variants = []
    for raw in value:
        if not isinstance(raw, dict):
            raise ValidationError("Each variant must be an object")
        vtype = str(raw.get("type") or "").strip()
        vvalue = str(raw.get("value") or "").strip()
        if not vtype or not vvalue:
            raise ValidationError("Each variant needs a type and a value")
        extra = raw.get("additional_price_cents", 0) or 0
        if isinstance(extra, bool) or not isinstance(extra, int) or extra < 0:
            raise ValidationError("additional_price_cents must be a non-negative integer")
        variants.append({"type": vtype, "value": vvalue, "additional_price_cents": extra})
    return variants


def find_variant(product: Product, label: str | None) -> dict | None:
    """
    Resolve an order line's variant label against the product's options.

    Accepts either the bare value ("XL") or "type: value" ("Size: XL").
    """
    if not label:
        return None
    wanted = label.strip().lower()
    for v in product.variants or []:
        if wanted in (v["value"].lower(), f"{v['type']}: {v['value']}".lower()):
            return v
    return None


def _image_limit() -> int | None:
    settings = settings_service.get_settings_or_none()
    return settings.images_per_product if settings else None


def apply_product_patch(p: Product, patch: dict) -> list[str]:
    """
    Apply a validated patch and recompute derived fields.

    Returns public ids of images that the patch dropped.
    """
    released: list[str] = []
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "tags":
            v = normalize_tags(v)
        elif k == "variants":
            v = normalize_variants(v)
        elif k == "images":
            v = media_service.normalize_images(v, limit=_image_limit())
            kept = {img["public_id"] for img in v}
            released = [img["public_id"] for img in (p.images or []) if img["public_id"] not in kept]
        setattr(p, k, v)

    p.discount = p.discount or 0
    p.discounted_price_cents = discounted_price(p.price_cents, p.discount)

    if p.published and p.published_at is None:
        p.published_at = utcnow()
    elif not p.published:
        p.published_at = None
    return released


def _ensure_unique_sku(sku: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Product with this SKU already exists")


def _tag_matches(pattern: str):
    """EXISTS over the decoded tag elements, not the stored JSON text."""
    tag = func.json_each(Product.tags).table_valued("value").alias("tag")
    return (
        select(literal(1))
        .select_from(tag)
        .where(tag.c.value.ilike(pattern))
        .exists()
    )


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    min_price: int | None = None,
    max_price: int | None = None,
    published: bool | None = None,
    sort: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Filtered, sorted, paginated product listing.

    Price bounds apply to discounted_price_cents. sort takes a column key with
    an optional leading "-" for descending; default is newest first.
    """
    q = db.session.query(Product)

    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Product.name.ilike(like),
            Product.description.ilike(like),
            _tag_matches(like),
        ))
    if category:
        q = q.filter(Product.category == category.lower())
    if min_price is not None:
        q = q.filter(Product.discounted_price_cents >= min_price)
    if max_price is not None:
        q = q.filter(Product.discounted_price_cents <= max_price)
    if published is not None:
        q = q.filter(Product.published.is_(published))

    sort = (sort or "-created_at").strip()
    descending = sort.startswith("-")
    key = sort.lstrip("-")
    key = SORT_ALIASES.get(key, key)
    if key not in SORT_COLUMNS:
        raise ValidationError(f"Cannot sort by {key}; use one of: {', '.join(SORT_COLUMNS)}")
    col = SORT_COLUMNS[key]
    q = q.order_by(col.desc() if descending else col.asc(), Product.id.desc() if descending else Product.id.asc())

    return paginate(q, page=page, per_page=per_page, serialize=lambda p: p.to_dict())


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Product not found")
    return p


def create_product(*, patch: dict) -> dict:
    """Create product using a validated patch dict."""
    _ensure_unique_sku(patch["sku"])

    p = Product(stock=0, discount=0, images=[], tags=[], variants=[], published=False)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_product(product_id: int, *, patch: dict) -> dict:
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _ensure_unique_sku(patch["sku"], exclude_id=p.id)

    released = apply_product_patch(p, patch)
    db.session.commit()

    media_service.release_images(released)
    return p.to_dict()


def delete_product(product_id: int) -> None:
    """
    Remove a product and its reviews.

    Order items keep their name/price snapshot; only the link is cleared.
    """
    p = get_product(product_id)
    image_ids = [img["public_id"] for img in (p.images or [])]

    db.session.execute(
        update(OrderItem)
        .where(OrderItem.product_id == p.id)
        .values(product_id=None)
        .execution_options(synchronize_session="fetch")
    )
    db.session.delete(p)
    db.session.commit()

    media_service.release_images(image_ids)


def recompute_rating(p: Product) -> None:
    avg, count = (
        db.session.query(func.avg(ProductReview.rating), func.count(ProductReview.id))
        .filter(ProductReview.product_id == p.id)
        .one()
    )
    p.ratings_count = int(count or 0)
    p.ratings_average = round(float(avg), 2) if count else 0.0


def add_review(customer, product_id: int, *, rating, comment=None) -> dict:
    """One review per (product, customer); refreshes the product's aggregate rating."""
    p = get_product(product_id)
    rating, comment = enforce_rules_review(rating, comment)

    exists = (
        db.session.query(ProductReview.id)
        .filter_by(product_id=p.id, customer_id=customer.id)
        .first()
    )
    if exists is not None:
        raise ConflictError("Product already reviewed")

    review = ProductReview(product_id=p.id, customer_id=customer.id, rating=rating, comment=comment)
    db.session.add(review)
    db.session.flush()

    recompute_rating(p)
    db.session.commit()
    return p.to_dict(include_reviews=True)
