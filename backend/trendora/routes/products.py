# Overview: Catalog routes under /api/products (public reads, staff writes, customer reviews).

from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..models import Product
from ..services import catalog_service
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from .common import arg_bool, arg_int, json_error, page_args


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "price_cents", "discount", "category",
        "stock", "images", "tags", "variants", "published",
    },
    required_on_create={"sku", "name", "description", "price_cents", "category"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Public product listing.

    Query params:
    - search: matches name, description and tags (case-insensitive)
    - category
    - min_price / max_price: cents, compared against the discounted price
    - published: true / false
    - sort: created_at | name | price | discounted_price | rating | stock,
      "-" prefix for descending (default -created_at)
    - page / per_page (default 10, max 100)
    """
    try:
        result = catalog_service.list_products(
            search=request.args.get("search"),
            category=request.args.get("category"),
            min_price=arg_int("min_price", minimum=0),
            max_price=arg_int("max_price", minimum=0),
            published=arg_bool("published"),
            sort=request.args.get("sort"),
            **page_args(),
        )
    except Exception as e:
        return json_error(e, "list products")
    return result


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
    except Exception as e:
        return json_error(e, "load product")
    return product.to_dict(include_reviews=True)


@products_bp.post("")
@require_auth
@require_roles("admin", "manager")
def create_product():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch=patch)
    except Exception as e:
        return json_error(e, "create product")
    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_roles("admin", "manager")
def update_product(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(product_id, patch=patch)
    except Exception as e:
        return json_error(e, "update product")
    return updated


@products_bp.delete("/<int:product_id>")
@require_auth
@require_roles("admin")
def delete_product(product_id: int):
    try:
        catalog_service.delete_product(product_id)
    except Exception as e:
        return json_error(e, "delete product")
    return {"message": "Product removed"}


@products_bp.post("/<int:product_id>/reviews")
@require_auth
@require_roles("customer")
def add_review(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.add_review(
            g.current_principal,
            product_id,
            rating=payload.get("rating"),
            comment=payload.get("comment"),
        )
    except Exception as e:
        return json_error(e, "add review")
    return {"message": "Review added", "product": product}, 201
