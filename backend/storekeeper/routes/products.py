# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/storekeeper/routes/products.py
"""
Product management routes.

All product operations are scoped to the caller (g.owner_id, set by
@require_auth). Stock only changes through restock, order submission
and purchase returns.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..models import Product
from ..services import products_service, stock_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_restock_payload,
    enforce_rules_product,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "category", "description", "unit", "price_cents", "cost_cents", "quantity"},
    required_on_create={"code", "name", "category", "price_cents", "cost_cents", "quantity"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "category", "description", "unit", "price_cents", "cost_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"message": "Cannot create product. Please try again later!"}, 500

    return created.to_dict(), 201


@products_bp.get("/stock")
@require_auth
def stock_levels_route():
    """
    Current stock per code.

    Query: ?codes=A1,B2 (comma-separated, case-insensitive)
    Codes with no active product are left out of the result.
    """
    raw_codes = request.args.get("codes", "")
    codes = [code for code in raw_codes.split(",") if code.strip()]
    if not codes:
        return {"message": "'Codes' is required!"}, 422

    return stock_service.get_stock_levels(codes, g.owner_id), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return product.to_dict(), 200


@products_bp.patch("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """
    Update product info.

    Once an order uses the product, code/name/category/unit stay as they are.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
        product = products_service.update_product(product_id, patch, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"message": "Cannot update this product. Please try again later!"}, 500

    return product.to_dict(), 200


@products_bp.post("/<int:product_id>/restock")
@require_auth
def restock_product_route(product_id: int):
    try:
        quantity = validate_restock_payload(request.get_json(silent=True))
        product = products_service.restock_product(product_id, quantity, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return {"message": "Cannot restock this product. Please try again later!"}, 500

    return product.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    """Soft delete; refused while any order uses the product's code."""
    try:
        products_service.deactivate_product(product_id, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"message": "Cannot delete this product. Please try again later!"}, 500

    return {"message": "Successfully deleted product!"}, 200
