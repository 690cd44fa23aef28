# backend/storekeeper/services/products_service.py
"""
Products Service

All product operations are owner-scoped. Codes are unique among an
owner's products and are stored uppercased. Stock is never written here
directly; restocking goes through the stock ledger.
"""
from __future__ import annotations

import logging

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import OrderLine, Order, Product
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .stock_service import MOVEMENT_RESTOCK, adjust_stock
from .tenant_service import require_owned

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"code", "name", "category", "description", "unit", "price_cents", "cost_cents"}

# Locked once any order line references the product's code
PRODUCT_IDENTITY_FIELDS = {"code", "name", "category", "unit"}


def get_product(product_id: int, owner_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        raise NotFoundError("Product does not exist!")
    return require_owned(product, owner_id, label="Product")


def find_active_by_codes(codes, owner_id: int, *, for_update: bool = False) -> list[Product]:
    """Active products of the owner whose code is in `codes` (case-insensitive)."""
    wanted = {code.strip().upper() for code in codes}
    if not wanted:
        return []

    query = db.session.query(Product).filter(
        Product.owner_id == owner_id,
        Product.code.in_(wanted),
        Product.is_active.is_(True),
    )
    if for_update:
        query = lock_for_update(query)
    return query.order_by(Product.id.asc()).all()


def _code_in_use(code: str, owner_id: int, *, exclude_product_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(
        Product.owner_id == owner_id,
        Product.code == code,
        Product.is_active.is_(True),
    )
    if exclude_product_id is not None:
        query = query.filter(Product.id != exclude_product_id)
    return db.session.query(query.exists()).scalar()


def is_referenced_by_orders(code: str, owner_id: int) -> bool:
    """True when any of the owner's orders (any status) has a line with this code."""
    query = (
        db.session.query(OrderLine.id)
        .join(Order, Order.id == OrderLine.order_id)
        .filter(Order.owner_id == owner_id, OrderLine.code == code)
    )
    return db.session.query(query.exists()).scalar()


def create_product(patch: dict, owner_id: int) -> Product:
    """
    Create a product from a validated patch.

    Raises:
        ValidationError: code already used by another active product
    """
    def _op() -> Product:
        if _code_in_use(patch["code"], owner_id):
            raise ValidationError("Product code already exists. Please try a new code!")

        product = Product(owner_id=owner_id, **patch)
        db.session.add(product)
        db.session.flush()
        return product

    product = run_in_transaction(_op, failure_message="Cannot create product. Please try again later!")
    logger.info("Product %s created for owner %s", product.code, owner_id)
    return product


def update_product(product_id: int, patch: dict, owner_id: int) -> Product:
    """
    Apply a validated patch.

    Once an order references the product, code/name/category/unit are
    silently kept; only description, price and cost change.
    """
    def _op() -> Product:
        product = get_product(product_id, owner_id)
        changes = {k: v for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS}

        if is_referenced_by_orders(product.code, owner_id):
            changes = {k: v for k, v in changes.items() if k not in PRODUCT_IDENTITY_FIELDS}
        elif "code" in changes and changes["code"] != product.code:
            if _code_in_use(changes["code"], owner_id, exclude_product_id=product.id):
                raise ValidationError("Product code already exists. Please try a new code!")

        for key, value in changes.items():
            setattr(product, key, value)
        db.session.flush()
        return product

    return run_in_transaction(_op, failure_message="Cannot update this product. Please try again later!")


def restock_product(product_id: int, quantity: int, owner_id: int) -> Product:
    """Add `quantity` units through the stock ledger."""
    def _op() -> Product:
        product = get_product(product_id, owner_id)
        adjust_stock(product.code, owner_id, quantity, movement_type=MOVEMENT_RESTOCK)
        return product

    product = run_in_transaction(_op, failure_message="Cannot restock this product. Please try again later!")
    return get_product(product.id, owner_id)


def deactivate_product(product_id: int, owner_id: int) -> Product:
    """
    Soft delete.

    Raises:
        ValidationError: an order line references the product's code
    """
    def _op() -> Product:
        product = get_product(product_id, owner_id)
        if is_referenced_by_orders(product.code, owner_id):
            raise ValidationError("Cannot delete this product since there are order/s using this")

        product.is_active = False
        product.deactivated_at = utcnow()
        return product

    product = run_in_transaction(_op, failure_message="Cannot delete this product. Please try again later!")
    logger.info("Product %s deactivated for owner %s", product.code, owner_id)
    return product
