# Overview: Service-layer operations for the stock ledger; every product quantity change goes through here.

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import update

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product, StockMovement

logger = logging.getLogger(__name__)


MOVEMENT_ORDER_SUBMIT = "ORDER_SUBMIT"
MOVEMENT_PURCHASE_RETURN = "PURCHASE_RETURN"
MOVEMENT_RESTOCK = "RESTOCK"


def _expire_cached_quantity(owner_id: int, code: str) -> None:
    # Loaded Product instances still hold the pre-UPDATE quantity
    for obj in list(db.session.identity_map.values()):
        if isinstance(obj, Product) and obj.owner_id == owner_id and obj.code == code:
            db.session.expire(obj, ["quantity"])


def adjust_stock(
    product_code: str,
    owner_id: int,
    delta: int,
    *,
    movement_type: str,
    reference: str | None = None,
) -> int:
    """
    Apply quantity += delta to the owner's active product with this code.

    Runs as one SQL UPDATE so concurrent adjustments never lose an
    increment. There is no negative-stock guard here: submissions are
    validated against stock before they reach the ledger.

    Returns the quantity after the adjustment.

    Raises:
        NotFoundError: no active product with that code for the owner
    """
    code = product_code.strip().upper()

    result = db.session.execute(
        update(Product)
        .where(
            Product.owner_id == owner_id,
            Product.code == code,
            Product.is_active.is_(True),
        )
        .values(quantity=Product.quantity + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError(f"Product {code} does not exist.")
    _expire_cached_quantity(owner_id, code)

    product_id, quantity_after = (
        db.session.query(Product.id, Product.quantity)
        .filter(
            Product.owner_id == owner_id,
            Product.code == code,
            Product.is_active.is_(True),
        )
        .one()
    )

    db.session.add(StockMovement(
        owner_id=owner_id,
        product_id=product_id,
        product_code=code,
        quantity_delta=delta,
        quantity_after=quantity_after,
        movement_type=movement_type,
        reference=reference,
    ))

    logger.info("Stock %s %+d -> %d (%s %s)", code, delta, quantity_after, movement_type, reference or "-")
    return quantity_after


def adjust_stock_for_lines(
    lines: Iterable,
    owner_id: int,
    *,
    sign: int,
    movement_type: str,
    reference: str | None = None,
) -> None:
    """One ledger call per line, in line order. Lines need .code and .quantity."""
    for line in lines:
        adjust_stock(line.code, owner_id, sign * line.quantity, movement_type=movement_type, reference=reference)


def get_stock_levels(codes: Iterable[str], owner_id: int) -> dict[str, int]:
    """Current quantity per code for the owner's active products."""
    wanted = {code.strip().upper() for code in codes}
    if not wanted:
        return {}

    rows = (
        db.session.query(Product.code, Product.quantity)
        .filter(
            Product.owner_id == owner_id,
            Product.code.in_(wanted),
            Product.is_active.is_(True),
        )
        .all()
    )
    return {code: quantity for code, quantity in rows}
