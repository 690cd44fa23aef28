"""
Purchase Return Service

A purchase return takes units of a SUBMITTED order back into stock.

RULES:
- Only SUBMIT orders accept returns (DRAFT/CANCELLED are rejected)
- Per product code, everything ever returned on the order never exceeds
  the ordered quantity; a code that is not on the order has nothing to return
- Every returned line is restocked through the stock ledger
- When the order carries credit, it is clamped to
      order total - previously returned total - this return's total
  so credit only ever goes down

ATOMICITY: numbering, the return document, restocking and the credit
change are one unit of work. All validation happens first; a failure
afterwards rolls every step back.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from ..errors import NotFoundError, ReturnExceededError, ValidationError
from ..extensions import db
from ..models import Order, PurchaseReturn, PurchaseReturnLine
from ..models.orders import ORDER_STATUS_SUBMIT
from ..validation import LineInput, PurchaseReturnInput
from .concurrency import run_in_transaction
from .document_service import DOCUMENT_PURCHASE_RETURN, next_document_number
from .order_service import find_order_by_po_no, verify_products
from .stock_service import MOVEMENT_PURCHASE_RETURN, adjust_stock_for_lines
from .tenant_service import require_owned

logger = logging.getLogger(__name__)


# =============================================================================
# RECONCILIATION HELPERS
# =============================================================================

def returned_quantities(order: Order) -> dict[str, int]:
    """Cumulative returned quantity per code over all of the order's returns."""
    totals: dict[str, int] = defaultdict(int)
    for prt in order.purchase_returns:
        for line in prt.lines:
            totals[line.code] += line.quantity
    return dict(totals)


def validate_return_quantity(lines: list[LineInput], order: Order, already_returned: dict[str, int]) -> None:
    """First line (input order) exceeding what is still returnable raises."""
    ordered = {line.code: line.quantity for line in order.lines}
    for line in lines:
        returnable = ordered.get(line.code, 0) - already_returned.get(line.code, 0)
        if line.quantity > returnable:
            raise ReturnExceededError(line.code)


def clamped_credit(order: Order, new_lines: list[LineInput]) -> int:
    """
    Credit after a return: unchanged unless it exceeds the remaining total.

    `order.returned_total_cents` must not yet include the new return.
    """
    remaining_total = (
        order.total_cents
        - order.returned_total_cents
        - sum(line.quantity * line.price_cents for line in new_lines)
    )
    if order.credit_cents > remaining_total:
        return max(remaining_total, 0)
    return order.credit_cents


# =============================================================================
# CREATE
# =============================================================================

def create_purchase_return(data: PurchaseReturnInput, owner_id: int) -> PurchaseReturn:
    """
    Create a purchase return against an owner's submitted order.

    Raises:
        ValidationError: order missing or not submitted, unknown products
        ReturnExceededError: a line exceeds the remaining returnable quantity
        InternalError: persistence failed (nothing written)
    """
    def _op() -> PurchaseReturn:
        order = find_order_by_po_no(data.order, owner_id)
        if not order:
            raise ValidationError("Order does not exist!")
        if order.status != ORDER_STATUS_SUBMIT:
            raise ValidationError("You cannot create purchase return on a drafted or cancelled orders!")

        already_returned = returned_quantities(order)
        verify_products(data.returned_products, owner_id)
        validate_return_quantity(data.returned_products, order, already_returned)

        new_credit = clamped_credit(order, data.returned_products) if order.credit_cents > 0 else order.credit_cents

        purchase_return = PurchaseReturn(
            owner_id=owner_id,
            prt_no=next_document_number(owner_id, DOCUMENT_PURCHASE_RETURN),
            reason=data.reason.strip(),
            lines=[
                PurchaseReturnLine(
                    position=position,
                    code=line.code,
                    name=line.name,
                    quantity=line.quantity,
                    price_cents=line.price_cents,
                )
                for position, line in enumerate(data.returned_products)
            ],
        )
        order.purchase_returns.append(purchase_return)
        db.session.flush()

        adjust_stock_for_lines(
            purchase_return.lines,
            owner_id,
            sign=1,
            movement_type=MOVEMENT_PURCHASE_RETURN,
            reference=purchase_return.prt_no,
        )

        if new_credit != order.credit_cents:
            logger.info("Credit on %s clamped %d -> %d", order.po_no, order.credit_cents, new_credit)
            order.credit_cents = new_credit
        return purchase_return

    purchase_return = run_in_transaction(_op, failure_message="Cannot create purchase return. Please try again later!")
    logger.info("Purchase return %s created for owner %s", purchase_return.prt_no, owner_id)
    return purchase_return


# =============================================================================
# READS
# =============================================================================

def get_purchase_return(purchase_return_id: int, owner_id: int) -> PurchaseReturn:
    purchase_return = db.session.get(PurchaseReturn, purchase_return_id)
    if not purchase_return:
        raise NotFoundError("Purchase return does not exist!")
    return require_owned(purchase_return, owner_id, label="PurchaseReturn")


def get_returnable_products(po_no: str, owner_id: int) -> dict:
    """
    The order's lines with quantity reduced by everything already returned.
    """
    order = find_order_by_po_no(po_no, owner_id)
    if not order:
        raise ValidationError("This order does not exists! Please check your order number and try again.")
    if order.status != ORDER_STATUS_SUBMIT:
        raise ValidationError(
            "This order is not eligible for purchase return. Please choose orders that are submitted."
        )

    already_returned = returned_quantities(order)
    return {
        "id": order.id,
        "po_no": order.po_no,
        "status": order.status,
        "products": [
            {**line.to_dict(), "quantity": line.quantity - already_returned.get(line.code, 0)}
            for line in order.lines
        ],
    }
