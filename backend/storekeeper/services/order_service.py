# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Lifecycle Service

STATES:
    DRAFT ──submit──> SUBMIT
      │
      └──cancel──> CANCELLED (terminal)

RULES:
- A new order enters as DRAFT or SUBMIT (caller's choice)
- Stock is decremented exactly once per line, on entering SUBMIT
  (at creation, or on the DRAFT -> SUBMIT edit)
- SUBMIT -> DRAFT and cancelling a submitted order are rejected
- Editing a submitted order only changes credit and remarks; any
  products sent along are ignored
- credit_cents never exceeds the line total less everything returned

VALIDATION ORDER (create): payload, customer, blacklist, products exist,
stock, credit. Every check runs before the first write; each operation is
a single unit of work (see concurrency.run_in_transaction).
"""

from __future__ import annotations

import logging
from collections import defaultdict

from ..errors import NotFoundError, StockExceededError, ValidationError
from ..extensions import db
from ..models import Customer, Order, OrderLine, Product
from ..models.orders import ORDER_STATUS_CANCELLED, ORDER_STATUS_DRAFT, ORDER_STATUS_SUBMIT
from ..time_utils import utcnow
from ..validation import LineInput, OrderInput
from .concurrency import run_in_transaction
from .document_service import DOCUMENT_ORDER, next_document_number
from .products_service import find_active_by_codes
from .stock_service import MOVEMENT_ORDER_SUBMIT, adjust_stock_for_lines
from .tenant_service import require_owned

logger = logging.getLogger(__name__)


CUSTOMER_MISSING_MESSAGE = "This customer does not exist."
CUSTOMER_BLACKLISTED_MESSAGE = (
    "This customer is blacklisted from this store. "
    "Update its customer info if you think this is wrong."
)
PRODUCTS_MISSING_MESSAGE = "Some products entered have not been created yet!"
CREDIT_EXCEEDED_MESSAGE = "The credit entered exceeds the total purchase amount!"


# =============================================================================
# SHARED CHECKS
# =============================================================================

def load_order(order_id: int, owner_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order does not exist!")
    return require_owned(order, owner_id, label="Order")


def find_order_by_po_no(po_no: str, owner_id: int) -> Order | None:
    return (
        db.session.query(Order)
        .filter(Order.owner_id == owner_id, Order.po_no == po_no.strip().upper())
        .first()
    )


def _eligible_customer(customer_id: int, owner_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer or not customer.is_active:
        raise ValidationError(CUSTOMER_MISSING_MESSAGE)
    require_owned(customer, owner_id, label="Customer")
    if customer.is_blacklisted:
        raise ValidationError(CUSTOMER_BLACKLISTED_MESSAGE)
    return customer


def verify_products(lines, owner_id: int) -> dict[str, Product]:
    """
    Every line code must be an active product of the owner.

    Returned products are row-locked for the rest of the unit of work.
    """
    codes = [line.code for line in lines]
    products = find_active_by_codes(codes, owner_id, for_update=True)
    if len(products) != len(set(codes)):
        raise ValidationError(PRODUCTS_MISSING_MESSAGE)
    return {product.code: product for product in products}


def validate_order_quantity(lines, products_by_code: dict[str, Product]) -> None:
    """First line (input order) asking for more than stock raises; equal is fine."""
    for line in lines:
        if line.quantity > products_by_code[line.code].quantity:
            raise StockExceededError(line.code)


def _lines_total(lines) -> int:
    return sum(line.quantity * line.price_cents for line in lines)


def _check_credit(credit_cents: int, total_cents: int) -> None:
    if credit_cents > total_cents:
        raise ValidationError(CREDIT_EXCEEDED_MESSAGE)


def _build_lines(lines: list[LineInput]) -> list[OrderLine]:
    return [
        OrderLine(
            position=position,
            code=line.code,
            name=line.name,
            quantity=line.quantity,
            price_cents=line.price_cents,
            cost_cents=line.cost_cents,
        )
        for position, line in enumerate(lines)
    ]


# =============================================================================
# CREATE / EDIT / CANCEL
# =============================================================================

def create_order(data: OrderInput, owner_id: int) -> Order:
    """
    Create an order as DRAFT or SUBMIT.

    Raises:
        ValidationError: customer missing/blacklisted, unknown products, credit too high
        StockExceededError: a line asks for more than current stock
        AuthorizationError: customer belongs to another owner
        InternalError: persistence failed (nothing written)
    """
    def _op() -> Order:
        _eligible_customer(data.customer_id, owner_id)

        products_by_code = verify_products(data.products, owner_id)
        validate_order_quantity(data.products, products_by_code)
        _check_credit(data.credit_cents or 0, _lines_total(data.products))

        now = utcnow()
        order = Order(
            owner_id=owner_id,
            customer_id=data.customer_id,
            po_no=next_document_number(owner_id, DOCUMENT_ORDER),
            status=data.status,
            credit_cents=data.credit_cents or 0,
            remarks=data.remarks,
            lines=_build_lines(data.products),
            submitted_at=now if data.status == ORDER_STATUS_SUBMIT else None,
        )
        db.session.add(order)
        db.session.flush()

        if data.status == ORDER_STATUS_SUBMIT:
            adjust_stock_for_lines(
                order.lines, owner_id, sign=-1, movement_type=MOVEMENT_ORDER_SUBMIT, reference=order.po_no
            )
        return order

    order = run_in_transaction(_op, failure_message="Cannot create order. Please try again later!")
    logger.info("Order %s created as %s for owner %s", order.po_no, order.status, owner_id)
    return order


def edit_order(order_id: int, data: OrderInput, owner_id: int) -> Order:
    """
    Update an order.

    - SUBMIT -> DRAFT: rejected
    - SUBMIT -> SUBMIT: products ignored; credit/remarks applied
    - DRAFT -> DRAFT: products may be replaced, no stock effect
    - DRAFT -> SUBMIT: lines verified against stock, then decremented

    credit is checked against the stored line total less returns, and against the
    replacement lines when a draft's products change.
    """
    def _op() -> Order:
        order = load_order(order_id, owner_id)
        current_status = order.status
        target_status = data.status

        if current_status == ORDER_STATUS_CANCELLED:
            raise ValidationError("Cannot update a cancelled order!")
        if current_status == ORDER_STATUS_SUBMIT and target_status == ORDER_STATUS_DRAFT:
            raise ValidationError("Cannot update the status of an order once the order is submitted!")

        credit_cents = order.credit_cents if data.credit_cents is None else data.credit_cents
        # Drafts have no returns, so this is the line total for them
        _check_credit(credit_cents, order.total_cents - order.returned_total_cents)

        new_lines = None
        if current_status == ORDER_STATUS_DRAFT:
            new_lines = data.products
            if new_lines is not None:
                _check_credit(credit_cents, _lines_total(new_lines))
            if data.customer_id is not None and data.customer_id != order.customer_id:
                _eligible_customer(data.customer_id, owner_id)

        submitting = current_status == ORDER_STATUS_DRAFT and target_status == ORDER_STATUS_SUBMIT
        if submitting:
            lines_to_submit = new_lines if new_lines is not None else order.lines
            products_by_code = verify_products(lines_to_submit, owner_id)
            validate_order_quantity(lines_to_submit, products_by_code)

        if new_lines is not None:
            order.lines.clear()
            db.session.flush()
            order.lines.extend(_build_lines(new_lines))
        if current_status == ORDER_STATUS_DRAFT and data.customer_id is not None:
            order.customer_id = data.customer_id

        order.credit_cents = credit_cents
        if data.remarks is not None:
            order.remarks = data.remarks
        order.status = target_status
        db.session.flush()

        if submitting:
            order.submitted_at = utcnow()
            adjust_stock_for_lines(
                order.lines, owner_id, sign=-1, movement_type=MOVEMENT_ORDER_SUBMIT, reference=order.po_no
            )
        return order

    order = run_in_transaction(_op, failure_message="Cannot update order information. Try again later!")
    logger.info("Order %s updated (status %s) for owner %s", order.po_no, order.status, owner_id)
    return order


def cancel_order(order_id: int, owner_id: int) -> Order:
    """DRAFT -> CANCELLED. No stock effect."""
    def _op() -> Order:
        order = load_order(order_id, owner_id)
        if order.status == ORDER_STATUS_SUBMIT:
            raise ValidationError("Cancellation of a submitted order is not allowed!")
        if order.status == ORDER_STATUS_CANCELLED:
            raise ValidationError("This order is already cancelled.")

        order.status = ORDER_STATUS_CANCELLED
        order.is_active = False
        order.deactivated_at = utcnow()
        return order

    order = run_in_transaction(_op, failure_message="Cannot cancel this order. Please try again later!")
    logger.info("Order %s cancelled for owner %s", order.po_no, owner_id)
    return order


# =============================================================================
# READS
# =============================================================================

def _customer_summary(customer: Customer) -> dict:
    return {
        "id": customer.id,
        "customer_no": customer.customer_no,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "middle_initial": customer.middle_initial,
    }


def get_order(order_id: int, owner_id: int) -> dict:
    """
    Order detail with each line's current stock as remaining_quantity.

    remaining_quantity is None when the product no longer exists.
    """
    order = load_order(order_id, owner_id)

    codes = [line.code for line in order.lines]
    stock = {}
    if codes:
        rows = (
            db.session.query(Product.code, Product.quantity, Product.is_active)
            .filter(Product.owner_id == owner_id, Product.code.in_(codes))
            .order_by(Product.is_active.asc(), Product.id.asc())
            .all()
        )
        # Active rows sort last and win
        stock = {code: quantity for code, quantity, _active in rows}

    returned_total = order.returned_total_cents
    payload = order.to_dict()
    payload["customer"] = _customer_summary(order.customer)
    payload["products"] = [
        {**line.to_dict(), "remaining_quantity": stock.get(line.code)}
        for line in order.lines
    ]
    payload["returned_total_cents"] = returned_total
    payload["balance_cents"] = order.total_cents - returned_total
    return payload


def get_order_by_po_no(po_no: str, owner_id: int) -> Order:
    order = find_order_by_po_no(po_no, owner_id)
    if not order:
        raise NotFoundError("Order does not exist!")
    return order


def get_order_return_summary(order_id: int, owner_id: int) -> list[dict]:
    """
    Returned quantity per product code across every purchase return of the
    order, with the PRT numbers that contributed. Codes keep first-seen order.
    """
    order = load_order(order_id, owner_id)

    summary: dict[str, dict] = {}
    prt_numbers: dict[str, list[str]] = defaultdict(list)
    for prt in order.purchase_returns:
        for line in prt.lines:
            entry = summary.setdefault(line.code, {
                "code": line.code,
                "name": line.name,
                "quantity": 0,
                "price_cents": line.price_cents,
            })
            entry["quantity"] += line.quantity
            prt_numbers[line.code].append(prt.prt_no)

    return [{**entry, "prt_nos": prt_numbers[code]} for code, entry in summary.items()]
