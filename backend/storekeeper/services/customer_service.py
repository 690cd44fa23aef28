# Overview: Service-layer operations for customers; numbering and blacklist transitions.

from __future__ import annotations

import logging

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer
from .concurrency import run_in_transaction
from .document_service import DOCUMENT_CUSTOMER, next_document_number
from .tenant_service import require_owned

logger = logging.getLogger(__name__)


def get_customer(customer_id: int, owner_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer or not customer.is_active:
        raise NotFoundError("This customer does not exist.")
    return require_owned(customer, owner_id, label="Customer")


def create_customer(patch: dict, owner_id: int) -> Customer:
    """Create a customer with the next CRM number."""
    def _op() -> Customer:
        customer = Customer(
            owner_id=owner_id,
            customer_no=next_document_number(owner_id, DOCUMENT_CUSTOMER),
            **patch,
        )
        db.session.add(customer)
        db.session.flush()
        return customer

    customer = run_in_transaction(_op, failure_message="Cannot create customer. Please try again later!")
    logger.info("Customer %s created for owner %s", customer.customer_no, owner_id)
    return customer


def _set_blacklisted(customer_id: int, owner_id: int, blacklisted: bool) -> Customer:
    def _op() -> Customer:
        customer = get_customer(customer_id, owner_id)
        if customer.is_blacklisted == blacklisted:
            if blacklisted:
                raise ValidationError("This customer is already blacklisted.")
            raise ValidationError("This customer is not blacklisted.")
        customer.is_blacklisted = blacklisted
        return customer

    return run_in_transaction(_op, failure_message="Cannot update this customer. Please try again later!")


def blacklist_customer(customer_id: int, owner_id: int) -> Customer:
    return _set_blacklisted(customer_id, owner_id, True)


def reverse_blacklist_customer(customer_id: int, owner_id: int) -> Customer:
    return _set_blacklisted(customer_id, owner_id, False)
