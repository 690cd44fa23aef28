# Overview: Service-layer operations for document numbering; encapsulates business logic and database work.

"""
Document Numbering Service

Numbers look like <PREFIX><YYYY><MM>-<NNNN>:
- CRM202401-0001    customers
- PONO202401-0001   purchase orders
- PRTNO202401-0001  purchase returns

Rollover rules against the previous number:
- different year: restart at <YYYY>01-0001, month 01 whatever "today" is
- same year, different month: restart at 0001 for the current month
- otherwise: previous counter + 1

Past 9999 the counter simply grows to five digits.

CONCURRENCY: allocation goes through one DocumentSequence row per
owner and kind, advanced with a compare-and-swap on its `version`.
A lost race raises StaleDataError, which makes the enclosing
run_in_transaction() retry the whole unit of work.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import InternalError
from ..extensions import db
from ..models import Customer, DocumentSequence, Order, PurchaseReturn
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


DOCUMENT_CUSTOMER = "customer"
DOCUMENT_ORDER = "order"
DOCUMENT_PURCHASE_RETURN = "return"

DOCUMENT_PREFIXES = {
    DOCUMENT_CUSTOMER: "CRM",
    DOCUMENT_ORDER: "PONO",
    DOCUMENT_PURCHASE_RETURN: "PRTNO",
}

COUNTER_PADDING = 4

_NUMBER_PATTERN = re.compile(r"^(?P<prefix>[A-Z]+)(?P<year>\d{4})(?P<month>\d{2})-(?P<count>\d+)$")


class DocumentSequenceError(InternalError):
    """Raised when a stored document number cannot be parsed or allocated."""


def _prefix_for(kind: str) -> str:
    try:
        return DOCUMENT_PREFIXES[kind]
    except KeyError:
        raise DocumentSequenceError(f"Unknown document kind: {kind}") from None


def parse_number(kind: str, number: str) -> tuple[int, int, int]:
    """Split a document number into (year, month, count)."""
    prefix = _prefix_for(kind)
    match = _NUMBER_PATTERN.match(number or "")
    if not match or match.group("prefix") != prefix:
        raise DocumentSequenceError(f"Malformed {kind} number: {number!r}")
    return int(match.group("year")), int(match.group("month")), int(match.group("count"))


def generate_number(kind: str, previous_number: str | None = None, today: date | None = None) -> str:
    """
    Compute the number that follows `previous_number` for `today`.

    Pure function: no database access.
    """
    prefix = _prefix_for(kind)
    today = today or utcnow().date()

    count = 1
    month = today.month
    if previous_number:
        previous_year, previous_month, previous_count = parse_number(kind, previous_number)
        if previous_year != today.year:
            # First number of a new year is always month 01
            month = 1
        elif previous_month == today.month:
            count = previous_count + 1

    return f"{prefix}{today.year:04d}{month:02d}-{count:0{COUNTER_PADDING}d}"


def _latest_issued_number(owner_id: int, kind: str) -> str | None:
    """Most recently created document number of this kind, for seeding a new counter."""
    if kind == DOCUMENT_CUSTOMER:
        column, model = Customer.customer_no, Customer
    elif kind == DOCUMENT_ORDER:
        column, model = Order.po_no, Order
    else:
        column, model = PurchaseReturn.prt_no, PurchaseReturn

    return (
        db.session.query(column)
        .filter(model.owner_id == owner_id)
        .order_by(model.id.desc())
        .limit(1)
        .scalar()
    )


def next_document_number(owner_id: int, kind: str, today: date | None = None) -> str:
    """
    Allocate the next number of `kind` for an owner.

    Must run inside a unit of work (see concurrency.run_in_transaction);
    the caller commits.
    """
    _prefix_for(kind)

    seq = (
        db.session.query(DocumentSequence)
        .filter_by(owner_id=owner_id, document_type=kind)
        .first()
    )
    if seq is None:
        seq = DocumentSequence(
            owner_id=owner_id,
            document_type=kind,
            last_number=_latest_issued_number(owner_id, kind),
            version=0,
        )
        db.session.add(seq)
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Another transaction created the counter first
            raise StaleDataError(f"document sequence for owner {owner_id}/{kind} created concurrently") from exc

    seen_version = seq.version
    number = generate_number(kind, seq.last_number, today)

    result = db.session.execute(
        update(DocumentSequence)
        .where(
            DocumentSequence.id == seq.id,
            DocumentSequence.version == seen_version,
        )
        .values(last_number=number, version=seen_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StaleDataError(f"document sequence for owner {owner_id}/{kind} advanced concurrently")
    db.session.expire(seq)

    logger.debug("Allocated %s for owner %s", number, owner_id)
    return number
