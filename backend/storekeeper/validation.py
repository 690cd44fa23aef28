from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.orders import ORDER_STATUS_DRAFT, ORDER_STATUS_SUBMIT


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ENTRY_STATUSES = (ORDER_STATUS_DRAFT, ORDER_STATUS_SUBMIT)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _strict_int(value: Any, label: str) -> int:
    """Integers only: rejects floats, booleans, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"'{label}' must be an integer!")
        if 'e' in stripped.lower():
            raise ValidationError(f"'{label}' must be a plain integer (scientific notation not allowed)!")
        if '.' in stripped:
            raise ValidationError(f"'{label}' must be an integer (no decimals)!")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"'{label}' must be an integer!") from None
    if isinstance(value, float):
        raise ValidationError(f"'{label}' must be an integer, not a decimal!")
    raise ValidationError(f"'{label}' must be an integer!")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _strict_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"'{col.key}' must be a boolean!")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, str):
            raise ValidationError(f"'{col.key}' must be a string!")
        return value.strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"'{missing[0]}' is required!")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields or k not in cols:
            raise ValidationError(f"'{k}' is not allowed!")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"'{k}' cannot be null!")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"'{k}' is not allowed to be empty!")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"'{k}' exceeds max length {col.type.length}!")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    """
    for field in ("price_cents", "cost_cents"):
        if field in patch and patch[field] is not None:
            amount = patch[field]
            if amount <= 0:
                raise ValidationError(f"'{field}' must be greater than 0!")
            if amount > MAX_PRICE_CENTS:
                raise ValidationError(f"'{field}' cannot exceed {MAX_PRICE_CENTS}!")

    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] < 0:
        raise ValidationError("'quantity' must be greater than or equal to 0!")

    for field in ("code", "name", "unit", "category"):
        if isinstance(patch.get(field), str):
            patch[field] = patch[field].upper()


def enforce_rules_customer(patch: dict) -> None:
    email = patch.get("email")
    if email is not None and not EMAIL_PATTERN.match(email):
        raise ValidationError("'email' must be a valid email!")

    if isinstance(patch.get("middle_initial"), str) and patch["middle_initial"] == "":
        patch["middle_initial"] = None


# =============================================================================
# ORDER / PURCHASE RETURN PAYLOADS
# =============================================================================

@dataclass(frozen=True)
class LineInput:
    code: str
    name: str
    quantity: int
    price_cents: int
    cost_cents: int | None = None


@dataclass(frozen=True)
class OrderInput:
    status: str
    customer_id: int | None = None
    credit_cents: int | None = None
    remarks: str | None = None
    products: list[LineInput] | None = None


@dataclass(frozen=True)
class PurchaseReturnInput:
    order: str
    returned_products: list[LineInput]
    reason: str = ""


def _require_dict(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _required_string(data: dict, key: str, label: str) -> str:
    value = data.get(key)
    if value is None:
        raise ValidationError(f"'{label}' is required!")
    if not isinstance(value, str):
        raise ValidationError(f"'{label}' must be a string!")
    value = value.strip()
    if not value:
        raise ValidationError(f"'{label}' is not allowed to be empty!")
    return value


def _optional_string(data: dict, key: str, label: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{label}' must be a string!")
    return value.strip()


def _bounded_int(value: Any, label: str, *, minimum: int, inclusive: bool) -> int:
    number = _strict_int(value, label)
    if inclusive and number < minimum:
        raise ValidationError(f"'{label}' must be greater than or equal to {minimum}!")
    if not inclusive and number <= minimum:
        raise ValidationError(f"'{label}' must be greater than {minimum}!")
    return number


def _validate_lines(
    raw_lines: Any,
    *,
    list_key: str,
    list_label: str,
    min_quantity: int,
    quantity_inclusive: bool,
    with_cost: bool,
) -> list[LineInput]:
    if raw_lines is None:
        raise ValidationError(f"'{list_label}' is required!")
    if not isinstance(raw_lines, list):
        raise ValidationError(f"'{list_label}' must be an array!")
    if len(raw_lines) < 1:
        raise ValidationError(f"'{list_label}' must contain at least 1 items!")

    lines: list[LineInput] = []
    seen: set[str] = set()
    for raw in raw_lines:
        if not isinstance(raw, dict):
            raise ValidationError(f"'{list_label}' must contain objects!")

        code = _required_string(raw, "code", f"Code in {list_key}").upper()
        name = _required_string(raw, "name", f"Name in {list_key}").upper()

        if raw.get("quantity") is None:
            raise ValidationError(f"'Quantity in {list_key}' is required!")
        quantity = _bounded_int(
            raw["quantity"], f"Quantity in {list_key}", minimum=min_quantity, inclusive=quantity_inclusive
        )

        if raw.get("price_cents") is None:
            raise ValidationError(f"'Price in {list_key}' is required!")
        price_cents = _bounded_int(raw["price_cents"], f"Price in {list_key}", minimum=0, inclusive=False)

        cost_cents = None
        if with_cost:
            if raw.get("cost_cents") is None:
                raise ValidationError(f"'Cost in {list_key}' is required!")
            cost_cents = _bounded_int(raw["cost_cents"], f"Cost in {list_key}", minimum=0, inclusive=False)

        if code in seen:
            raise ValidationError(f"'{list_label}' contains a duplicate value!")
        seen.add(code)

        lines.append(LineInput(
            code=code,
            name=name,
            quantity=quantity,
            price_cents=price_cents,
            cost_cents=cost_cents,
        ))
    return lines


def validate_order_payload(payload: Any, *, partial: bool = False) -> OrderInput:
    """
    Normalize an order create (partial=False) or update (partial=True) body.

    Codes and names are trimmed and uppercased; status is uppercased.
    On update, customer_id/credit_cents/products are optional.
    """
    data = _require_dict(payload)

    status = _required_string(data, "status", "Status").upper()
    if status not in ENTRY_STATUSES:
        raise ValidationError(f"'Status' must be one of [{', '.join(ENTRY_STATUSES)}]!")

    customer_id = None
    if data.get("customer_id") is not None:
        customer_id = _strict_int(data["customer_id"], "Customer")
    elif not partial:
        raise ValidationError("'Customer' is required!")

    credit_cents = None
    if data.get("credit_cents") is not None:
        credit_cents = _bounded_int(data["credit_cents"], "Credit", minimum=0, inclusive=True)
    elif not partial:
        credit_cents = 0

    remarks = _optional_string(data, "remarks", "Remarks")

    products = None
    if not partial or data.get("products") is not None:
        products = _validate_lines(
            data.get("products"),
            list_key="products",
            list_label="Products",
            min_quantity=1,
            quantity_inclusive=True,
            with_cost=True,
        )

    return OrderInput(
        status=status,
        customer_id=customer_id,
        credit_cents=credit_cents,
        remarks=remarks,
        products=products,
    )


def validate_purchase_return_payload(payload: Any) -> PurchaseReturnInput:
    data = _require_dict(payload)

    order = _required_string(data, "order", "Order").upper()
    returned_products = _validate_lines(
        data.get("returned_products"),
        list_key="returned_products",
        list_label="Returned_products",
        min_quantity=0,
        quantity_inclusive=False,
        with_cost=False,
    )
    reason = _optional_string(data, "reason", "Reason") or ""

    return PurchaseReturnInput(order=order, returned_products=returned_products, reason=reason)


def validate_restock_payload(payload: Any) -> int:
    data = _require_dict(payload)
    if data.get("quantity") is None:
        raise ValidationError("'Quantity' is required!")
    return _bounded_int(data["quantity"], "Quantity", minimum=0, inclusive=False)
