# Overview: Pytest coverage for request payload validation.

import pytest

from storekeeper.errors import ValidationError
from storekeeper.models import Product
from storekeeper.routes.products import PRODUCT_POLICY
from storekeeper.validation import (
    enforce_rules_product,
    validate_order_payload,
    validate_payload,
    validate_purchase_return_payload,
    validate_restock_payload,
)


def _line(**overrides):
    line = {"code": " a1 ", "name": " Widget ", "quantity": 2, "price_cents": 500, "cost_cents": 300}
    line.update(overrides)
    return line


class TestOrderPayload:

    def test_normalizes_codes_names_and_status(self):
        data = validate_order_payload({"status": "submit", "customer_id": 1, "products": [_line()]})

        assert data.status == "SUBMIT"
        assert data.credit_cents == 0
        assert data.products[0].code == "A1"
        assert data.products[0].name == "WIDGET"

    def test_partial_leaves_missing_fields_unset(self):
        data = validate_order_payload({"status": "DRAFT"}, partial=True)

        assert data.customer_id is None
        assert data.credit_cents is None
        assert data.products is None

    @pytest.mark.parametrize("value", [1.5, "2.0", "1e3", True])
    def test_quantity_must_be_plain_integer(self, value):
        with pytest.raises(ValidationError):
            validate_order_payload({"status": "DRAFT", "customer_id": 1, "products": [_line(quantity=value)]})

    def test_cost_required_on_order_lines(self):
        with pytest.raises(ValidationError, match="'Cost in products' is required!"):
            validate_order_payload({"status": "DRAFT", "customer_id": 1, "products": [_line(cost_cents=None)]})

    def test_products_must_be_a_list(self):
        with pytest.raises(ValidationError, match="must be an array"):
            validate_order_payload({"status": "DRAFT", "customer_id": 1, "products": {"code": "A1"}})

    def test_non_object_payload(self):
        with pytest.raises(ValidationError, match="Invalid JSON payload"):
            validate_order_payload(["status"])


class TestPurchaseReturnPayload:

    def test_cost_not_needed(self):
        data = validate_purchase_return_payload({
            "order": " pono202610-0001 ",
            "returned_products": [{"code": "a1", "name": "x", "quantity": 1, "price_cents": 500}],
        })

        assert data.order == "PONO202610-0001"
        assert data.returned_products[0].cost_cents is None
        assert data.reason == ""

    def test_duplicate_codes(self):
        line = {"code": "A1", "name": "x", "quantity": 1, "price_cents": 500}
        with pytest.raises(ValidationError, match="'Returned_products' contains a duplicate value!"):
            validate_purchase_return_payload({"order": "PONO202610-0001", "returned_products": [line, line]})


class TestProductPayload:

    def test_required_fields(self):
        with pytest.raises(ValidationError, match="'category' is required!"):
            validate_payload(model=Product, payload={
                "code": "A1", "name": "x", "price_cents": 1, "cost_cents": 1, "quantity": 1,
            }, policy=PRODUCT_POLICY, partial=False)

    def test_owner_id_not_writable(self):
        with pytest.raises(ValidationError, match="'owner_id' is not allowed!"):
            validate_payload(model=Product, payload={"owner_id": 2}, policy=PRODUCT_POLICY, partial=True)

    def test_rules(self):
        patch = {"code": "a1", "unit": "box", "price_cents": 100, "cost_cents": 50}
        enforce_rules_product(patch)
        assert (patch["code"], patch["unit"]) == ("A1", "BOX")

        with pytest.raises(ValidationError, match="'cost_cents' must be greater than 0!"):
            enforce_rules_product({"cost_cents": 0})
        with pytest.raises(ValidationError, match="'quantity' must be greater than or equal to 0!"):
            enforce_rules_product({"quantity": -1})


class TestRestockPayload:

    def test_positive_quantity(self):
        assert validate_restock_payload({"quantity": "7"}) == 7
        with pytest.raises(ValidationError, match="'Quantity' is required!"):
            validate_restock_payload({})
        with pytest.raises(ValidationError, match="'Quantity' must be greater than 0!"):
            validate_restock_payload({"quantity": -3})
