# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that one store owner cannot read or change another
owner's products, customers, orders or purchase returns.

Cross-owner access by id answers 401 and is logged as a
CROSS_TENANT_ACCESS_DENIED security event. Lookups by document number
are scoped to the caller and simply find nothing.
"""

import pytest

from storekeeper.errors import AuthorizationError
from storekeeper.models import Order, Product, SecurityEvent
from storekeeper.services import customer_service, order_service, products_service, return_service
from storekeeper.services.tenant_service import require_owned
from storekeeper.validation import validate_order_payload, validate_purchase_return_payload

from conftest import order_payload, return_payload


@pytest.fixture
def order_a(db_session, owner_a, customer_a, product_a):
    data = validate_order_payload(order_payload(customer_a, [("A1", 4, 500)]))
    return order_service.create_order(data, owner_a.id)


def _denials(db_session):
    return db_session.query(SecurityEvent).filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").count()


class TestRequireOwned:

    def test_own_entity_passes(self, db_session, owner_a, product_a):
        assert require_owned(product_a, owner_a.id, label="Product") is product_a

    def test_foreign_entity_rejected_and_logged(self, db_session, app, owner_a, owner_b, product_a):
        with app.test_request_context("/api/products/1", method="GET"):
            with pytest.raises(AuthorizationError, match="Unauthorized access!"):
                require_owned(product_a, owner_b.id, label="Product")

        event = db_session.query(SecurityEvent).one()
        assert event.event_type == "CROSS_TENANT_ACCESS_DENIED"
        assert event.owner_id == owner_b.id
        assert event.resource == "/api/products/1"
        assert event.action == "GET"
        assert event.success is False


class TestServiceIsolation:

    def test_product_read_write_blocked(self, db_session, owner_b, product_a):
        with pytest.raises(AuthorizationError):
            products_service.get_product(product_a.id, owner_b.id)
        with pytest.raises(AuthorizationError):
            products_service.restock_product(product_a.id, 5, owner_b.id)
        with pytest.raises(AuthorizationError):
            products_service.deactivate_product(product_a.id, owner_b.id)

        product = db_session.get(Product, product_a.id)
        assert product.quantity == 10
        assert product.is_active is True
        assert _denials(db_session) == 3

    def test_customer_blocked(self, db_session, owner_b, customer_a):
        with pytest.raises(AuthorizationError):
            customer_service.get_customer(customer_a.id, owner_b.id)
        with pytest.raises(AuthorizationError):
            customer_service.blacklist_customer(customer_a.id, owner_b.id)
        assert customer_service.get_customer(customer_a.id, customer_a.owner_id).is_blacklisted is False

    def test_order_blocked(self, db_session, owner_b, order_a):
        with pytest.raises(AuthorizationError):
            order_service.get_order(order_a.id, owner_b.id)
        with pytest.raises(AuthorizationError):
            order_service.edit_order(
                order_a.id, validate_order_payload({"status": "SUBMIT", "credit_cents": 1}, partial=True), owner_b.id
            )
        with pytest.raises(AuthorizationError):
            order_service.cancel_order(order_a.id, owner_b.id)
        with pytest.raises(AuthorizationError):
            order_service.get_order_return_summary(order_a.id, owner_b.id)

        assert db_session.get(Order, order_a.id).credit_cents == 0

    def test_purchase_return_blocked(self, db_session, owner_a, owner_b, order_a):
        data = validate_purchase_return_payload(return_payload(order_a.po_no, [("A1", 1, 500)]))
        prt = return_service.create_purchase_return(data, owner_a.id)

        with pytest.raises(AuthorizationError):
            return_service.get_purchase_return(prt.id, owner_b.id)

    def test_same_codes_and_numbers_per_owner(self, db_session, owner_a, owner_b, make_customer, make_product, order_a):
        """Each owner has its own catalog codes and its own PONO sequence."""
        make_product(owner_b, "A1", quantity=3)
        customer_b = make_customer(owner_b)

        order_b = order_service.create_order(
            validate_order_payload(order_payload(customer_b, [("A1", 3, 500)])), owner_b.id
        )

        assert order_b.po_no == order_a.po_no
        stock = {(p.owner_id, p.code): p.quantity for p in db_session.query(Product)}
        assert stock == {(owner_a.id, "A1"): 6, (owner_b.id, "A1"): 0}


class TestApiIsolation:

    def test_foreign_order_by_id(self, client, db_session, headers_b, order_a):
        response = client.get(f"/api/orders/{order_a.id}", headers=headers_b)
        assert response.status_code == 401
        assert response.get_json() == {"message": "Unauthorized access!"}

    def test_foreign_po_no_not_found(self, client, db_session, headers_b, order_a):
        response = client.get(f"/api/purchase_returns/{order_a.po_no}/order", headers=headers_b)
        assert response.status_code == 422
        assert "does not exists" in response.get_json()["message"]

    def test_foreign_product_delete(self, client, db_session, headers_b, product_a):
        response = client.delete(f"/api/products/{product_a.id}", headers=headers_b)
        assert response.status_code == 401
        assert db_session.get(Product, product_a.id).is_active is True
