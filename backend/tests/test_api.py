# Overview: Pytest coverage for the HTTP API (status codes and response bodies).

"""
API Tests

End-to-end through the Flask test client: authentication, products,
customers, orders and purchase returns.
"""

from storekeeper.models import Product, SecurityEvent

from conftest import PASSWORD, auth_headers, order_payload, return_payload


class TestAuthRoutes:

    def test_register_login_logout(self, client, db_session):
        response = client.post("/api/auth/register", json={
            "name": "Gamma Goods", "email": "Owner@Gamma.test", "password": "Str0ng!pass",
        })
        assert response.status_code == 201
        assert response.get_json()["owner"]["email"] == "owner@gamma.test"

        response = client.post("/api/auth/login", json={"email": "owner@gamma.test", "password": "Str0ng!pass"})
        assert response.status_code == 200
        token = response.get_json()["token"]

        response = client.post("/api/auth/logout", headers=auth_headers(token))
        assert response.status_code == 200

        response = client.get("/api/products/1", headers=auth_headers(token))
        assert response.status_code == 401
        assert response.get_json() == {"message": "Authentication failed!"}

    def test_duplicate_email(self, client, db_session, owner_a):
        response = client.post("/api/auth/register", json={
            "name": "Again", "email": owner_a.email, "password": PASSWORD,
        })
        assert response.status_code == 422
        assert response.get_json() == {"message": "Email already exists. Please login instead."}

    def test_weak_password(self, client, db_session):
        response = client.post("/api/auth/register", json={
            "name": "Weak", "email": "weak@example.test", "password": "short",
        })
        assert response.status_code == 422

    def test_bad_login_logged(self, client, db_session, owner_a):
        response = client.post("/api/auth/login", json={"email": owner_a.email, "password": "Wrong123!"})
        assert response.status_code == 401
        assert response.get_json() == {"message": "Invalid credentials, could not log you in."}
        assert db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_login_requires_fields(self, client, db_session):
        response = client.post("/api/auth/login", json={"email": "x@example.test"})
        assert response.status_code == 422

    def test_missing_token(self, client, db_session):
        response = client.get("/api/orders/1")
        assert response.status_code == 401


class TestProductRoutes:

    def test_create_normalizes(self, client, db_session, headers_a):
        response = client.post("/api/products", headers=headers_a, json={
            "code": "a1", "name": "widget", "category": "tools",
            "price_cents": 500, "cost_cents": 300, "quantity": 10,
        })
        assert response.status_code == 201
        body = response.get_json()
        assert (body["code"], body["name"], body["category"]) == ("A1", "WIDGET", "TOOLS")

    def test_duplicate_code(self, client, db_session, headers_a, product_a):
        response = client.post("/api/products", headers=headers_a, json={
            "code": "A1", "name": "again", "category": "x",
            "price_cents": 500, "cost_cents": 300, "quantity": 1,
        })
        assert response.status_code == 422
        assert response.get_json() == {"message": "Product code already exists. Please try a new code!"}

    def test_invalid_price(self, client, db_session, headers_a):
        response = client.post("/api/products", headers=headers_a, json={
            "code": "Z", "name": "z", "category": "x",
            "price_cents": 0, "cost_cents": 300, "quantity": 1,
        })
        assert response.status_code == 422

    def test_restock(self, client, db_session, headers_a, product_a):
        response = client.post(f"/api/products/{product_a.id}/restock", headers=headers_a, json={"quantity": 5})
        assert response.status_code == 200
        assert response.get_json()["quantity"] == 15

        response = client.post(f"/api/products/{product_a.id}/restock", headers=headers_a, json={"quantity": 0})
        assert response.status_code == 422

    def test_stock_levels(self, client, db_session, headers_a, owner_a, owner_b, make_product):
        make_product(owner_a, "A1", quantity=10)
        make_product(owner_a, "B2", quantity=0)
        make_product(owner_b, "C3", quantity=5)

        response = client.get("/api/products/stock?codes=a1,B2,C3,ZZ", headers=headers_a)
        assert response.status_code == 200
        assert response.get_json() == {"A1": 10, "B2": 0}

        response = client.get("/api/products/stock", headers=headers_a)
        assert response.status_code == 422
        assert response.get_json() == {"message": "'Codes' is required!"}

    def test_identity_locked_once_ordered(self, client, db_session, headers_a, customer_a, product_a):
        client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 1, 500)], status="DRAFT"))

        response = client.patch(f"/api/products/{product_a.id}", headers=headers_a, json={
            "code": "NEW", "name": "renamed", "price_cents": 650,
        })
        assert response.status_code == 200
        body = response.get_json()
        assert body["code"] == "A1"
        assert body["name"] == "PRODUCT A1"
        assert body["price_cents"] == 650

    def test_rename_unreferenced(self, client, db_session, headers_a, product_a):
        response = client.patch(f"/api/products/{product_a.id}", headers=headers_a, json={"code": "b2"})
        assert response.status_code == 200
        assert response.get_json()["code"] == "B2"

    def test_stock_not_patchable(self, client, db_session, headers_a, product_a):
        response = client.patch(f"/api/products/{product_a.id}", headers=headers_a, json={"quantity": 99})
        assert response.status_code == 422
        assert response.get_json() == {"message": "'quantity' is not allowed!"}

    def test_delete_refused_when_ordered(self, client, db_session, headers_a, customer_a, product_a):
        client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 1, 500)], status="DRAFT"))

        response = client.delete(f"/api/products/{product_a.id}", headers=headers_a)
        assert response.status_code == 422
        assert response.get_json() == {"message": "Cannot delete this product since there are order/s using this"}

    def test_delete_then_reuse_code(self, client, db_session, headers_a, product_a):
        response = client.delete(f"/api/products/{product_a.id}", headers=headers_a)
        assert response.status_code == 200
        assert response.get_json() == {"message": "Successfully deleted product!"}

        assert client.get(f"/api/products/{product_a.id}", headers=headers_a).status_code == 404

        response = client.post("/api/products", headers=headers_a, json={
            "code": "A1", "name": "replacement", "category": "x",
            "price_cents": 500, "cost_cents": 300, "quantity": 1,
        })
        assert response.status_code == 201


class TestCustomerRoutes:

    def test_create_assigns_crm_number(self, client, db_session, headers_a):
        response = client.post("/api/customers", headers=headers_a, json={
            "first_name": "Maria", "last_name": "Santos", "middle_initial": "",
            "email": "maria@example.test", "phone": "0917",
        })
        assert response.status_code == 201
        body = response.get_json()
        assert body["customer_no"].startswith("CRM")
        assert body["customer_no"].endswith("-0001")
        assert body["middle_initial"] is None

    def test_invalid_email(self, client, db_session, headers_a):
        response = client.post("/api/customers", headers=headers_a, json={
            "first_name": "Maria", "last_name": "Santos", "email": "nope", "phone": "0917",
        })
        assert response.status_code == 422
        assert response.get_json() == {"message": "'email' must be a valid email!"}

    def test_blacklist_roundtrip(self, client, db_session, headers_a, customer_a):
        url = f"/api/customers/{customer_a.id}/blacklist"

        assert client.post(url, headers=headers_a).status_code == 200
        response = client.post(url, headers=headers_a)
        assert response.status_code == 422
        assert response.get_json() == {"message": "This customer is already blacklisted."}

        assert client.delete(url, headers=headers_a).status_code == 200
        response = client.delete(url, headers=headers_a)
        assert response.get_json() == {"message": "This customer is not blacklisted."}

    def test_missing_customer(self, client, db_session, headers_a):
        response = client.get("/api/customers/9999", headers=headers_a)
        assert response.status_code == 404
        assert response.get_json() == {"message": "This customer does not exist."}


class TestOrderRoutes:

    def test_create_submit(self, client, db_session, headers_a, customer_a, product_a):
        response = client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 4, 500)]))

        assert response.status_code == 201
        body = response.get_json()
        assert body["status"] == "SUBMIT"
        assert body["po_no"].startswith("PONO")
        assert body["total_cents"] == 2000
        assert body["prt_ids"] == []
        assert db_session.get(Product, product_a.id).quantity == 6

    def test_stock_exceeded(self, client, db_session, headers_a, customer_a, product_a):
        response = client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 11, 500)]))

        assert response.status_code == 422
        assert response.get_json() == {"message": "The order quantity for A1 has exceeded its stock quantity."}

    def test_payload_validation_messages(self, client, db_session, headers_a, customer_a):
        cases = [
            ({"customer_id": customer_a.id, "products": []}, "'Status' is required!"),
            (order_payload(customer_a, [("A1", 1, 500)], status="DONE"), "'Status' must be one of [DRAFT, SUBMIT]!"),
            ({"status": "DRAFT", "products": []}, "'Customer' is required!"),
            (order_payload(customer_a, []), "'Products' must contain at least 1 items!"),
            (order_payload(customer_a, [("A1", 1, 500), ("a1", 1, 500)]), "'Products' contains a duplicate value!"),
            (order_payload(customer_a, [("A1", 0, 500)]), "'Quantity in products' must be greater than or equal to 1!"),
            (order_payload(customer_a, [("A1", 1, 0)]), "'Price in products' must be greater than 0!"),
            (order_payload(customer_a, [("A1", 1, 500)], credit_cents=-1), "'Credit' must be greater than or equal to 0!"),
        ]
        for body, message in cases:
            response = client.post("/api/orders", headers=headers_a, json=body)
            assert response.status_code == 422, message
            assert response.get_json() == {"message": message}

    def test_edit_and_cancel(self, client, db_session, headers_a, customer_a, product_a):
        order = client.post(
            "/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 2, 500)], status="DRAFT")
        ).get_json()

        response = client.patch(f"/api/orders/{order['id']}", headers=headers_a, json={"status": "DRAFT", "remarks": "hold"})
        assert response.status_code == 201
        assert response.get_json() == {"message": "Successfully updated order!"}

        response = client.delete(f"/api/orders/{order['id']}", headers=headers_a)
        assert response.status_code == 200
        assert response.get_json() == {"message": "Cancellation of order successful!"}

        response = client.patch(f"/api/orders/{order['id']}", headers=headers_a, json={"status": "SUBMIT"})
        assert response.status_code == 422
        assert response.get_json() == {"message": "Cannot update a cancelled order!"}

    def test_credit_patch_after_return(self, client, db_session, headers_a, customer_a, product_a):
        order = client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 4, 500)])).get_json()
        client.post("/api/purchase_returns", headers=headers_a, json=return_payload(order["po_no"], [("A1", 3, 500)]))

        response = client.patch(f"/api/orders/{order['id']}", headers=headers_a, json={"status": "SUBMIT", "credit_cents": 2000})
        assert response.status_code == 422
        assert response.get_json() == {"message": "The credit entered exceeds the total purchase amount!"}

    def test_cancel_submitted_refused(self, client, db_session, headers_a, customer_a, product_a):
        order = client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 2, 500)])).get_json()

        response = client.delete(f"/api/orders/{order['id']}", headers=headers_a)
        assert response.status_code == 422
        assert response.get_json() == {"message": "Cancellation of a submitted order is not allowed!"}

    def test_get_by_po_number(self, client, db_session, headers_a, headers_b, customer_a, product_a):
        order = client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 4, 500)])).get_json()

        response = client.get(f"/api/orders/number/{order['po_no'].lower()}", headers=headers_a)
        assert response.status_code == 200
        body = response.get_json()
        assert body["id"] == order["id"]
        assert body["products"][0]["remaining_quantity"] == 6

        response = client.get(f"/api/orders/number/{order['po_no']}", headers=headers_b)
        assert response.status_code == 404
        assert response.get_json() == {"message": "Order does not exist!"}

    def test_missing_order(self, client, db_session, headers_a):
        response = client.get("/api/orders/9999", headers=headers_a)
        assert response.status_code == 404
        assert response.get_json() == {"message": "Order does not exist!"}


class TestPurchaseReturnRoutes:

    def test_full_flow(self, client, db_session, headers_a, customer_a, product_a):
        order = client.post("/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 4, 500)])).get_json()

        response = client.get(f"/api/purchase_returns/{order['po_no']}/order", headers=headers_a)
        assert response.status_code == 200
        assert response.get_json()["products"][0]["quantity"] == 4

        response = client.post("/api/purchase_returns", headers=headers_a, json=return_payload(order["po_no"], [("A1", 2, 500)]))
        assert response.status_code == 201
        prt = response.get_json()
        assert prt["prt_no"].startswith("PRTNO")
        assert prt["order"] == order["po_no"]
        assert db_session.get(Product, product_a.id).quantity == 8

        response = client.post("/api/purchase_returns", headers=headers_a, json=return_payload(order["po_no"], [("A1", 9, 500)]))
        assert response.status_code == 422
        assert response.get_json() == {"message": "The return quantity for A1 has exceeded its order quantity."}
        assert db_session.get(Product, product_a.id).quantity == 8

        response = client.get(f"/api/purchase_returns/{prt['id']}", headers=headers_a)
        assert response.status_code == 200
        assert response.get_json()["prt_no"] == prt["prt_no"]

        response = client.get(f"/api/orders/{order['id']}", headers=headers_a)
        detail = response.get_json()
        assert detail["prt_ids"] == [prt["id"]]
        assert detail["products"][0]["remaining_quantity"] == 8

        response = client.get(f"/api/orders/{order['id']}/returns", headers=headers_a)
        assert response.get_json() == [
            {"code": "A1", "name": "PRODUCT A1", "quantity": 2, "price_cents": 500, "prt_nos": [prt["prt_no"]]},
        ]

    def test_return_on_draft(self, client, db_session, headers_a, customer_a, product_a):
        order = client.post(
            "/api/orders", headers=headers_a, json=order_payload(customer_a, [("A1", 4, 500)], status="DRAFT")
        ).get_json()

        response = client.post("/api/purchase_returns", headers=headers_a, json=return_payload(order["po_no"], [("A1", 1, 500)]))
        assert response.status_code == 422
        assert response.get_json() == {"message": "You cannot create purchase return on a drafted or cancelled orders!"}

    def test_requires_order_and_positive_quantity(self, client, db_session, headers_a):
        response = client.post("/api/purchase_returns", headers=headers_a, json={"returned_products": []})
        assert response.get_json() == {"message": "'Order' is required!"}

        response = client.post("/api/purchase_returns", headers=headers_a, json=return_payload("PONO202610-0001", [("A1", 0, 500)]))
        assert response.status_code == 422
        assert response.get_json() == {"message": "'Quantity in returned_products' must be greater than 0!"}


class TestHealth:

    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"
