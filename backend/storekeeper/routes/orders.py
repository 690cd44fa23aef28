# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

# backend/storekeeper/routes/orders.py
"""
Order API Routes

All routes require authentication; every order is scoped to g.owner_id.

Error responses are {"message": ...} with the status carried by the
service error (422 validation, 401 ownership, 404 missing, 500 failure).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import order_service
from ..validation import validate_order_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "customer_id": 3,
        "status": "SUBMIT",            (DRAFT or SUBMIT)
        "credit_cents": 0,             (optional)
        "remarks": "Deliver Monday",   (optional)
        "products": [
            {"code": "A1", "name": "Widget", "quantity": 4, "price_cents": 500, "cost_cents": 300}
        ]
    }

    Returns:
        201: Order created
        422: Invalid input, blacklisted customer, stock exceeded, credit too high
    """
    try:
        data = validate_order_payload(request.get_json(silent=True))
        order = order_service.create_order(data, g.owner_id)
        return jsonify(order.to_dict()), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"message": "Cannot create order. Please try again later!"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    """Order detail, each line carrying the product's current stock as remaining_quantity."""
    try:
        return jsonify(order_service.get_order(order_id, g.owner_id)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"message": "Cannot find this order. Please try again!"}), 500


@orders_bp.get("/number/<string:po_no>")
@require_auth
def get_order_by_number_route(po_no: str):
    """Same detail as GET /<id>, looked up by PO number within the caller's orders."""
    try:
        order = order_service.get_order_by_po_no(po_no, g.owner_id)
        return jsonify(order_service.get_order(order.id, g.owner_id)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get order by number")
        return jsonify({"message": "Cannot find this order. Please try again!"}), 500


@orders_bp.get("/<int:order_id>/returns")
@require_auth
def get_order_returns_route(order_id: int):
    """Returned quantity per product across the order's purchase returns."""
    try:
        return jsonify(order_service.get_order_return_summary(order_id, g.owner_id)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get order returns")
        return jsonify({
            "message": "Cannot retrieve purchase returns for this order. Please try again later."
        }), 500


@orders_bp.patch("/<int:order_id>")
@require_auth
def edit_order_route(order_id: int):
    """
    Update an order.

    Request body: same fields as create; only "status" is required.
    Products sent for an already submitted order are ignored.

    Returns:
        201: {"message": "Successfully updated order!"}
        422: Invalid transition or input
        404: Order not found
    """
    try:
        data = validate_order_payload(request.get_json(silent=True), partial=True)
        order_service.edit_order(order_id, data, g.owner_id)
        return jsonify({"message": "Successfully updated order!"}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"message": "Cannot update order information. Try again later!"}), 500


@orders_bp.delete("/<int:order_id>")
@require_auth
def cancel_order_route(order_id: int):
    """Cancel a drafted order."""
    try:
        order_service.cancel_order(order_id, g.owner_id)
        return jsonify({"message": "Cancellation of order successful!"}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"message": "Cannot cancel this order. Please try again later!"}), 500
