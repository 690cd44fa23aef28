# Overview: Flask API routes for purchase returns; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import return_service
from ..validation import validate_purchase_return_payload


returns_bp = Blueprint("returns", __name__, url_prefix="/api/purchase_returns")


@returns_bp.post("")
@require_auth
def create_purchase_return_route():
    """
    Create a purchase return for a submitted order.

    Request body:
    {
        "order": "PONO202401-0001",
        "returned_products": [
            {"code": "A1", "name": "Widget", "quantity": 2, "price_cents": 500}
        ],
        "reason": "Damaged on arrival"   (optional)
    }

    Returns:
        201: Purchase return created; stock restocked; credit clamped if needed
        422: Order missing/not submitted, unknown product, quantity exceeded
    """
    try:
        data = validate_purchase_return_payload(request.get_json(silent=True))
        purchase_return = return_service.create_purchase_return(data, g.owner_id)
        return jsonify(purchase_return.to_dict()), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase return")
        return jsonify({"message": "Cannot create purchase return. Please try again later!"}), 500


@returns_bp.get("/<int:purchase_return_id>")
@require_auth
def get_purchase_return_route(purchase_return_id: int):
    try:
        purchase_return = return_service.get_purchase_return(purchase_return_id, g.owner_id)
        return jsonify(purchase_return.to_dict()), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get purchase return")
        return jsonify({"message": "Cannot find this purchase return. Please try again later!"}), 500


@returns_bp.get("/<string:po_no>/order")
@require_auth
def get_returnable_products_route(po_no: str):
    """Remaining returnable quantity per product of a submitted order."""
    try:
        return jsonify(return_service.get_returnable_products(po_no, g.owner_id)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get returnable products")
        return jsonify({"message": "Cannot find this order. Please try again later!"}), 500
