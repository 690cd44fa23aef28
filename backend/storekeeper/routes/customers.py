# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..models import Customer
from ..services import customer_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_customer

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "middle_initial", "email", "phone", "address"},
    required_on_create={"first_name", "last_name", "email", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
        customer = customer_service.create_customer(patch, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"message": "Cannot create customer. Please try again later!"}, 500

    return customer.to_dict(), 201


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return customer.to_dict(), 200


@customers_bp.post("/<int:customer_id>/blacklist")
@require_auth
def blacklist_customer_route(customer_id: int):
    try:
        customer_service.blacklist_customer(customer_id, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to blacklist customer")
        return {"message": "Cannot blacklist this customer. Please try again later!"}, 500

    return {"message": "Successfully blacklisted customer!"}, 200


@customers_bp.delete("/<int:customer_id>/blacklist")
@require_auth
def reverse_blacklist_customer_route(customer_id: int):
    try:
        customer_service.reverse_blacklist_customer(customer_id, g.owner_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reverse customer blacklist")
        return {"message": "Cannot update this customer. Please try again later!"}, 500

    return {"message": "Successfully removed customer from blacklist!"}, 200
