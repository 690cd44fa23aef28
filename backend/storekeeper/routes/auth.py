# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storekeeper/routes/auth.py
"""
Authentication API routes

- Store owners register themselves (one owner = one tenant)
- Login returns a bearer token for the Authorization header
- Failed logins are recorded as security events
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import auth_service, session_service
from ..services.tenant_service import log_security_event


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """Create a store owner account."""
    try:
        data = request.get_json(silent=True) or {}
        owner = auth_service.create_owner(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
        )
        return jsonify({"owner": owner.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register store owner")
        return jsonify({"message": "Signing up failed, please try again later."}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a store owner and create a session token.

    Returns owner info and session token on success.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"message": "'Email' and 'Password' are required!"}), 422

        owner = auth_service.authenticate(email, password)
        if not owner:
            log_security_event("LOGIN_FAILED", reason=f"Invalid credentials for {email}")
            return jsonify({"message": "Invalid credentials, could not log you in."}), 401

        _, token = session_service.create_session(
            owner.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify({"owner": owner.to_dict(), "token": token}), 200

    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"message": "Logging in failed, please try again later."}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1]
    session_service.revoke_session(token)
    current_app.logger.info("Store owner %s logged out", g.owner_id)
    return jsonify({"message": "Logged out successfully."}), 200
