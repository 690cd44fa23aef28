"""
Multi-Tenant Service: Ownership checks and security event logging

Every product, customer, order and purchase return belongs to exactly one
store owner. Services load entities by id, then call require_owned()
before reading or writing them.

SECURITY INVARIANTS:
1. Every authenticated request has g.owner_id set
2. Entity ids from client input are checked against g.owner_id
3. Cross-owner access attempts are logged as security events

Ownership checks run before a unit of work makes any write, so the
commit in log_security_event() never publishes partial work.
"""

from __future__ import annotations

from flask import g, has_request_context, request

from ..errors import AuthorizationError
from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow

UNAUTHORIZED_MESSAGE = "Unauthorized access!"


def log_security_event(
    event_type: str,
    *,
    owner_id: int | None = None,
    success: bool = False,
    reason: str | None = None,
) -> SecurityEvent:
    """Append a security event; request details are captured when available."""
    resource = action = ip_address = user_agent = None
    if has_request_context():
        resource = request.path
        action = request.method
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    event = SecurityEvent(
        owner_id=owner_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()
    return event


def get_current_owner_id() -> int:
    """Owner id established by @require_auth."""
    owner_id = getattr(g, "owner_id", None)
    if owner_id is None:
        raise AuthorizationError("Authentication required")
    return owner_id


def require_owned(entity, owner_id: int, *, label: str):
    """
    Return `entity` if it belongs to `owner_id`.

    Raises:
        AuthorizationError: entity belongs to another owner (event logged)
    """
    if entity.owner_id != owner_id:
        log_security_event(
            "CROSS_TENANT_ACCESS_DENIED",
            owner_id=owner_id,
            reason=f"{label} {entity.id} belongs to owner {entity.owner_id}, not {owner_id}",
        )
        raise AuthorizationError(UNAUTHORIZED_MESSAGE)
    return entity
