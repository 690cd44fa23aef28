# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Store owner authentication with bcrypt password hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..errors import ValidationError
from ..extensions import db
from ..models import StoreOwner
from ..time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12 (strength validated first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def create_owner(name: str, email: str, password: str) -> StoreOwner:
    """
    Register a store owner (a new tenant).

    Raises:
        ValidationError: blank name, bad email, or email already registered
        PasswordValidationError: weak password
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise ValidationError("'Name' is required!")
    if not email or "@" not in email:
        raise ValidationError("'Email' must be a valid email!")

    existing = db.session.query(StoreOwner).filter_by(email=email).first()
    if existing:
        raise ValidationError("Email already exists. Please login instead.")

    owner = StoreOwner(name=name, email=email, password_hash=hash_password(password or ""))
    db.session.add(owner)
    db.session.commit()
    return owner


def authenticate(email: str, password: str) -> StoreOwner | None:
    """
    Return the active owner for these credentials, or None.

    Updates last_login_at on success.
    """
    owner = (
        db.session.query(StoreOwner)
        .filter(StoreOwner.email == (email or "").strip().lower(), StoreOwner.is_active.is_(True))
        .first()
    )
    if not owner or not verify_password(password or "", owner.password_hash):
        return None

    owner.last_login_at = utcnow()
    db.session.commit()
    return owner
