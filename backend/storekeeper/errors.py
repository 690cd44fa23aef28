# Overview: Service-layer error taxonomy; each error carries the HTTP status routes answer with.

from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(ServiceError):
    """Input or business-rule rejection (422)."""

    status_code = 422


class StockExceededError(ValidationError):
    """An order line asks for more than the product has in stock."""

    def __init__(self, code: str):
        super().__init__(f"The order quantity for {code} has exceeded its stock quantity.")
        self.code = code


class ReturnExceededError(ValidationError):
    """A return line exceeds what is still returnable on the order."""

    def __init__(self, code: str):
        super().__init__(f"The return quantity for {code} has exceeded its order quantity.")
        self.code = code


class AuthorizationError(ServiceError):
    """Caller does not own the resource, or is not authenticated (401)."""

    status_code = 401


class NotFoundError(ServiceError):
    status_code = 404


class InternalError(ServiceError):
    """A persistence step failed; the unit of work was rolled back."""

    status_code = 500
