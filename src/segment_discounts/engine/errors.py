"""
Error types raised by the discount pipeline.

Each error carries the HTTP status the API layer reports for it.
"""
from typing import Any, Optional


class DiscountError(Exception):
    """Base error for the discount pipeline."""
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"success": False, "error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InputError(DiscountError):
    """Malformed or missing request fields."""
    status_code = 400


class MissingCredentialsError(DiscountError):
    """No upstream access token is configured for the shop."""
    status_code = 401


class NotFoundError(DiscountError):
    """A customer, segment or plan is absent."""
    status_code = 404


class CustomerNotFoundError(NotFoundError):
    """The Catalog/Customer Service does not know the customer."""


class UpstreamError(DiscountError):
    """The Catalog/Customer Service or Order Sink is unreachable or erroring."""
    status_code = 500


class OrderValidationError(DiscountError):
    """The Order Sink rejected the submitted lines; details are its errors verbatim."""
    status_code = 400
