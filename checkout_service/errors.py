"""
errors.py — Error Taxonomy for the Checkout Service

Every failure the checkout pipeline can report derives from `CheckoutError`.
Each class carries the HTTP status, a stable machine-readable reason code and a
safe, customer-facing message. Extra fields (unit index, order id, platform
user errors) are merged into the JSON error body for support correlation.

Classes:
    - ConfigurationError: invalid or missing settings at startup (never a response)
    - AuthenticationError (401), OriginNotAllowedError (403)
    - ValidationError (400), PayloadTooLargeError (413)
    - PricingError (422) and its subclasses
    - CollaboratorError (502/400), InvoiceUnavailableError (502)
    - InternalError (500)
"""

from typing import Any, Dict, List, Optional


class ConfigurationError(Exception):
    """Raised when the process configuration cannot be loaded."""


class CheckoutError(Exception):
    status_code = 500
    reason = "internal_error"
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if reason:
            self.reason = reason

    def extra(self) -> Dict[str, Any]:
        """Additional, non-sensitive fields for the error body."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "reason": self.reason}
        body.update(self.extra())
        return body


class AuthenticationError(CheckoutError):
    """
    Signature missing, malformed, expired or wrong.

    The message never contains the expected signature or any secret material.
    """
    status_code = 401
    reason = "bad_signature"
    default_message = "Request signature could not be verified"


class OriginNotAllowedError(CheckoutError):
    status_code = 403
    reason = "origin_not_allowed"
    default_message = "Origin not allowed"


class ValidationError(CheckoutError):
    status_code = 400
    reason = "invalid_payload"
    default_message = "Invalid request payload"


class PayloadTooLargeError(ValidationError):
    status_code = 413
    reason = "payload_too_large"
    default_message = "Request body too large"


class PricingError(CheckoutError):
    """A unit could not be priced. Names the 1-based unit index when known."""
    status_code = 422
    reason = "unpriced_configuration"
    default_message = "Unpriced configuration"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None,
                 unit_index: Optional[int] = None):
        super().__init__(message, reason)
        self.unit_index = unit_index

    def extra(self) -> Dict[str, Any]:
        if self.unit_index is None:
            return {}
        return {"unitIndex": self.unit_index}


class InvalidConfigurationError(PricingError):
    reason = "invalid_configuration"
    default_message = "Invalid unit configuration"


class PriceMismatchError(PricingError):
    reason = "price_mismatch"
    default_message = "Declared price does not match the calculated price"


class CollaboratorError(CheckoutError):
    """
    The order platform failed or rejected the order.

    `user_errors` holds the platform's merchant-facing messages; when present the
    caller's input was at fault and the status is 400, otherwise 502.
    """
    status_code = 502
    reason = "platform_error"
    default_message = "Order platform error"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None,
                 user_errors: Optional[List[str]] = None):
        super().__init__(message, reason)
        self.user_errors = list(user_errors or [])
        if self.user_errors:
            self.status_code = 400
            self.reason = reason or "order_rejected"

    def extra(self) -> Dict[str, Any]:
        if not self.user_errors:
            return {}
        return {"userErrors": self.user_errors}


class InvoiceUnavailableError(CollaboratorError):
    """The draft order exists but its invoice URL never resolved."""
    reason = "invoice_url_unavailable"
    default_message = "Order created but invoice link is not available yet"

    def __init__(self, order_id: str, message: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id

    def extra(self) -> Dict[str, Any]:
        return {"orderId": self.order_id}


class InternalError(CheckoutError):
    status_code = 500
    reason = "internal_error"
    default_message = "Server error"
