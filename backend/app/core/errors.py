"""Domain error taxonomy.

Services raise these; the handlers registered in ``app.main`` turn them into
``{"error": <message>, "reason": <reason>}`` bodies with the carried status
code. Anything that is not a ``ServiceError`` is rendered as a generic 500.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    reason: Optional[str] = None
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        self.message = message or self.default_message
        if reason is not None:
            self.reason = reason
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.reason:
            body["reason"] = self.reason
        return body


class ValidationFailed(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class SplitMismatch(ValidationFailed):
    reason = "split_mismatch"
    default_message = "Split amounts do not match total"


class AuthRequired(ServiceError):
    status_code = 401
    default_message = "Missing tenant ID"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class TenantNotFound(NotFound):
    default_message = "Tenant not found"


class TableNotFound(NotFound):
    default_message = "Table not found"


class CartNotFound(NotFound):
    default_message = "Cart not found"


class OrderNotFound(NotFound):
    default_message = "Order not found"


class IntentNotFound(NotFound):
    default_message = "Payment intent not found"


class ProviderNotFound(NotFound):
    default_message = "Payment provider not found"


class InvalidTransition(ServiceError):
    status_code = 409
    reason = "invalid_transition"
    default_message = "Status transition not allowed"


class NotConfigured(ServiceError):
    status_code = 400
    reason = "not_configured"
    default_message = "Payment provider not configured"


class ProviderNotImplemented(ServiceError):
    status_code = 501
    reason = "not_implemented"
    default_message = "Provider not implemented"


class ServiceDegraded(ServiceError):
    status_code = 503
    reason = "missing_table"
    default_message = "Service not available"
