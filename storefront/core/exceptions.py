"""
Error taxonomy for the checkout backend.

Every error raised on purpose by the services derives from ``CheckoutError``
and carries the HTTP status it should be rendered with. The FastAPI handlers
in ``storefront.main`` turn them into ``{"success": false, "error": ...}``.
"""

from typing import Any, List, Optional


class CheckoutError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(
        self,
        error: Optional[str] = None,
        *,
        fields: Optional[List[str]] = None,
        details: Any = None,
    ):
        self.error = error or self.error
        self.fields = fields or []
        self.details = details
        super().__init__(self.error)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.error}
        if self.fields:
            body["fields"] = list(self.fields)
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidRequestError(CheckoutError):
    """Client sent malformed, missing or out-of-range input."""
    status_code = 400
    error = "Invalid request"


class SignatureError(CheckoutError):
    status_code = 400
    error = "Invalid signature"


class NotFoundError(CheckoutError):
    status_code = 404
    error = "Not found"


class ConfigurationError(CheckoutError):
    """Required credentials are absent."""
    status_code = 500
    error = "Payment config missing"


class UpstreamError(CheckoutError):
    """The gateway or the data store rejected or failed a call."""

    def __init__(self, error: Optional[str] = None, *, status_code: int = 500, **kwargs):
        super().__init__(error, **kwargs)
        self.status_code = status_code


class GatewayError(UpstreamError):
    error = "Payment gateway error"


class StoreError(UpstreamError):
    error = "Data store error"


class UpstreamTimeout(UpstreamError):
    error = "Upstream call timed out"

    def __init__(self, error: Optional[str] = None, **kwargs):
        kwargs.setdefault("status_code", 504)
        super().__init__(error, **kwargs)
