import logging
from typing import Any, Dict, Optional

import requests

from storefront.core.exceptions import ConfigurationError, GatewayError, UpstreamTimeout
from storefront.interfaces.IPaymentGateway import IPaymentGateway

logger = logging.getLogger(__name__)


class RazorpayGateway(IPaymentGateway):
    """Thin client over the Razorpay Orders REST API."""

    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        if not key_id or not key_secret:
            logger.error("❌ Razorpay credentials missing")
            raise ConfigurationError("Payment config missing")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (key_id, key_secret)
        logger.info("✅ RazorpayGateway: client initialized")

    def create_order(self, amount: int, currency: str, receipt: str, payment_capture: bool = True) -> Dict[str, Any]:
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1 if payment_capture else 0,
        }
        return self._request("POST", "/orders", json=payload)

    def ping(self) -> None:
        self._request("GET", "/orders", params={"count": 1})

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise UpstreamTimeout("Payment gateway timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Razorpay unreachable: {e}")
            raise GatewayError("Payment gateway unreachable", details=str(e)) from e

        if response.ok:
            return response.json()

        error = self._error_body(response)
        logger.error(f"❌ Razorpay {method} {path} failed ({response.status_code}): {error}")
        # Only a bad-request-shaped rejection is the caller's fault.
        if response.status_code == 400:
            raise GatewayError(
                error.get("description") or "Payment gateway rejected the request",
                status_code=400,
                details={"code": error.get("code"), "description": error.get("description")},
            )
        raise GatewayError(details={"code": error.get("code"), "status": response.status_code})

    @staticmethod
    def _error_body(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {"description": response.text[:200]}
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"]
        return {}
