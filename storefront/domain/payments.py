"""
Payment rules that do not depend on any client: rupee to paise conversion,
receipt and order-number tokens, and Razorpay signature checks.
"""

import hashlib
import hmac
import secrets
import time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from storefront.core.exceptions import InvalidRequestError

CURRENCY = "INR"
DEFAULT_MAX_AMOUNT_PAISE = 10_000_000


def to_minor_units(
    amount: Any,
    minimum: float = 0,
    maximum: int = DEFAULT_MAX_AMOUNT_PAISE,
) -> int:
    """
    Convert a rupee amount (number or numeric string) to integer paise.

    Rounds half away from zero on the decimal value so 0.005 rupees is 1 paisa
    and 499.99 is exactly 49999. Raises InvalidRequestError instead of
    coercing anything that is not a finite amount above ``minimum``, or that
    exceeds ``maximum`` paise.
    """
    if amount is None or isinstance(amount, bool) or amount == "":
        raise InvalidRequestError("Invalid amount", fields=["amount"])

    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRequestError("Invalid amount", fields=["amount"])

    if not value.is_finite() or value <= 0 or value <= Decimal(str(minimum)):
        raise InvalidRequestError("Invalid amount", fields=["amount"])

    # Compared before scaling: huge values would overflow the decimal context.
    if value >= (Decimal(maximum) + Decimal("0.5")) / 100:
        raise _exceeds_maximum(maximum)

    paise = int((value * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if paise <= 0:
        raise InvalidRequestError("Invalid amount", fields=["amount"])
    if paise > maximum:
        raise _exceeds_maximum(maximum)
    return paise


def _exceeds_maximum(maximum: int) -> InvalidRequestError:
    return InvalidRequestError(
        "Amount exceeds maximum",
        fields=["amount"],
        details={"max_amount_paise": maximum},
    )


def _token(prefix: str, sep: str, random_bytes: int) -> str:
    # Millisecond clock plus random suffix: unique under concurrent requests.
    return f"{prefix}{sep}{int(time.time() * 1000)}{sep}{secrets.token_hex(random_bytes)}"


def new_receipt() -> str:
    return _token("receipt", "_", 4)


def new_order_number() -> str:
    return _token("ORD", "-", 3).upper()


# ---------- Signatures ----------

def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """Lowercase hex HMAC-SHA256 over ``order_id|payment_id``."""
    return _hmac_hex(secret, f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8"))


def verify_payment_signature(
    secret: str,
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: Optional[str],
) -> bool:
    if not signature:
        return False
    expected = payment_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def webhook_signature(secret: str, body: bytes) -> str:
    return _hmac_hex(secret, body)


def verify_webhook_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Check the ``X-Razorpay-Signature`` header against the raw request body."""
    if not signature:
        return False
    expected = webhook_signature(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
