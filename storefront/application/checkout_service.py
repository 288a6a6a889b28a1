import json
import logging
import math
from decimal import Decimal
from typing import Dict, List, Optional

from storefront.application.remote import call_blocking, call_blocking_write, read_with_retry
from storefront.core.config import Settings
from storefront.core.exceptions import (
    CheckoutError,
    ConfigurationError,
    InvalidRequestError,
    NotFoundError,
    SignatureError,
    StoreError,
)
from storefront.domain import payments
from storefront.domain.schemas import REQUIRED_SHIPPING_FIELDS, SaveOrderRequest, to_decimal
from storefront.interfaces.IOrderRepository import IOrderRepository
from storefront.interfaces.IPaymentGateway import IPaymentGateway

logger = logging.getLogger(__name__)

GATEWAY = "razorpay"
COD = "cod"
PAYMENT_METHOD_ALIASES = {
    "razorpay": GATEWAY,
    "online": GATEWAY,
    "card": GATEWAY,
    "upi": GATEWAY,
    "cod": COD,
    "cash": COD,
    "cash_on_delivery": COD,
}

WEBHOOK_STATUSES = {
    "payment.captured": "confirmed",
    "payment.failed": "failed",
}

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
# Largest id the INTEGER primary key can hold.
MAX_ORDER_ID = 2 ** 31 - 1


def page_window(page, limit, default_limit: int = DEFAULT_PAGE_SIZE):
    """Clamp pagination query values. Returns (page, limit, offset)."""
    try:
        page = max(1, int(page))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(MAX_PAGE_SIZE, max(1, int(limit)))
    except (TypeError, ValueError):
        limit = default_limit
    return page, limit, (page - 1) * limit


def pagination(page: int, limit: int, total: int) -> Dict:
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit) if total else 0}


class CheckoutService:
    def __init__(self, gateway: IPaymentGateway, order_repo: IOrderRepository, settings: Settings):
        self.gateway = gateway
        self.order_repo = order_repo
        self.settings = settings

    # --- GATEWAY ORDER ---

    async def create_payment_order(self, amount) -> Dict:
        amount_paise = payments.to_minor_units(
            amount,
            minimum=self.settings.MIN_ORDER_AMOUNT,
            maximum=self.settings.MAX_ORDER_AMOUNT_PAISE,
        )
        receipt = payments.new_receipt()
        logger.info(f"➡️ Creating gateway order: {amount_paise} paise, receipt {receipt}")

        order = await call_blocking(
            self.gateway.create_order,
            amount_paise,
            payments.CURRENCY,
            receipt,
            payment_capture=True,
            timeout=self.settings.GATEWAY_TIMEOUT_SECONDS,
            what="Gateway order creation",
        )
        logger.info(f"✅ Razorpay order created: {order.get('id')}")
        return order

    # --- SAVE ORDER (two-step write with compensation) ---

    async def save_order(self, request: SaveOrderRequest) -> Dict:
        payment_method = self._validate(request)
        order_row = self._order_row(request, payment_method)
        item_rows = [self._item_row(item) for item in request.items]

        # 1. Order row
        try:
            order = await call_blocking_write(
                self.order_repo.create_order, order_row,
                timeout=self.settings.DB_TIMEOUT_SECONDS, what="Order insert",
                undo=lambda created: self.order_repo.delete_order(created["id"]),
            )
        except CheckoutError as e:
            logger.error(f"❌ Order insert failed: {e.details or e.error}")
            raise StoreError("Order creation failed", status_code=e.status_code, details=e.details) from e

        # 2. Line items; on failure remove the order so no partial order survives.
        try:
            await call_blocking_write(
                self.order_repo.create_order_items, order["id"], item_rows,
                timeout=self.settings.DB_TIMEOUT_SECONDS, what="Order items insert",
                undo=lambda _: self.order_repo.delete_order(order["id"]),
            )
        except Exception as e:
            logger.error(f"❌ Order items insert failed for order {order['id']}: {e}")
            await self._compensate_order(order["id"])
            if isinstance(e, CheckoutError):
                raise StoreError(
                    "Order items creation failed", status_code=e.status_code, details=e.details or e.error
                ) from e
            raise StoreError("Order items creation failed", details=str(e)) from e

        logger.info(f"✅ Order & Items saved successfully: {order['id']} ({len(item_rows)} items)")
        return {
            "id": order["id"],
            "order_number": order["order_number"],
            "total_amount": order["total_amount"],
            "status": order["status"],
            "created_at": order["created_at"],
        }

    async def _compensate_order(self, order_id: int) -> None:
        try:
            deleted = await call_blocking(
                self.order_repo.delete_order, order_id,
                timeout=self.settings.DB_TIMEOUT_SECONDS, what="Compensating order delete",
            )
            logger.warning(f"↩️ Rolled back order {order_id} (deleted={deleted})")
        except Exception as e:
            # The caller still gets the item error; this outcome is only logged.
            logger.error(f"❌ Compensating delete failed for order {order_id}: {e}")

    def _validate(self, request: SaveOrderRequest) -> str:
        """Collect every violation before any write. Returns the canonical payment method."""
        fields: List[str] = []
        messages: List[str] = []

        if not request.items:
            fields.append("items")
            messages.append("Items missing")

        total = to_decimal(request.total_amount)
        if total is None or total <= 0:
            fields.append("total_amount")
            messages.append("Invalid total_amount")

        method = PAYMENT_METHOD_ALIASES.get((request.payment_method or "").strip().lower())
        if method is None:
            fields.append("payment_method")
            messages.append("Invalid payment_method")

        shipping = request.shipping_info
        missing_shipping = [
            f"shipping_info.{name}"
            for name in REQUIRED_SHIPPING_FIELDS
            if shipping is None or not getattr(shipping, name)
        ]
        if missing_shipping:
            fields.extend(missing_shipping)
            messages.append("Incomplete shipping info")

        if fields:
            raise InvalidRequestError("; ".join(messages), fields=fields)
        return method

    def _order_row(self, request: SaveOrderRequest, payment_method: str) -> Dict:
        details = request.payment_details
        if payment_method == GATEWAY:
            payment_id = request.payment_id or (details.razorpay_payment_id if details else None)
            razorpay_order_id = request.razorpay_order_id or (details.razorpay_order_id if details else None)
            signature = request.razorpay_signature or (details.razorpay_signature if details else None)
            # Confirmed only once the payment signature checks out.
            verified = bool(razorpay_order_id and payment_id) and payments.verify_payment_signature(
                self.settings.RAZORPAY_KEY_SECRET, razorpay_order_id, payment_id, signature
            )
            status = "confirmed" if verified else "pending"
        else:
            # Client-supplied payment ids are never trusted for COD.
            payment_id = None
            razorpay_order_id = None
            status = "pending"

        shipping = request.shipping_info
        return {
            "user_id": str(request.user_id) if request.user_id is not None else None,
            "subtotal": self._optional_money(request.subtotal),
            "shipping_fee": self._optional_money(request.shipping_fee),
            "tax": self._optional_money(request.tax),
            "total_amount": to_decimal(request.total_amount),
            "payment_method": payment_method,
            "payment_id": payment_id,
            "razorpay_order_id": razorpay_order_id,
            "status": status,
            "shipping_address": {
                "name": f"{shipping.firstName} {shipping.lastName}",
                "email": shipping.email,
                "phone": shipping.phone,
                "street": shipping.address,
                "city": shipping.city,
                "state": shipping.state,
                "postal_code": shipping.zipCode,
                "country": shipping.country or self.settings.DEFAULT_COUNTRY,
            },
        }

    @staticmethod
    def _optional_money(value) -> Optional[Decimal]:
        parsed = to_decimal(value)
        return parsed if parsed is not None and parsed >= 0 else None

    @staticmethod
    def _item_row(item) -> Dict:
        return {
            "product_id": str(item.id) if item.id is not None else None,
            "product_name": item.name,
            "quantity": item.quantity,
            "price_at_time": item.price,
            "image_url": item.image,
        }

    # --- PAYMENT VERIFICATION ---

    async def verify_payment(self, razorpay_order_id, razorpay_payment_id, razorpay_signature) -> Dict:
        missing = [
            name for name, value in (
                ("razorpay_order_id", razorpay_order_id),
                ("razorpay_payment_id", razorpay_payment_id),
                ("razorpay_signature", razorpay_signature),
            ) if not value
        ]
        if missing:
            raise InvalidRequestError("Missing payment verification data", fields=missing)

        if not payments.verify_payment_signature(
            self.settings.RAZORPAY_KEY_SECRET, razorpay_order_id, razorpay_payment_id, razorpay_signature
        ):
            logger.error(f"❌ Signature Mismatch for gateway order {razorpay_order_id}")
            raise SignatureError("Invalid signature")

        logger.info(f"✅ Payment Verified: {razorpay_payment_id}")
        await self._mark_order(razorpay_order_id, "confirmed", razorpay_payment_id)
        return {
            "success": True,
            "message": "Payment verified successfully",
            "payment_id": razorpay_payment_id,
        }

    async def _mark_order(self, razorpay_order_id: str, status: str, payment_id: Optional[str]) -> int:
        """Best-effort status update; never turns a verified payment into an error."""
        try:
            updated = await call_blocking(
                self.order_repo.update_status_by_gateway_order, razorpay_order_id, status, payment_id,
                timeout=self.settings.DB_TIMEOUT_SECONDS, what="Order status update",
            )
        except Exception as e:
            logger.error(f"❌ Could not mark gateway order {razorpay_order_id} {status}: {e}")
            return 0
        if not updated:
            logger.warning(f"⚠️ No order moved to {status} for gateway order {razorpay_order_id}")
        return updated

    # --- WEBHOOK ---

    async def handle_webhook(self, body: bytes, signature: Optional[str]) -> Dict:
        secret = self.settings.RAZORPAY_WEBHOOK_SECRET
        if not secret:
            raise ConfigurationError("Webhook secret not configured")
        if not signature:
            raise SignatureError("Missing signature")
        if not payments.verify_webhook_signature(secret, body, signature):
            logger.error("❌ Webhook signature mismatch")
            raise SignatureError("Invalid signature")

        try:
            event = json.loads(body)
        except ValueError:
            raise InvalidRequestError("Invalid webhook payload")
        if not isinstance(event, dict):
            raise InvalidRequestError("Invalid webhook payload")

        event_type = event.get("event")
        status = WEBHOOK_STATUSES.get(event_type)
        if status is None:
            logger.info(f"ℹ️ Ignoring webhook event: {event_type}")
            return {"received": True}

        payment = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
        razorpay_order_id = payment.get("order_id")
        if not razorpay_order_id:
            logger.warning(f"⚠️ Webhook {event_type} without order_id, ignored")
            return {"received": True}

        logger.info(f"📨 Webhook {event_type}: gateway order {razorpay_order_id} -> {status}")
        await self._mark_order(razorpay_order_id, status, payment.get("id"))
        return {"received": True}

    # --- ORDER READS ---

    async def list_orders(self, user_id: Optional[str], page=1, limit=DEFAULT_PAGE_SIZE) -> Dict:
        if not user_id:
            raise InvalidRequestError("user_id is required", fields=["user_id"])
        page, limit, offset = page_window(page, limit)
        orders, total = await read_with_retry(
            self.order_repo.list_orders, user_id, limit, offset,
            timeout=self.settings.DB_TIMEOUT_SECONDS, retries=self.settings.READ_RETRIES,
            what="Order listing",
        )
        return {"success": True, "data": orders, "pagination": pagination(page, limit, total)}

    async def get_order(self, order_id) -> Dict:
        try:
            order_id = int(order_id)
        except (TypeError, ValueError):
            raise NotFoundError("Order not found")
        if not 0 < order_id <= MAX_ORDER_ID:
            raise NotFoundError("Order not found")
        order = await read_with_retry(
            self.order_repo.get_order, order_id,
            timeout=self.settings.DB_TIMEOUT_SECONDS, retries=self.settings.READ_RETRIES,
            what="Order lookup",
        )
        if order is None:
            raise NotFoundError("Order not found")
        return order

    # --- DIAGNOSTICS ---

    async def connection_status(self) -> Dict:
        try:
            await call_blocking(self.order_repo.ping, timeout=self.settings.DB_TIMEOUT_SECONDS, what="Store ping")
            store = "Connected"
        except CheckoutError:
            store = "Failed"
        try:
            await call_blocking(self.gateway.ping, timeout=self.settings.GATEWAY_TIMEOUT_SECONDS, what="Gateway ping")
            gateway = "Connected"
        except CheckoutError as e:
            gateway = f"Error: {e.error}"
        return {"database": store, "razorpay": gateway}
