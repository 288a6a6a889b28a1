import logging

from fastapi import APIRouter, Depends, Header, Request

from storefront.application.checkout_service import CheckoutService
from storefront.interfaces.dependencies import get_checkout_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhook/razorpay")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(None),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """
    Razorpay webhook endpoint.
    The signature covers the raw body, so it is read before any JSON parsing.
    """
    body = await request.body()
    logger.info(f"🔔 Razorpay webhook received ({len(body)} bytes)")
    return await checkout.handle_webhook(body, x_razorpay_signature)
