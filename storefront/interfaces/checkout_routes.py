import logging

from fastapi import APIRouter, Depends

from storefront.application.checkout_service import CheckoutService
from storefront.domain.schemas import CreateOrderRequest, SaveOrderRequest, VerifyPaymentRequest
from storefront.interfaces.dependencies import get_checkout_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/create-order")
async def create_order(payload: CreateOrderRequest, checkout: CheckoutService = Depends(get_checkout_service)):
    logger.info(f"➡️ Create-order request: amount={payload.amount!r}")
    return await checkout.create_payment_order(payload.amount)


@router.post("/save-order")
async def save_order(payload: SaveOrderRequest, checkout: CheckoutService = Depends(get_checkout_service)):
    logger.info(f"📦 Saving order: {len(payload.items or [])} items, method={payload.payment_method}")
    order = await checkout.save_order(payload)
    return {"success": True, "order": order}


@router.post("/verify-payment")
async def verify_payment(payload: VerifyPaymentRequest, checkout: CheckoutService = Depends(get_checkout_service)):
    return await checkout.verify_payment(
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
    )
