"""
Request Schemas

One canonical shape per endpoint. Fields are optional at the parsing stage so
the checkout service can report every violation at once with a 400 instead of
stopping at the first one.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return parsed if parsed.is_finite() else None


def id_to_text(value: Any) -> Any:
    """Gateway references are text; clients sometimes send them as numbers."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class CreateOrderRequest(BaseModel):
    amount: Optional[Any] = Field(None, description="Amount in rupees, number or numeric string")


class CheckoutItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[str, int]] = Field(None, description="Product id")
    name: Optional[str] = None
    price: Decimal = Field(Decimal("0"), description="Unit price in rupees at order time")
    quantity: int = Field(1, description="Units ordered, at least 1")
    image: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def default_price(cls, value):
        parsed = to_decimal(value)
        return parsed if parsed is not None and parsed >= 0 else Decimal("0")

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, value):
        parsed = to_decimal(value)
        if parsed is None or parsed != parsed.to_integral_value() or parsed < 1:
            return 1
        return int(parsed)


class ShippingInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None


REQUIRED_SHIPPING_FIELDS = (
    "firstName", "lastName", "email", "phone", "address", "city", "state", "zipCode",
)


class PaymentDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    razorpay_payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_signature: Optional[str] = None

    @field_validator("razorpay_payment_id", "razorpay_order_id", mode="before")
    @classmethod
    def ids_as_text(cls, value):
        return id_to_text(value)


class SaveOrderRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: Optional[Union[str, int]] = None
    items: Optional[List[CheckoutItem]] = None
    total_amount: Optional[Any] = None
    subtotal: Optional[Any] = None
    shipping_fee: Optional[Any] = None
    tax: Optional[Any] = None
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    payment_details: Optional[PaymentDetails] = None
    shipping_info: Optional[ShippingInfo] = None

    @field_validator("payment_id", "razorpay_order_id", mode="before")
    @classmethod
    def ids_as_text(cls, value):
        return id_to_text(value)


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class ProductCreate(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, description="Product name")
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, description="Price in INR")
    image_url: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
