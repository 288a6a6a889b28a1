from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.infrastructure.database import Base

ORDER_STATUSES = ("pending", "confirmed", "failed")


def _utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(64), unique=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=True)  # null for guest checkout

    # Monetary totals in rupees.
    subtotal = Column(Numeric(12, 2), nullable=True)
    shipping_fee = Column(Numeric(12, 2), nullable=True)
    tax = Column(Numeric(12, 2), nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)

    payment_method = Column(String(32), nullable=False)  # razorpay, cod
    payment_id = Column(String(64), nullable=True)
    razorpay_order_id = Column(String(64), index=True, nullable=True)
    status = Column(String(16), default="pending", nullable=False)  # pending, confirmed, failed

    shipping_address = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    # No FK: the product may be deleted after the order was placed.
    product_id = Column(String(64), nullable=True)
    # Snapshots taken at order time, immune to later product edits.
    product_name = Column(String(255), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    price_at_time = Column(Numeric(12, 2), default=0, nullable=False)
    image_url = Column(String(1024), nullable=True)

    order = relationship("Order", back_populates="items")


class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    image_url = Column(String(1024), nullable=True)
    category = Column(String(64), index=True, nullable=True)
    brand = Column(String(64), index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
