import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import desc, func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from storefront.core.exceptions import StoreError
from storefront.domain.models import Order, OrderItem
from storefront.domain.payments import new_order_number
from storefront.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)


def _money(value):
    return float(value) if isinstance(value, Decimal) else value


def _timestamp(value):
    return value.isoformat() if value is not None else None


def item_to_dict(item: OrderItem) -> Dict:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "product_id": item.product_id,
        "product_name": item.product_name,
        "quantity": item.quantity,
        "price_at_time": _money(item.price_at_time),
        "image_url": item.image_url,
    }


def order_to_dict(order: Order, with_items: bool = False) -> Dict:
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "subtotal": _money(order.subtotal),
        "shipping_fee": _money(order.shipping_fee),
        "tax": _money(order.tax),
        "total_amount": _money(order.total_amount),
        "payment_method": order.payment_method,
        "payment_id": order.payment_id,
        "razorpay_order_id": order.razorpay_order_id,
        "status": order.status,
        "shipping_address": order.shipping_address,
        "created_at": _timestamp(order.created_at),
        "updated_at": _timestamp(order.updated_at),
    }
    if with_items:
        data["order_items"] = [item_to_dict(i) for i in order.items]
    return data


class SqlOrderRepository(IOrderRepository):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create_order(self, order: Dict) -> Dict:
        session = self.session_factory()
        try:
            new_order = Order(order_number=new_order_number(), **order)
            session.add(new_order)
            session.commit()
            # Read back server-computed columns.
            session.refresh(new_order)
            return order_to_dict(new_order)
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Error creating order: {e}")
            session.rollback()
            raise StoreError("Order insert failed", details=str(e)) from e
        finally:
            session.close()

    def create_order_items(self, order_id: int, items: List[Dict]) -> None:
        session = self.session_factory()
        try:
            session.add_all([OrderItem(order_id=order_id, **item) for item in items])
            session.commit()
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Error creating items for order {order_id}: {e}")
            session.rollback()
            raise StoreError("Order items insert failed", details=str(e)) from e
        finally:
            session.close()

    def delete_order(self, order_id: int) -> bool:
        session = self.session_factory()
        try:
            order = session.get(Order, order_id)
            if order is None:
                return False
            session.delete(order)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError("Order delete failed", details=str(e)) from e
        finally:
            session.close()

    def update_status_by_gateway_order(
        self, razorpay_order_id: str, status: str, payment_id: Optional[str] = None
    ) -> int:
        query = update(Order).where(Order.razorpay_order_id == razorpay_order_id)
        values = {"status": status}
        if status == "confirmed":
            if payment_id:
                values["payment_id"] = payment_id
        else:
            # Confirmed is terminal: a late event for another attempt never downgrades it.
            query = query.where(Order.status != "confirmed")

        session = self.session_factory()
        try:
            result = session.execute(query.values(**values))
            session.commit()
            return result.rowcount
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError("Order status update failed", details=str(e)) from e
        finally:
            session.close()

    def get_order(self, order_id: int) -> Optional[Dict]:
        session = self.session_factory()
        try:
            order = session.execute(
                select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
            ).scalar_one_or_none()
            return order_to_dict(order, with_items=True) if order else None
        except SQLAlchemyError as e:
            raise StoreError("Failed to fetch order", details=str(e)) from e
        finally:
            session.close()

    def list_orders(self, user_id: str, limit: int, offset: int) -> Tuple[List[Dict], int]:
        """
        Retrieves one page of a user's orders with their items.
        Ordered by created_at DESC (Newest first).
        """
        session = self.session_factory()
        try:
            total = session.scalar(
                select(func.count()).select_from(Order).where(Order.user_id == user_id)
            )
            orders = session.execute(
                select(Order)
                .options(selectinload(Order.items))
                .where(Order.user_id == user_id)
                .order_by(desc(Order.created_at), desc(Order.id))
                .limit(limit)
                .offset(offset)
            ).scalars().all()
            return [order_to_dict(o, with_items=True) for o in orders], total or 0
        except SQLAlchemyError as e:
            raise StoreError("Failed to fetch orders", details=str(e)) from e
        finally:
            session.close()

    def ping(self) -> None:
        session = self.session_factory()
        try:
            session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreError("Data store unreachable", details=str(e)) from e
        finally:
            session.close()
