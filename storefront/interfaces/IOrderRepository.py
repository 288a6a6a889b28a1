from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple


class IOrderRepository(ABC):
    @abstractmethod
    def create_order(self, order: Dict) -> Dict:
        """Insert one order row and return it as stored (id, order_number, created_at)."""
        pass

    @abstractmethod
    def create_order_items(self, order_id: int, items: List[Dict]) -> None:
        """Insert all line items of an order in one batch."""
        pass

    @abstractmethod
    def delete_order(self, order_id: int) -> bool:
        pass

    @abstractmethod
    def update_status_by_gateway_order(
        self, razorpay_order_id: str, status: str, payment_id: Optional[str] = None
    ) -> int:
        """Set the status of orders matched by gateway order id. Returns rows touched.

        Confirmed orders are never moved to another status, and ``payment_id``
        is only recorded together with a confirmation.
        """
        pass

    @abstractmethod
    def get_order(self, order_id: int) -> Optional[Dict]:
        pass

    @abstractmethod
    def list_orders(self, user_id: str, limit: int, offset: int) -> Tuple[List[Dict], int]:
        pass

    @abstractmethod
    def ping(self) -> None:
        pass
