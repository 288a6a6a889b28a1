from abc import ABC, abstractmethod
from typing import Any, Dict


class IPaymentGateway(ABC):
    @abstractmethod
    def create_order(self, amount: int, currency: str, receipt: str, payment_capture: bool = True) -> Dict[str, Any]:
        """Create a gateway order for ``amount`` minor units. Never retried."""
        pass

    @abstractmethod
    def ping(self) -> None:
        """Raise if the gateway cannot be reached with the configured credentials."""
        pass
