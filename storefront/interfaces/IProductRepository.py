from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple


class IProductRepository(ABC):
    @abstractmethod
    def list_products(
        self, category: Optional[str], brand: Optional[str], limit: int, offset: int
    ) -> Tuple[List[Dict], int]:
        pass

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Dict]:
        pass

    @abstractmethod
    def create_product(self, product: Dict) -> Dict:
        pass

    @abstractmethod
    def delete_product(self, product_id: str) -> bool:
        pass
