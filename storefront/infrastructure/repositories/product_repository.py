import uuid
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from storefront.core.exceptions import StoreError
from storefront.domain.models import Product
from storefront.interfaces.IProductRepository import IProductRepository


def product_to_dict(product: Product) -> Dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": float(product.price) if isinstance(product.price, Decimal) else product.price,
        "image_url": product.image_url,
        "category": product.category,
        "brand": product.brand,
        "created_at": product.created_at.isoformat() if product.created_at else None,
    }


class SqlProductRepository(IProductRepository):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def list_products(
        self, category: Optional[str], brand: Optional[str], limit: int, offset: int
    ) -> Tuple[List[Dict], int]:
        query = select(Product)
        if category:
            query = query.where(Product.category == category)
        if brand:
            query = query.where(Product.brand == brand)

        session = self.session_factory()
        try:
            total = session.scalar(select(func.count()).select_from(query.subquery()))
            products = session.execute(
                query.order_by(desc(Product.created_at)).limit(limit).offset(offset)
            ).scalars().all()
            return [product_to_dict(p) for p in products], total or 0
        except SQLAlchemyError as e:
            raise StoreError("Failed to fetch products", details=str(e)) from e
        finally:
            session.close()

    def get_product(self, product_id: str) -> Optional[Dict]:
        session = self.session_factory()
        try:
            product = session.get(Product, product_id)
            return product_to_dict(product) if product else None
        except SQLAlchemyError as e:
            raise StoreError("Failed to fetch product", details=str(e)) from e
        finally:
            session.close()

    def create_product(self, product: Dict) -> Dict:
        data = dict(product)
        data["id"] = data.get("id") or uuid.uuid4().hex

        session = self.session_factory()
        try:
            new_product = Product(**data)
            session.add(new_product)
            session.commit()
            session.refresh(new_product)
            return product_to_dict(new_product)
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError("Product insert failed", details=str(e)) from e
        finally:
            session.close()

    def delete_product(self, product_id: str) -> bool:
        session = self.session_factory()
        try:
            product = session.get(Product, product_id)
            if product is None:
                return False
            session.delete(product)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError("Product delete failed", details=str(e)) from e
        finally:
            session.close()
