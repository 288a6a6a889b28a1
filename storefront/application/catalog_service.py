import logging
from typing import Dict, Optional

from storefront.application.checkout_service import DEFAULT_PAGE_SIZE, page_window, pagination
from storefront.application.remote import call_blocking, read_with_retry
from storefront.core.config import Settings
from storefront.core.exceptions import NotFoundError
from storefront.domain.schemas import ProductCreate
from storefront.interfaces.IProductRepository import IProductRepository

logger = logging.getLogger(__name__)


class CatalogService:
    """Product reads plus the simple create/delete used by the admin screens."""

    def __init__(self, product_repo: IProductRepository, settings: Settings):
        self.product_repo = product_repo
        self.settings = settings

    async def list_products(
        self, category: Optional[str] = None, brand: Optional[str] = None, page=1, limit=DEFAULT_PAGE_SIZE
    ) -> Dict:
        page, limit, offset = page_window(page, limit)
        products, total = await read_with_retry(
            self.product_repo.list_products, category, brand, limit, offset,
            timeout=self.settings.DB_TIMEOUT_SECONDS, retries=self.settings.READ_RETRIES,
            what="Product listing",
        )
        return {"success": True, "data": products, "pagination": pagination(page, limit, total)}

    async def get_product(self, product_id: str) -> Dict:
        product = await read_with_retry(
            self.product_repo.get_product, product_id,
            timeout=self.settings.DB_TIMEOUT_SECONDS, retries=self.settings.READ_RETRIES,
            what="Product lookup",
        )
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def create_product(self, product: ProductCreate) -> Dict:
        created = await call_blocking(
            self.product_repo.create_product, product.model_dump(),
            timeout=self.settings.DB_TIMEOUT_SECONDS, what="Product insert",
        )
        logger.info(f"🆕 Product created: {created['id']}")
        return created

    async def delete_product(self, product_id: str) -> None:
        deleted = await call_blocking(
            self.product_repo.delete_product, product_id,
            timeout=self.settings.DB_TIMEOUT_SECONDS, what="Product delete",
        )
        if not deleted:
            raise NotFoundError("Product not found")
        logger.info(f"🗑️ Product deleted: {product_id}")
