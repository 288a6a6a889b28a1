from typing import Optional

from fastapi import APIRouter, Depends

from storefront.application.catalog_service import CatalogService
from storefront.application.checkout_service import CheckoutService, DEFAULT_PAGE_SIZE
from storefront.domain.schemas import ProductCreate
from storefront.interfaces.dependencies import get_catalog_service, get_checkout_service

router = APIRouter()


# ----- Orders -----
@router.get("/orders")
async def list_orders(
    user_id: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    page: int = 1,
    checkout: CheckoutService = Depends(get_checkout_service),
):
    return await checkout.list_orders(user_id, page=page, limit=limit)


@router.get("/orders/{order_id}")
async def get_order(order_id: str, checkout: CheckoutService = Depends(get_checkout_service)):
    return await checkout.get_order(order_id)


# ----- Products -----
@router.get("/products")
async def list_products(
    category: Optional[str] = None,
    brand: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    page: int = 1,
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.list_products(category, brand, page=page, limit=limit)


@router.get("/products/{product_id}")
async def get_product(product_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    return await catalog.get_product(product_id)


@router.post("/products", status_code=201)
async def create_product(product: ProductCreate, catalog: CatalogService = Depends(get_catalog_service)):
    return {"success": True, "data": await catalog.create_product(product)}


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    await catalog.delete_product(product_id)
    return {"success": True}
