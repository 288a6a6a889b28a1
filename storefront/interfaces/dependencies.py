from fastapi import Request

from storefront.application.catalog_service import CatalogService
from storefront.application.checkout_service import CheckoutService


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.checkout


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog
