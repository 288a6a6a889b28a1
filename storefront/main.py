import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.application.catalog_service import CatalogService
from storefront.application.checkout_service import CheckoutService
from storefront.application.remote import wait_for_pending_undos
from storefront.core.config import Settings, get_settings
from storefront.core.exceptions import CheckoutError
from storefront.core.logging_config import configure_logging
from storefront.infrastructure.database import create_db_engine, create_session_factory, init_db
from storefront.infrastructure.razorpay_gateway import RazorpayGateway
from storefront.infrastructure.repositories.order_repository import SqlOrderRepository
from storefront.infrastructure.repositories.product_repository import SqlProductRepository
from storefront.interfaces import catalog_routes, checkout_routes, razorpay_webhook
from storefront.interfaces.IPaymentGateway import IPaymentGateway

logger = logging.getLogger(__name__)

ENDPOINTS = [
    "POST /create-order",
    "POST /save-order",
    "POST /verify-payment",
    "POST /webhook/razorpay",
    "GET /orders",
    "GET /orders/{id}",
    "GET /products",
    "GET /products/{id}",
    "GET /test-connection",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Writes abandoned by a timeout are undone before the process exits.
    await wait_for_pending_undos()


def create_app(settings: Optional[Settings] = None, gateway: Optional[IPaymentGateway] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, json_logs=not settings.is_development)

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    # ---------------------------------------------------------
    # COMPOSITION ROOT
    # ---------------------------------------------------------
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine, settings.DB_CONNECT_RETRIES, settings.DB_CONNECT_WAIT_SECONDS)
    session_factory = create_session_factory(engine)

    gateway = gateway or RazorpayGateway(
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_API_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )
    app.state.settings = settings
    app.state.checkout = CheckoutService(gateway, SqlOrderRepository(session_factory), settings)
    app.state.catalog = CatalogService(SqlProductRepository(session_factory), settings)

    # ---------------------------------------------------------
    # MIDDLEWARE
    # ---------------------------------------------------------
    if settings.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    _register_error_handlers(app, settings)

    # Include Routers
    app.include_router(checkout_routes.router)
    app.include_router(catalog_routes.router)
    app.include_router(razorpay_webhook.router)

    @app.get("/")
    async def health_check():
        return {"ok": True, "message": "Backend running", "endpoints": ENDPOINTS}

    @app.get("/test-connection")
    async def test_connection(request: Request):
        status = await request.app.state.checkout.connection_status()
        return {
            "success": True,
            **status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    logger.info(f"🚀 {settings.PROJECT_NAME} ready ({settings.ENVIRONMENT})")
    return app


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(part) for part in err["loc"] if part != "body") for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request", "fields": fields},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error = "Not found" if exc.status_code == 404 else exc.detail
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": error})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        content = {"success": False, "error": "Internal server error"}
        if settings.is_development:
            content["message"] = str(exc)
        return JSONResponse(status_code=500, content=content)


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)
