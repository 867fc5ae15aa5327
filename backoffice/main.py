from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

# Import database components
from backoffice.database.database import Database

# Import middleware
from backoffice.common.middleware import TenantMiddleware, SecurityHeadersMiddleware

# Import routers
from backoffice.modules.auth.router import auth_router
from backoffice.modules.products.router import product_router
from backoffice.modules.vendors.router import vendor_router
from backoffice.modules.customers.router import customer_router
from backoffice.modules.cash_flow.router import cash_flow_router
from backoffice.modules.accounts_payable.router import accounts_payable_router
from backoffice.modules.cash_register.router import cash_register_router
from backoffice.modules.budgets.router import budget_router
from backoffice.modules.nfe.router import nfe_router

# Import models for table creation
import backoffice.modules.auth.models
import backoffice.modules.products.models
import backoffice.modules.vendors.models
import backoffice.modules.customers.models
import backoffice.modules.cash_flow.models
import backoffice.modules.accounts_payable.models
import backoffice.modules.cash_register.models
import backoffice.modules.budgets.models
import backoffice.modules.nfe.models

from backoffice.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as {"error": "<message>"}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(
        title="Backoffice API",
        description="Multi-tenant back-office API: NF-e intake, cash register, cash flow and accounts payable",
        version="1.0.0",
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
    )
    app.state.database = database or Database(settings.database_url)

    # Add middleware (order matters!)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(TenantMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth_router)
    app.include_router(product_router)
    app.include_router(vendor_router)
    app.include_router(customer_router)
    app.include_router(cash_flow_router)
    app.include_router(accounts_payable_router)
    app.include_router(cash_register_router)
    app.include_router(budget_router)
    app.include_router(nfe_router)

    @app.get("/")
    async def read_root():
        return {
            "message": "Backoffice API is running",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "environment": settings.ENVIRONMENT}

    @app.on_event("startup")
    async def startup_event():
        logger.info("Backoffice API starting up...")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Debug mode: {settings.DEBUG}")

        # Create tables directly in development; other environments run `python migrate.py upgrade`
        if settings.ENVIRONMENT == "development":
            app.state.database.create_all()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Backoffice API shutting down...")
        app.state.database.dispose()

    return app


app = create_app()
