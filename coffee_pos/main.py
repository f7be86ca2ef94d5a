from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from typing import Optional
import logging

from coffee_pos import __version__
from coffee_pos.config import Settings, load_settings
from coffee_pos.context import AppContext
from coffee_pos.db.database import init_db
from coffee_pos.errors import PosError
from coffee_pos.api import health, orders, products, inventory, reports, logs

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    context: AppContext = app.state.context
    logger.info("Starting Coffee POS Service...")
    await init_db(context.engine, context.settings)
    logger.info("Coffee POS Service started successfully")
    yield
    # Shutdown
    logger.info("Shutting down Coffee POS Service...")
    await context.dispose()


def _install_exception_handlers(app: FastAPI):
    @app.exception_handler(PosError)
    async def pos_error_handler(request: Request, exc: PosError):
        """Typed validation, business-rule and storage errors"""
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Global exception handler for unhandled exceptions
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions and log them properly"""
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
            exc_info=True,
            extra={
                "path": request.url.path,
                "method": request.method,
            }
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    # Validation error handler
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        logger.warning(
            f"Validation error: {exc.errors()}",
            extra={
                "path": request.url.path,
                "method": request.method,
            }
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": jsonable_errors(exc)}
        )


def jsonable_errors(exc: RequestValidationError):
    # ctx may hold exception instances that JSON cannot encode
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """Application factory; the entry point owns settings and the context"""
    if context is None:
        settings = settings or load_settings()
        context = AppContext.from_settings(settings)
    settings = context.settings
    configure_logging(settings)

    app = FastAPI(
        title="Coffee POS Service",
        description="""
        Point-of-sale back office for a coffee shop.

        **Features:**
        - Atomic order capture: pricing, recipe expansion, stock check and debit in one transaction
        - Advanced order search with accurate counts
        - Product catalog with recipes
        - Ingredient inventory with low-stock view
        - Sales, inventory and staff reports
        - Audit log

        **Authentication:**
        All `/api` endpoints require a JWT. Include the token in the Authorization header:
        ```
        Authorization: Bearer <your-jwt-token>
        ```

        **Roles:**
        - **cashier**: create orders, read own orders and the catalog
        - **manager**: everything a cashier can, plus order management, catalog, inventory and reports
        - **admin**: everything, including user activity and the audit log
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"],
        max_age=3600,
    )

    def custom_openapi():
        """Custom OpenAPI schema with JWT Bearer authentication"""
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Staff JWT. Format: Bearer <token>"
            }
        }
        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    _install_exception_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(orders.router, prefix="/api")
    app.include_router(products.router, prefix="/api")
    app.include_router(inventory.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")
    app.include_router(logs.router, prefix="/api")

    @app.get("/")
    async def root():
        return {"service": settings.app_name, "version": __version__}

    return app
