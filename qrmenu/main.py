"""
FastAPI Application Entry Point

QR Menu Ordering - customer menu and admin dashboard in front of the
restaurant REST API. Supports both Mock collaborators (development) and the
real REST API with Midtrans Snap (staging/production).

Endpoints:
    - GET  /menu/{table}: Menu grouped by category, with the guest's cart
    - POST /menu/{table}/checkout: Pay at the cashier or start online payment
    - POST /admin/login: Dashboard login (admin or cashier)
    - GET  /admin/orders: Polled order board, paged
    - GET  /admin/reports/sales.csv: Sales report export
    - GET  /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qrmenu.core.config import get_settings, setup_logging
from qrmenu.core.exceptions import QrMenuError
from qrmenu.customer import SessionStore
from qrmenu.dashboard import AdminSessionStore
from qrmenu.routes import admin, customer
from qrmenu.schemas import HealthResponse
from qrmenu.services.backend import get_backend_client
from qrmenu.services.payment import get_payment_service

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    app.state.customer_sessions = SessionStore(settings.customer_session_ttl_seconds)
    app.state.admin_sessions = AdminSessionStore(settings)

    backend = get_backend_client()
    payment_service = get_payment_service()
    logger.info(f"✅ Backend: {backend.provider_name}")
    logger.info(f"✅ Payment Service: {payment_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await app.state.admin_sessions.close_all()
    app.state.customer_sessions.clear()
    await backend.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "QR code table ordering for a single restaurant: customer menu, "
        "cashier and online checkout, and the admin dashboard."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(customer.router)
app.include_router(admin.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍜 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": f"/menu/{settings.default_table_number}",
        "dashboard": "/admin/session",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(request: Request) -> HealthResponse:
    """Verify the REST API and the payment gateway are reachable."""
    backend_status = "healthy" if await get_backend_client().health_check() else "unhealthy"
    payment_status = "healthy" if await get_payment_service().health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [backend_status, payment_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        backend_service=backend_status,
        payment_service=payment_status,
        active_customer_sessions=len(request.app.state.customer_sessions),
        active_admin_sessions=len(request.app.state.admin_sessions),
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(QrMenuError)
async def qrmenu_exception_handler(request: Request, exc: QrMenuError) -> JSONResponse:
    """Domain errors carry their own status code and a user-facing message."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
