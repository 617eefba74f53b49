"""
ReTrade marketplace application.

Serves the buyer and seller pages, the JSON API under /api, health probes and
uploaded product images from one FastAPI app.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import subprocess
import os

from retrade.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from retrade.core_settings import get_settings
from retrade.infrastructure.db import engine, init_models
from retrade.infrastructure import wait_for_db
from retrade.application.errors import ActionError, first_error_message
from retrade.application.session import session_user_id
from retrade.api.auth_routes import router as auth_router
from retrade.api.discovery_routes import router as discovery_router
from retrade.api.seller_routes import router as seller_router
from retrade.api.cart_routes import router as cart_router
from retrade.api.order_routes import router as order_router
from retrade.api.pages import router as pages_router

settings = get_settings()

SERVICE_NAME = "retrade"
SERVICE_VERSION = settings.SERVICE_VERSION
SERVICE_DESCRIPTION = "Second-hand marketplace for buyers and sellers"
PROJECT_ROOT = Path(__file__).resolve().parent.parent
STATIC_DIR = Path(__file__).resolve().parent / "static"

setup_logging(
    service_name=SERVICE_NAME,
    level=settings.LOG_LEVEL,
    enable_file=bool(settings.LOG_FILE),
    log_file=settings.LOG_FILE,
)

logger = get_logger(__name__)

def alembic_config_path() -> Path:
    if settings.ALEMBIC_CONFIG:
        return Path(settings.ALEMBIC_CONFIG).resolve()
    return PROJECT_ROOT / "alembic.ini"

def run_migrations() -> None:
    config = alembic_config_path()
    if not config.is_file():
        raise RuntimeError(f"Alembic config not found at {config}; set ALEMBIC_CONFIG or RUN_MIGRATIONS=false")

    wait_for_db.wait()
    logger.info(f"Running database migrations with {config}")
    # script_location in alembic.ini is relative to the config's directory
    result = subprocess.run(
        ["alembic", "-c", str(config), "upgrade", "head"],
        cwd=str(config.parent),
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        logger.error(f"Migration output: {result.stderr}")
        raise RuntimeError("Database migrations failed")
    logger.info("Database migrations completed")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info(f"Starting {SERVICE_NAME} version {SERVICE_VERSION}")

    if settings.RUN_MIGRATIONS and not settings.database_url.startswith("sqlite"):
        try:
            run_migrations()
        except (OSError, RuntimeError) as e:
            logger.error(f"Migration error: {e}")
            raise

    try:
        init_models()
        logger.info("Database models initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database models: {e}")
        raise

    logger.info(f"{SERVICE_NAME} started successfully")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")

app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware, user_resolver=session_user_id)

@app.exception_handler(ActionError)
async def action_error_handler(request: Request, exc: ActionError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"success": False, "error": first_error_message(exc.errors())})

health_service = ServiceHealth(SERVICE_NAME, engine, SERVICE_VERSION)
app.include_router(health_service.create_health_router())

app.include_router(auth_router)
app.include_router(discovery_router)
app.include_router(seller_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(pages_router)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
if settings.BLOB_BACKEND == "local":
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

@app.get("/info")
async def info():
    """Service information endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": SERVICE_DESCRIPTION,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "endpoints": {
            "health": "/health",
            "ready": "/health/ready",
            "live": "/health/live",
            "metrics": "/metrics",
            "docs": "/api/docs",
        },
    }
