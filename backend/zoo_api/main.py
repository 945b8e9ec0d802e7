"""
Zoo Reservation API - Main Application Entry Point

Ticket reservations for zoo attractions and rides:
- Per-day capacity accounting with row-locked, transactional bookings
- Attraction/ride lifecycle spanning several tables in one transaction
- Redis caching of the facility catalogs
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from zoo_api.core.config import get_settings
from zoo_api.core.exceptions import ZooAPIError
from zoo_api.core.logging import setup_logging, get_logger
from zoo_api.core.metrics import metrics_endpoint
from zoo_api.api.router import api_router
from zoo_api.api.middleware import RequestLoggingMiddleware
from zoo_api.db.session import Database
from zoo_api.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    app.state.database = Database(settings.DATABASE_URL, settings=settings, echo=settings.DEBUG)

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without catalog cache")

    yield

    await close_redis()
    await app.state.database.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Zoo attraction and ride reservations with per-day capacity accounting",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(ZooAPIError)
async def zoo_api_error_handler(request: Request, exc: ZooAPIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_error", error_code=exc.error_code, error=exc.message, exc_info=exc)
    else:
        logger.info("request_rejected", error_code=exc.error_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in error["loc"]), "error": error["msg"]}
        for error in exc.errors()
    ]
    logger.info("request_invalid", errors=errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Missing or malformed request data.", "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Database error, the request was rolled back."},
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": await get_cache_stats(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
