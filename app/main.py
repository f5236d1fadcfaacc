"""
FeedFind - FastAPI Application Entry Point

Food-assistance locator backend: providers publish the live availability
of their locations, admins moderate content and approve providers.

DESIGN PRINCIPLES:
- A location's current status and its history record are written together
- Permission is checked once per action, before any write
- Bulk actions report per-item outcomes; partial failure is normal
- Reads may be retried; writes never are
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.exceptions import FeedFindError
from app.core.logging import setup_logging
from app.core.settings import settings
from app.config.firebase import initialize_firestore
from app.routes import admin, health, locations, providers
import logging

setup_logging()
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Live availability of food-assistance locations",
    debug=settings.DEBUG
)


@app.exception_handler(FeedFindError)
async def feedfind_exception_handler(request: Request, exc: FeedFindError):
    """Map the service error taxonomy onto HTTP status codes."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} refused: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"code": "UNKNOWN_ERROR", "detail": f"Internal server error: {str(exc)}", "retryable": False}
    )


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Catch Pydantic validation errors and log them."""
    logger.info(f"Request validation failed on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"code": "VALIDATION_ERROR", "detail": jsonable_errors(exc), "retryable": False}
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that JSONResponse cannot encode
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


# CORS - origins come from settings, never "*"
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Currently: Firestore connection
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        initialize_firestore()
    except RuntimeError as e:
        logger.warning(f"Firestore initialization failed: {e}")
        logger.warning("The app will start but database operations may fail.")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup on application shutdown.
    """
    logger.info(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(providers.router)
app.include_router(locations.router)
app.include_router(admin.router)
