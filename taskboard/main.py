"""
Main FastAPI application entry point
"""

import logging
import os
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from scalar_fastapi import get_scalar_api_reference  # type: ignore[import-untyped]
from starlette.responses import Response

from taskboard.api.v1.router import api_router
from taskboard.core.config import settings
from taskboard.core.database import check_db_health, init_db
from taskboard.core.errors import TaskboardError
from taskboard.services.change_feed import change_feed

logger = logging.getLogger("uvicorn.error")

__num_of_api_keys__ = len(settings.api_keys)
logger.info(f"Total API keys: {__num_of_api_keys__}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    # Skip init_db if SKIP_DB_INIT is set (multi-worker deployments run it once beforehand)
    if not os.getenv("SKIP_DB_INIT"):
        await init_db()
        logger.info("Database initialized")
    else:
        logger.info("Skipping database initialization (SKIP_DB_INIT is set)")
    yield
    # Shutdown
    await change_feed.close()
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    lifespan=lifespan,
)


# Configure OpenAPI security schemes
def custom_openapi_for_api_key_auth():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        routes=app.routes,
    )

    openapi_schema["components"]["securitySchemes"] = {
        "APIKeyHeader": {
            "type": "apiKey",
            "in": "header",
            "name": "x-api-key",
            "description": "API Key in x-api-key header.",
        },
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "API Key",
            "description": "API Key in Authorization: Bearer header.",
        },
        "UserIdHeader": {
            "type": "apiKey",
            "in": "header",
            "name": "X-User-Id",
            "description": "Profile id of the signed-in user.",
        },
    }

    openapi_schema["security"] = [{"APIKeyHeader": [], "UserIdHeader": []}, {"BearerAuth": [], "UserIdHeader": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi_for_api_key_auth  # type: ignore[method-assign]

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaskboardError)
async def taskboard_error_handler(request: Request, exc: TaskboardError) -> JSONResponse:
    """Map domain errors raised by services to {"detail": message}"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.middleware("http")
async def api_key_guard(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """
    Enforce API key authentication for API routes.
    Exempt health, docs and the realtime SSE endpoints (EventSource cannot send headers, so they take user_id instead).
    """
    __func__ = "api_key_guard"
    path = request.url.path

    exempt_paths = {
        "/",
        "/health",
        "/api/latest/docs",
        f"{settings.API_V1_STR}/openapi.json",
        f"{settings.API_V1_STR}/docs",
        f"{settings.API_V1_STR}/redoc",
    }

    exempt_start_with_paths = {
        f"{settings.API_V1_STR}/realtime/",
    }

    should_enforce = not (
        path in exempt_paths or any(path.startswith(start_with_path) for start_with_path in exempt_start_with_paths)
    )

    if should_enforce and settings.api_keys:
        api_key = request.headers.get("x-api-key")
        if not api_key:
            auth_header = request.headers.get("Authorization", "")
            if auth_header.startswith("Bearer "):
                api_key = auth_header.split(" ", 1)[1].strip()

        if not api_key or api_key not in settings.api_keys:
            logger.warning(f"[{__name__}:{__func__}] Access denied: Invalid or missing API key")
            return JSONResponse(
                status_code=401,
                content={"detail": "Access denied (Invalid or missing API key)"},
            )

        key_info = settings.api_keys[api_key]
        if not key_info["enabled"]:
            logger.warning(f"[{__name__}:{__func__}] Access denied: API key '{key_info['name']}' is disabled")
            return JSONResponse(
                status_code=401,
                content={"detail": "Access denied (API key is disabled)"},
            )

        # Read by require_admin_api_key for the privileged function endpoints
        request.state.api_key_info = key_info

    return await call_next(request)


# Health check endpoint
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - health check"""
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check endpoint"""
    database_ok = await check_db_health()
    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "healthy" if database_ok else "degraded",
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "database": "connected" if database_ok else "unavailable",
        },
    )


@app.get("/api/latest/docs", include_in_schema=False)
async def scalar_html():
    return get_scalar_api_reference(
        openapi_url=app.openapi_url,
        title=app.title,
    )


# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    #
    # Use '$ python -m taskboard.main' on the root directory of the project for development
    # Use '$ uvicorn taskboard.main:app --host 0.0.0.0 --port 33001' for production deployment
    #
    uvicorn.run(
        "taskboard.main:app",
        host="0.0.0.0",
        port=33001,
        reload=True,
        log_level="debug",
    )
