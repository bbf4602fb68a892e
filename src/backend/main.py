"""
FeatureBoard Backend Application

Public feature board: visitors sign in with an OAuth provider (or stay
anonymous) and spend a small vote allowance on suggestions.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1 import router as api_v1_router
from core.config import settings
from core.events import create_start_app_handler, create_stop_app_handler
from core.middleware import REQUEST_ID_HEADER, RequestIDMiddleware, SecurityHeadersMiddleware

logger = structlog.get_logger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Run startup before serving and shutdown after."""
    await create_start_app_handler(app)()
    yield
    await create_stop_app_handler(app)()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort 500.

    The body is generic JSON so browsers still get CORS headers; the
    exception type is only revealed in DEBUG.
    """
    logger.exception(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An internal server error occurred. Please try again later.",
            "error_type": type(exc).__name__ if settings.DEBUG else "InternalServerError",
        },
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.APP_NAME,
        description="Feature board with OAuth login and allowance-limited voting",
        version=API_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # Registered innermost first: CORS wraps headers, request ids wrap everything
    application.add_middleware(SecurityHeadersMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # session cookie
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    application.add_middleware(RequestIDMiddleware)

    application.include_router(api_v1_router, prefix="/api/v1")
    application.add_exception_handler(Exception, unhandled_exception_handler)

    @application.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Liveness probe for load balancers."""
        return {"status": "healthy", "service": "featureboard-api"}

    @application.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        return {
            "name": settings.APP_NAME,
            "version": API_VERSION,
            "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
        }

    return application


app = create_application()
