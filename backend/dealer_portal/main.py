"""
Dealer Portal - FastAPI Main Application
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dealer_portal.core.config import settings
from dealer_portal.core.exceptions import ClientDirectoryError, ClientNotFoundError
from dealer_portal.api.v1.router import api_router
from dealer_portal.middleware.portal import preview_navigation_middleware, session_cookie_middleware
from dealer_portal.web.portal import router as portal_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    if settings.persist_preview_session:
        logger.warning("persist_preview_session is on: previews are also written to the durable client session")
    yield
    logger.info(f"Shutting down {settings.app_name}")


async def client_directory_error_handler(request: Request, exc: ClientDirectoryError) -> JSONResponse:
    logger.error("Client directory error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Client directory unavailable, please retry", "retryable": exc.retryable},
    )


async def client_not_found_handler(request: Request, exc: ClientNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "Client not found", "client_id": exc.client_id},
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title=settings.app_name,
        description="Client Portal and Staff Impersonation API",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    app.add_exception_handler(ClientDirectoryError, client_directory_error_handler)
    app.add_exception_handler(ClientNotFoundError, client_not_found_handler)

    # Portal session cookies are queued during the request and written here
    app.middleware("http")(session_cookie_middleware)
    app.middleware("http")(preview_navigation_middleware)

    # Configure CORS - Use explicit origins when credentials=True
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list or ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(portal_router)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy", "app": settings.app_name}

    return app


app = create_application()
