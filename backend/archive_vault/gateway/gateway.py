"""
API Gateway

Main gateway class that orchestrates middleware and router registration.
Acts as the single entry point for all API requests.
"""
import os
from typing import Optional, List
from fastapi import FastAPI, APIRouter, Response
from fastapi.middleware.cors import CORSMiddleware

from ..core.config import CORS_ORIGINS
from ..core.logging_config import get_logger
from .middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
)

logger = get_logger(__name__)


class APIGateway:
    """
    API Gateway that manages middleware and routing.

    Responsibilities:
    - Initialize FastAPI application
    - Register middleware (CORS, logging, request ids, error handling)
    - Register routers
    - Provide the health endpoint
    """

    def __init__(
        self,
        title: str = "Archive Vault API",
        description: str = "Instruction archive ingestion and full-text search",
        version: str = "1.0.0",
        enable_docs: Optional[bool] = None
    ):
        """
        Initialize API Gateway.

        Args:
            title: API title
            description: API description
            version: API version
            enable_docs: Enable API docs (auto-detected from ENVIRONMENT if None)
        """
        self.title = title
        self.description = description
        self.version = version
        self.enable_docs = enable_docs if enable_docs is not None else (
            os.getenv("ENVIRONMENT") != "production"
        )

        self.app = FastAPI(
            title=self.title,
            description=self.description,
            version=self.version,
            docs_url="/docs" if self.enable_docs else None,
            redoc_url="/redoc" if self.enable_docs else None
        )
        self.routers: List[str] = []

        logger.info("API Gateway initialized")

    def setup_middleware(self):
        """Configure all middleware."""
        logger.info("Setting up middleware...")

        # Added first so it sits innermost, closest to the routes
        self.app.add_middleware(ErrorHandlingMiddleware)
        logger.debug("  → Error handling middleware added")

        self.app.add_middleware(
            RequestLoggingMiddleware,
            skip_paths=["/health", "/docs", "/redoc", "/openapi.json"]
        )
        logger.debug("  → Request logging middleware added")

        self.app.add_middleware(RequestIDMiddleware)
        logger.debug("  → Request ID middleware added")

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.debug(f"  → CORS middleware added (origins: {', '.join(CORS_ORIGINS)})")

        logger.info("All middleware configured")

    def register_router(
        self,
        router: APIRouter,
        prefix: str = "",
        tags: Optional[List[str]] = None
    ):
        """
        Register a router with the gateway.

        Args:
            router: FastAPI router instance
            prefix: URL prefix for the router
            tags: OpenAPI tags for documentation
        """
        self.app.include_router(router, prefix=prefix, tags=tags or [])
        self.routers.append(prefix or "/")
        logger.info(f"Registered router {', '.join(tags or [])} at prefix '{prefix or '/'}'")

    def register_health_endpoints(self):
        """Register health check endpoints."""

        @self.app.get("/")
        async def root():
            """Root endpoint - API information."""
            return {
                "message": f"{self.title} is running",
                "version": self.version,
                "status": "healthy"
            }

        @self.app.get("/health")
        async def health_check(response: Response):
            """
            Health check endpoint.

            Returns 200 when the library database and services are ready,
            503 otherwise.
            """
            from ..routers import dependencies
            if dependencies.db_service is None or dependencies.search_service is None:
                logger.warning("Health check failed: services not initialized")
                response.status_code = 503
                return {"status": "unhealthy", "reason": "Services not initialized"}

            return {
                "status": "healthy",
                "library": str(dependencies.library.root),
                "database": "connected",
                "services": "initialized"
            }

        logger.info("Health check endpoints registered")

    def get_app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self.app
