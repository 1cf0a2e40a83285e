from .gateway import APIGateway
from .routers import (
    annotations,
    archives,
    imports,
    library,
    search,
)
from .routers.dependencies import initialize_database, initialize_services, shutdown_services
from .core.config import ENABLE_FILE_LOGGING, LOG_FILE, LOG_LEVEL
from .core.logging_config import setup_logging, get_logger
import os

# Initialize logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE, enable_file_logging=ENABLE_FILE_LOGGING)
logger = get_logger(__name__)

# Initialize API Gateway
gateway = APIGateway(
    title="Archive Vault API",
    description="Instruction archive ingestion with multi-field full-text search",
    version="1.0.0"
)

# Setup middleware (CORS, request ids, logging, error handling)
gateway.setup_middleware()

gateway.register_router(imports.router, tags=["Imports"])
gateway.register_router(archives.router, tags=["Archives"])
gateway.register_router(search.router, tags=["Search"])
gateway.register_router(annotations.router, tags=["Annotations"])
gateway.register_router(library.router, tags=["Library"])

# Register health check endpoints
gateway.register_health_endpoints()

# Get FastAPI app instance
app = gateway.get_app()


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info("=" * 60)
    logger.info("Starting Archive Vault Backend...")
    logger.info("=" * 60)

    import sys
    import fastapi
    import uvicorn
    logger.info("Framework & Server:")
    logger.info(f"  → FastAPI Version: {fastapi.__version__}")
    logger.info(f"  → Uvicorn Version: {uvicorn.__version__}")
    logger.info(f"  → Python Version: {sys.version.split()[0]}")
    logger.info(f"  → Environment: {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(f"  → Docs URL: {app.docs_url if app.docs_url else 'Disabled (production)'}")

    # Initialize library, database (index sync included) and services
    await initialize_database()
    await initialize_services()

    logger.info("Import Queue:")
    logger.info("  → Single AsyncIO worker, archives processed strictly in order")

    logger.info("=" * 60)
    logger.info("Archive Vault Backend initialized successfully")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down Archive Vault Backend...")
    await shutdown_services()
    logger.info("Archive Vault Backend shutdown complete")

# Health check endpoints are registered by gateway.register_health_endpoints()
