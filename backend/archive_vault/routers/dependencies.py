"""
Shared dependencies for routers.
Provides database and service initialization.

Every service is bound to one Library (the current library root). Changing
the root drains the import queue and rebuilds all services against the new
root.
"""
import asyncio
from pathlib import Path
from typing import List, Optional, Union

from ..core.library import Library, library_state
from ..core.logging_config import get_logger
from ..services.annotation_service import AnnotationService
from ..services.archive_service import ArchiveService
from ..services.database import DatabaseFactory
from ..services.import_queue import ImportQueueManager
from ..services.import_service import ImportService, ImportSummary
from ..services.progress import ProgressObserver
from ..services.search_service import SearchService
from ..services.storage import LocalFileStorage

logger = get_logger(__name__)

# Global services (will be initialized on startup)
library: Optional[Library] = None
db_service = None
storage_service = None
import_service = None
archive_service = None
search_service = None
annotation_service = None
import_queue = None

_library_change_lock = asyncio.Lock()


async def initialize_database():
    """Initialize the library layout and its database."""
    global library, db_service, storage_service

    library = library_state.get()
    library.ensure_layout()
    logger.info(f"Initializing library at {library.root}")

    storage_service = LocalFileStorage(library.root)
    await storage_service.initialize()

    db_service = await DatabaseFactory.create_and_initialize("sqlite", db_path=library.db_path)
    logger.info(f"  Database ready: {library.db_path}")


async def initialize_services():
    """
    Initialize all services after database is ready.

    Sets up the import, archive, search and annotation services, and the
    import queue with its single worker.
    """
    global import_service, archive_service, search_service, annotation_service, import_queue

    if db_service is None:
        await initialize_database()

    logger.info("Initializing services...")
    import_service = ImportService(library, db_service, storage_service)
    archive_service = ArchiveService(db_service, storage_service)
    search_service = SearchService(db_service)
    annotation_service = AnnotationService(db_service)

    if import_queue is None:
        import_queue = ImportQueueManager(_process_import)
    await import_queue.start()

    logger.info("All services initialized (import, archive, search, annotation, import queue)")


async def _process_import(paths: List[Path], observer: ProgressObserver) -> ImportSummary:
    # Resolved per job so queued work follows the current library
    return await get_import_service().import_batch(paths, observer=observer)


async def shutdown_services():
    """Drain the import queue and release the database."""
    global db_service, import_queue
    if import_queue is not None:
        await import_queue.stop()
        import_queue = None
    if db_service is not None:
        await db_service.close()
        db_service = None


async def change_library_root(root: Union[str, Path]) -> Library:
    """
    Administrative operation: switch every service to a new library root.

    Queued imports for the old root finish first. No data is migrated.
    """
    async with _library_change_lock:
        library_state.set(root)
        await shutdown_services()
        await initialize_database()
        await initialize_services()
        return library


def get_library() -> Library:
    """Get the library handle (dependency injection)."""
    if library is None:
        raise RuntimeError("Library not initialized")
    return library


def get_db_service():
    """Get database service (dependency injection)."""
    if db_service is None:
        raise RuntimeError("Database service not initialized")
    return db_service


def get_import_service() -> ImportService:
    """Get import service (dependency injection)."""
    if import_service is None:
        raise RuntimeError("Import service not initialized")
    return import_service


def get_archive_service() -> ArchiveService:
    """Get archive service (dependency injection)."""
    if archive_service is None:
        raise RuntimeError("Archive service not initialized")
    return archive_service


def get_search_service() -> SearchService:
    """Get search service (dependency injection)."""
    if search_service is None:
        raise RuntimeError("Search service not initialized")
    return search_service


def get_annotation_service() -> AnnotationService:
    """Get annotation service (dependency injection)."""
    if annotation_service is None:
        raise RuntimeError("Annotation service not initialized")
    return annotation_service


def get_import_queue() -> ImportQueueManager:
    """Get import queue (dependency injection)."""
    if import_queue is None:
        raise RuntimeError("Import queue not initialized")
    return import_queue
