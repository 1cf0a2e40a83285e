"""
Library Router - Inspect and change the library root.

Changing the root is administrative: pending imports finish first, then
every service is rebuilt against the new root. Existing data is not moved.
"""
from fastapi import APIRouter

from . import dependencies
from ..api.exceptions import LibraryRootError, handle_business_exception
from ..models.library import LibraryInfo, LibraryUpdate
from ..core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _library_info() -> dict:
    library = dependencies.get_library()
    db = dependencies.get_db_service()
    return {
        "root": str(library.root),
        "db_path": str(library.db_path),
        "tz_offset_hours": library.tz_offset_hours,
        "index_counts": await db.index_counts(),
    }


@router.get("/library", response_model=LibraryInfo)
async def get_library():
    """Current library root and search index row counts."""
    return await _library_info()


@router.put("/library", response_model=LibraryInfo)
async def set_library(request: LibraryUpdate):
    """Switch the process to another library root (created if missing)."""
    root = request.root.strip()
    try:
        if not root:
            raise LibraryRootError("Library root must not be empty")
        await dependencies.change_library_root(root)
    except OSError as e:
        logger.error(f"Cannot use library root {root!r}: {e}")
        raise handle_business_exception(LibraryRootError(f"Cannot use library root {root!r}: {e}"))
    except LibraryRootError as e:
        raise handle_business_exception(e)
    return await _library_info()
