"""
Archives Router - Listing, detail, blocks, re-extraction and deletion.

Architecture:
- Router handles HTTP request/response only
- ArchiveService / ImportService hold the logic
- Business exceptions are converted with handle_business_exception
"""
from fastapi import APIRouter, Query
from typing import List, Optional

from .dependencies import get_archive_service, get_import_service
from ..api.exceptions import (
    ArchiveFormatError,
    ArchiveNotFoundError,
    MainDocumentNotFoundError,
    StoredFileMissingError,
    handle_business_exception,
)
from ..models.archive import ArchiveDetail, ArchiveSummary, Block, StoreIntegrityReport
from ..core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/archives", response_model=List[ArchiveSummary])
async def list_archives(
    date_from: Optional[int] = Query(None, description="Archive date lower bound (epoch seconds)"),
    date_to: Optional[int] = Query(None, description="Archive date upper bound (epoch seconds)"),
    limit: Optional[int] = Query(None, description="Page size (clamped server-side)"),
    offset: Optional[int] = Query(0, description="Rows to skip")
):
    """List archives, most recently imported first."""
    service = get_archive_service()
    return await service.list_archives(date_from, date_to, limit, offset)


@router.get("/archives/integrity", response_model=StoreIntegrityReport)
async def check_store_integrity():
    """Report archives whose stored ZIP is missing from the library."""
    return await get_archive_service().validate_store_paths()


@router.get("/archives/{archive_id}", response_model=ArchiveDetail)
async def get_archive(archive_id: str):
    """Archive with its main document, attachments and annotations."""
    try:
        return await get_archive_service().get_archive_detail(archive_id)
    except ArchiveNotFoundError as e:
        raise handle_business_exception(e)


@router.get("/archives/{archive_id}/blocks", response_model=List[Block])
async def get_blocks(archive_id: str):
    """Ordered paragraph blocks of the archive's main document."""
    try:
        return await get_archive_service().get_blocks(archive_id)
    except ArchiveNotFoundError as e:
        raise handle_business_exception(e)


@router.post("/archives/{archive_id}/reextract", response_model=ArchiveSummary)
async def reextract_archive(archive_id: str):
    """
    Re-derive main document, blocks and attachments from the stored bytes.

    Previous rows are replaced atomically; on failure they are left as they were.
    """
    try:
        return await get_import_service().reextract(archive_id)
    except (ArchiveNotFoundError, StoredFileMissingError, ArchiveFormatError, MainDocumentNotFoundError) as e:
        logger.warning(f"Re-extract of {archive_id} failed: {e}")
        raise handle_business_exception(e)


@router.delete("/archives/{archive_id}")
async def delete_archive(archive_id: str):
    """Delete an archive with its stored bytes and every dependent row."""
    try:
        await get_archive_service().delete_archive(archive_id)
    except ArchiveNotFoundError as e:
        raise handle_business_exception(e)
    return {"message": "Archive deleted successfully", "archive_id": archive_id}
