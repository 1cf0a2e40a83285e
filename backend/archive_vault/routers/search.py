"""
Search Router - Ranked full-text search.

Example Usage:
    POST /search {"query": "安全检查", "filters": {"file_types": ["docx_main"]}, "limit": 20}
    GET /search?q=安全检查&limit=20
"""
from fastapi import APIRouter, Query
from typing import Optional

from .dependencies import get_search_service
from ..models.search import SearchPage, SearchRequest
from ..core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/search", response_model=SearchPage)
async def search(request: SearchRequest):
    """
    Search main document blocks and fields, attachment names and annotations.

    An unmatched or empty query returns an empty page, never an error.
    """
    return await get_search_service().search(request)


@router.get("/search", response_model=SearchPage)
async def search_get(
    q: str = Query(..., description="Search query"),
    limit: Optional[int] = Query(None, description="Page size (clamped server-side)"),
    offset: Optional[int] = Query(None, description="Results to skip (clamped server-side)")
):
    """Convenience GET form of POST /search without filters."""
    return await get_search_service().search(SearchRequest(query=q, limit=limit, offset=offset))
