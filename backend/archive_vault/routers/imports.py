"""
Imports Router - Queues ZIP archives for ingestion.

Imports always run on the single import worker. POST /imports waits for
its job and returns the summary; POST /imports/async returns the job id
immediately and GET /imports/{job_id} reports progress.
"""
from fastapi import APIRouter, HTTPException

from .dependencies import get_import_queue
from ..models.imports import ImportJobResponse, ImportRequest, ImportSummaryResponse
from ..services.import_service import resolve_sources
from ..core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _sources(request: ImportRequest):
    try:
        sources = resolve_sources(request.paths, request.directory)
    except (NotADirectoryError, FileNotFoundError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not sources:
        raise HTTPException(status_code=400, detail="No ZIP archives to import")
    return sources


@router.post("/imports", response_model=ImportSummaryResponse)
async def import_archives(request: ImportRequest):
    """
    Import archives and wait for the result.

    Per-file failures are reported in the summary, never as an HTTP error.
    """
    queue = get_import_queue()
    job = await queue.submit(_sources(request))
    job = await queue.wait(job.job_id)
    if job.summary is None:
        raise HTTPException(status_code=500, detail=f"Import failed: {job.error}")
    return job.summary.to_dict()


@router.post("/imports/async", response_model=ImportJobResponse, status_code=202)
async def import_archives_async(request: ImportRequest):
    """Queue archives for import and return the job."""
    job = await get_import_queue().submit(_sources(request))
    logger.info(f"Queued import job {job.job_id} with {len(job.paths)} archive(s)")
    return job.to_dict()


@router.get("/imports/{job_id}", response_model=ImportJobResponse)
async def get_import_job(job_id: str):
    """Status, summary and progress events of an import job."""
    job = get_import_queue().get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Import job not found: {job_id}")
    return job.to_dict()
