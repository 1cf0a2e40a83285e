from pydantic import BaseModel
from typing import Optional, List, Dict, Any

from .archive import ArchiveSummary


class ImportRequest(BaseModel):
    paths: List[str] = []  # ZIP files or directories to scan
    directory: Optional[str] = None  # Extra directory scanned recursively for .zip files


class ImportFailure(BaseModel):
    path: str
    error: str


class ImportSummaryResponse(BaseModel):
    imported: int
    skipped: int
    failed: int
    archives: List[ArchiveSummary] = []
    failures: List[ImportFailure] = []


class ImportJobResponse(BaseModel):
    job_id: str
    status: str  # pending, processing, completed, failed
    paths: List[str] = []
    summary: Optional[ImportSummaryResponse] = None
    error: Optional[str] = None
    progress: Optional[Dict[str, Any]] = None  # Latest progress event
    events: List[Dict[str, Any]] = []
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
