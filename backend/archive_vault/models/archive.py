from pydantic import BaseModel
from typing import Optional, List, Dict, Any

from .annotation import Annotation


class ArchiveSummary(BaseModel):
    archive_id: str
    sha256: str
    original_name: str
    source_path: Optional[str] = None
    stored_path: str
    zip_date: int  # Epoch seconds of local midnight
    imported_at: int  # Epoch seconds
    status: str  # processing, completed, failed
    error: Optional[str] = None
    instruction_no: Optional[str] = None  # From the main document, when extracted
    title: Optional[str] = None


class MainDocument(BaseModel):
    archive_id: str
    instruction_no: str = ""
    title: str = ""
    issued_at: str = ""
    content: str = ""
    field_block_map: Dict[str, Any] = {}  # Field -> block id(s) provenance


class Block(BaseModel):
    block_id: str
    text: str


class Attachment(BaseModel):
    file_id: str
    archive_id: str
    display_name: str
    file_type: str
    source_depth: int  # 0 top level, 1 inside a nested ZIP
    container_virtual_path: Optional[str] = None
    virtual_path: str
    cached_path: Optional[str] = None
    size_bytes: Optional[int] = None


class ArchiveDetail(BaseModel):
    archive: ArchiveSummary
    main_doc: Optional[MainDocument] = None
    attachments: List[Attachment] = []
    annotations: List[Annotation] = []


class StoreIntegrityReport(BaseModel):
    checked: int
    missing: List[Dict[str, str]]  # archive_id + stored_path of archives without bytes
