from pydantic import BaseModel
from typing import Optional, Dict, Any


class AnnotationCreate(BaseModel):
    archive_id: str
    target_kind: str  # e.g. "block", "attachment", "archive"
    target_ref: str  # Block id, file id or archive id, depending on target_kind
    locator: Optional[Dict[str, Any]] = None  # Opaque position inside the target
    content: str


class Annotation(BaseModel):
    annotation_id: str
    archive_id: str
    target_kind: str
    target_ref: str
    locator: Dict[str, Any] = {}
    content: str
    created_at: int
    updated_at: int
