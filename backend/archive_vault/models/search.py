from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class HighlightRange(BaseModel):
    start: int  # UTF-16 code units, inclusive
    end: int  # UTF-16 code units, exclusive


class SearchFilters(BaseModel):
    date_from: Optional[int] = None  # Archive date lower bound (epoch seconds, inclusive)
    date_to: Optional[int] = None  # Archive date upper bound (epoch seconds, inclusive)
    # Allow-set of result types: attachment types (pdf, excel, ...), "docx_main" for
    # main document blocks and fields, "annotation" for annotations. None = everything
    file_types: Optional[List[str]] = None


class SearchRequest(BaseModel):
    query: str
    filters: Optional[SearchFilters] = None
    limit: Optional[int] = None  # Clamped server-side
    offset: Optional[int] = None  # Clamped server-side


class DocxBlockHit(BaseModel):
    kind: Literal["docx_block"] = "docx_block"
    archive_id: str
    block_id: str
    text: str
    highlights: List[HighlightRange] = []


class MainDocFieldHit(BaseModel):
    kind: Literal["main_doc_field"] = "main_doc_field"
    archive_id: str
    field_name: str
    text: str
    highlights: List[HighlightRange] = []
    best_block_id: Optional[str] = None  # Content hits only: block to scroll to
    best_block_highlights: List[HighlightRange] = []


class AttachmentNameHit(BaseModel):
    kind: Literal["attachment_name"] = "attachment_name"
    archive_id: str
    file_id: str
    display_name: str
    highlights: List[HighlightRange] = []


class AnnotationHit(BaseModel):
    kind: Literal["annotation"] = "annotation"
    archive_id: str
    annotation_id: str
    target_kind: str
    target_ref: str
    locator: Dict[str, Any] = {}
    content: str
    highlights: List[HighlightRange] = []


SearchHit = Annotated[
    Union[DocxBlockHit, MainDocFieldHit, AttachmentNameHit, AnnotationHit],
    Field(discriminator="kind"),
]


class SearchPage(BaseModel):
    items: List[SearchHit]
    has_more: bool
    offset: int
    limit: int
