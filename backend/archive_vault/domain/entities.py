"""
Domain entities - Core business objects.
These represent the business concepts, not database models.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .value_objects import BlockId
from ..core.logging_config import get_logger

logger = get_logger(__name__)


class ArchiveStatus(str, Enum):
    """Archive lifecycle: processing -> completed | failed."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FileType(str, Enum):
    """Attachment type inferred from the file extension."""
    PDF = "pdf"
    EXCEL = "excel"
    IMAGE = "image"
    VIDEO = "video"
    DOCX_OTHER = "docx_other"
    ZIP_CHILD = "zip_child"
    OTHER = "other"


@dataclass
class DocBlock:
    """One paragraph of the main document, in document order."""
    block_id: BlockId
    text: str


@dataclass
class FieldBlockMap:
    """
    Provenance of extracted fields.

    Scalar fields record the block holding their label (None when the field
    was never found); content records every block that contributed body
    text, and content_anchor the block that held the content label.
    """
    instruction_no: Optional[str] = None
    title: Optional[str] = None
    issued_at: Optional[str] = None
    content: List[str] = field(default_factory=list)
    content_anchor: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(
            {
                "instruction_no": self.instruction_no,
                "title": self.title,
                "issued_at": self.issued_at,
                "content": list(self.content),
                "content_anchor": self.content_anchor,
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["FieldBlockMap"]:
        """
        Parse stored provenance JSON.

        Returns None for anything that is not a well-formed provenance
        object; callers treat that as "no provenance".
        """
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring malformed provenance JSON")
            return None
        if not isinstance(data, dict):
            return None

        def scalar(key: str) -> Optional[str]:
            value = data.get(key)
            return value if isinstance(value, str) else None

        content = data.get("content")
        if not isinstance(content, list):
            content = []
        return cls(
            instruction_no=scalar("instruction_no"),
            title=scalar("title"),
            issued_at=scalar("issued_at"),
            content=[c for c in content if isinstance(c, str)],
            content_anchor=scalar("content_anchor"),
        )

    def to_dict(self) -> dict:
        return json.loads(self.to_json())


@dataclass
class ExtractedFields:
    """Field extractor output for one main document."""
    instruction_no: str = ""
    title: str = ""
    issued_at: str = ""
    content: str = ""
    block_map: FieldBlockMap = field(default_factory=FieldBlockMap)

    def field_items(self):
        """(field_name, value) pairs in the order they are indexed."""
        return [
            ("instruction_no", self.instruction_no),
            ("title", self.title),
            ("issued_at", self.issued_at),
            ("content", self.content),
        ]


@dataclass
class ParsedMainDocument:
    """Blocks and fields parsed from a main document."""
    entry_name: str
    blocks: List[DocBlock]
    fields: ExtractedFields


@dataclass
class AttachmentCandidate:
    """An attachment discovered while walking an archive, before it is stored."""
    file_id: str
    display_name: str
    file_type: FileType
    source_depth: int
    container_virtual_path: Optional[str]
    virtual_path: str
    size_bytes: int
