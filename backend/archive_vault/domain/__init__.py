"""
Domain layer - Contains business entities and domain logic.
This layer is independent of infrastructure and frameworks.
"""
from .entities import (
    ArchiveStatus,
    AttachmentCandidate,
    DocBlock,
    ExtractedFields,
    FieldBlockMap,
    FileType,
    ParsedMainDocument,
)
from .value_objects import ArchiveId, BlockId, FileId, Fingerprint, make_block_id

__all__ = [
    "ArchiveStatus",
    "AttachmentCandidate",
    "DocBlock",
    "ExtractedFields",
    "FieldBlockMap",
    "FileType",
    "ParsedMainDocument",
    "ArchiveId",
    "BlockId",
    "FileId",
    "Fingerprint",
    "make_block_id",
]
