"""
Annotation Service - User notes attached to archives.
"""
import time
import uuid
from typing import Any, Dict, List, Optional

from .database.base import DatabaseInterface
from ..api.exceptions import (
    AnnotationNotFoundError,
    AnnotationValidationError,
    ArchiveNotFoundError,
)
from ..core.logging_config import get_logger

logger = get_logger(__name__)


class AnnotationService:
    def __init__(self, db: DatabaseInterface):
        self.db = db

    async def create_annotation(
        self,
        archive_id: str,
        target_kind: str,
        target_ref: str,
        locator: Optional[Dict[str, Any]],
        content: str,
    ) -> Dict[str, Any]:
        """
        Create an annotation on an archive.

        Raises:
            AnnotationValidationError: If content or target is empty
            ArchiveNotFoundError: If the archive does not exist
        """
        content = (content or "").strip()
        if not content:
            raise AnnotationValidationError("Annotation content must not be empty")
        if not target_kind or not target_ref:
            raise AnnotationValidationError("Annotation target_kind and target_ref are required")
        if await self.db.get_archive(archive_id) is None:
            raise ArchiveNotFoundError(f"Archive not found: {archive_id}")

        now = int(time.time())
        annotation = await self.db.create_annotation({
            "annotation_id": str(uuid.uuid4()),
            "archive_id": archive_id,
            "target_kind": target_kind,
            "target_ref": target_ref,
            "locator": locator or {},
            "content": content,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Created annotation {annotation['annotation_id']} on archive {archive_id}")
        return annotation

    async def list_annotations(self, archive_id: str) -> List[Dict[str, Any]]:
        if await self.db.get_archive(archive_id) is None:
            raise ArchiveNotFoundError(f"Archive not found: {archive_id}")
        return await self.db.list_annotations(archive_id)

    async def delete_annotation(self, annotation_id: str) -> None:
        if not await self.db.delete_annotation(annotation_id):
            raise AnnotationNotFoundError(f"Annotation not found: {annotation_id}")
        logger.info(f"Deleted annotation {annotation_id}")
