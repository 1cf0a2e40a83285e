"""
Archive Service - Read and delete operations over imported archives.
"""
from typing import Any, Dict, List, Optional

from .database.base import DatabaseInterface
from .storage.base import FileStorageInterface
from ..api.exceptions import ArchiveNotFoundError
from ..core.config import LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT
from ..core.library import CACHE_DIRNAME, STORE_DIRNAME
from ..core.logging_config import get_logger
from ..domain.entities import FieldBlockMap

logger = get_logger(__name__)


class ArchiveService:
    """
    Service for archive listing, detail and deletion.

    Attributes:
        db: Database adapter
        storage: File storage rooted at the library root
    """

    def __init__(self, db: DatabaseInterface, storage: FileStorageInterface):
        self.db = db
        self.storage = storage

    async def list_archives(
        self,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        List archives, most recently imported first.

        Args:
            date_from: Inclusive lower bound on archive date (epoch seconds)
            date_to: Inclusive upper bound on archive date (epoch seconds)
            limit: Page size, clamped to LIST_MAX_LIMIT
            offset: Rows to skip

        Returns:
            Archive rows with the main document's number and title
        """
        if limit is None or limit < 1:
            limit = LIST_DEFAULT_LIMIT
        limit = min(limit, LIST_MAX_LIMIT)
        offset = max(offset or 0, 0)
        return await self.db.list_archives(date_from, date_to, limit, offset)

    async def _require_archive(self, archive_id: str) -> Dict[str, Any]:
        archive = await self.db.get_archive(archive_id)
        if archive is None:
            raise ArchiveNotFoundError(f"Archive not found: {archive_id}")
        return archive

    async def get_archive_detail(self, archive_id: str) -> Dict[str, Any]:
        """
        Archive row with its main document, attachments and annotations.

        Raises:
            ArchiveNotFoundError: If the archive does not exist
        """
        archive = await self._require_archive(archive_id)
        main_doc = await self.db.get_main_doc(archive_id)
        if main_doc is not None:
            block_map = FieldBlockMap.from_json(main_doc.pop("field_block_map_json", None))
            main_doc["field_block_map"] = block_map.to_dict() if block_map else {}
            archive["instruction_no"] = main_doc["instruction_no"]
            archive["title"] = main_doc["title"]
        return {
            "archive": archive,
            "main_doc": main_doc,
            "attachments": await self.db.get_attachments(archive_id),
            "annotations": await self.db.list_annotations(archive_id),
        }

    async def get_blocks(self, archive_id: str) -> List[Dict[str, Any]]:
        """Ordered blocks of the archive's main document."""
        await self._require_archive(archive_id)
        return await self.db.get_blocks(archive_id)

    async def delete_archive(self, archive_id: str) -> None:
        """
        Delete an archive, its stored bytes, its cache and every dependent row.

        Raises:
            ArchiveNotFoundError: If the archive does not exist
        """
        await self._require_archive(archive_id)
        await self.storage.delete_dir(f"{STORE_DIRNAME}/{archive_id}")
        await self.storage.delete_dir(f"{CACHE_DIRNAME}/{archive_id}")
        await self.db.delete_archive(archive_id)
        logger.info(f"Deleted archive {archive_id}")

    async def validate_store_paths(self) -> Dict[str, Any]:
        """
        Report archives whose stored bytes are missing from the library.

        Returns:
            Dict with the number of archives checked and the missing ones
        """
        rows = await self.db.list_archive_paths()
        missing = []
        for row in rows:
            if not await self.storage.file_exists(row["stored_path"]):
                missing.append({"archive_id": row["archive_id"], "stored_path": row["stored_path"]})
        if missing:
            logger.warning(f"{len(missing)} of {len(rows)} archives have no stored file")
        return {"checked": len(rows), "missing": missing}
