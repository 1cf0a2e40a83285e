"""
Abstract base class for database adapters.
All database implementations must inherit from this class.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from ...domain.entities import AttachmentCandidate, FieldBlockMap, ParsedMainDocument
from ...core.logging_config import get_logger

logger = get_logger(__name__)

# Inclusive zip_date bounds; None on either side means unbounded
DateRange = Optional[tuple]


class DatabaseInterface(ABC):
    """
    Abstract interface for archive vault persistence.

    Besides plain rows, an adapter owns the four full-text indexes
    (blocks, main document fields, attachment names, annotations) and keeps
    each of them in row-count sync with its source table.
    """

    # Archive operations
    @abstractmethod
    async def find_archive_by_sha256(self, sha256: str) -> Optional[Dict]:
        """Find an archive by content fingerprint."""
        pass

    @abstractmethod
    async def create_archive(self, archive_data: Dict) -> Dict:
        """Insert an archive row (status processing) and return it."""
        pass

    @abstractmethod
    async def get_archive(self, archive_id: str) -> Optional[Dict]:
        """Get an archive row by id."""
        pass

    @abstractmethod
    async def list_archives(self, date_from: Optional[int], date_to: Optional[int],
                            limit: int, offset: int) -> List[Dict]:
        """List archives newest import first, joined with main document number/title."""
        pass

    @abstractmethod
    async def list_archive_paths(self) -> List[Dict]:
        """archive_id and stored_path of every archive."""
        pass

    @abstractmethod
    async def mark_archive_failed(self, archive_id: str, error: str) -> None:
        """Set status failed with an error message."""
        pass

    @abstractmethod
    async def write_extraction(self, archive_id: str, parsed: ParsedMainDocument,
                               attachments: Sequence[AttachmentCandidate]) -> None:
        """
        Replace everything derived from an archive in one transaction.

        Writes main document, blocks, attachments and their index rows,
        then marks the archive completed. Nothing is visible unless the
        whole transaction commits.
        """
        pass

    @abstractmethod
    async def delete_archive(self, archive_id: str) -> bool:
        """Delete an archive with all dependent rows and index rows."""
        pass

    # Main document operations
    @abstractmethod
    async def get_main_doc(self, archive_id: str) -> Optional[Dict]:
        """Get the main document row of an archive."""
        pass

    @abstractmethod
    async def get_blocks(self, archive_id: str) -> List[Dict]:
        """Get all blocks of an archive in order."""
        pass

    @abstractmethod
    async def get_block_texts(self, archive_id: str, block_ids: Sequence[str]) -> List[Dict]:
        """Get the given blocks, in the order of block_ids, skipping missing ones."""
        pass

    @abstractmethod
    async def get_field_block_maps(self, archive_ids: Sequence[str]) -> Dict[str, FieldBlockMap]:
        """Provenance of the given archives; malformed provenance is left out."""
        pass

    @abstractmethod
    async def get_attachments(self, archive_id: str) -> List[Dict]:
        """Get attachments ordered by depth then display name."""
        pass

    # Annotation operations
    @abstractmethod
    async def create_annotation(self, annotation_data: Dict) -> Dict:
        """Insert an annotation together with its index row."""
        pass

    @abstractmethod
    async def get_annotation(self, annotation_id: str) -> Optional[Dict]:
        """Get an annotation by id."""
        pass

    @abstractmethod
    async def list_annotations(self, archive_id: str) -> List[Dict]:
        """Annotations of an archive, newest first."""
        pass

    @abstractmethod
    async def delete_annotation(self, annotation_id: str) -> bool:
        """Delete an annotation together with its index row."""
        pass

    # Full-text search operations
    @abstractmethod
    async def search_blocks(self, match_query: str, limit: int, date_range: DateRange = None) -> List[Dict]:
        """Block index hits: archive_id, block_id, source_text."""
        pass

    @abstractmethod
    async def search_fields(self, match_query: str, limit: int, date_range: DateRange = None) -> List[Dict]:
        """Main document field index hits: archive_id, field_name, source_text."""
        pass

    @abstractmethod
    async def search_attachments(self, match_query: str, limit: int, date_range: DateRange = None,
                                 file_types: Optional[Sequence[str]] = None) -> List[Dict]:
        """Attachment name hits: archive_id, file_id, display_name."""
        pass

    @abstractmethod
    async def search_annotations(self, match_query: str, limit: int, date_range: DateRange = None) -> List[Dict]:
        """Annotation hits with the full annotation row."""
        pass

    # Index maintenance
    @abstractmethod
    async def index_counts(self) -> Dict[str, Dict[str, int]]:
        """Expected and actual row counts per index."""
        pass

    @abstractmethod
    async def sync_indexes(self) -> List[str]:
        """Rebuild every index whose count differs from its source; return rebuilt names."""
        pass

    # Lifecycle operations
    @abstractmethod
    async def initialize(self):
        """Initialize database connection (create schema, check indexes, etc.)."""
        pass

    @abstractmethod
    async def close(self):
        """Close database connection."""
        pass
