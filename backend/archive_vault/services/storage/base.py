"""
Abstract base class for archive storage adapters.
All storage implementations must inherit from this class.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from ...core.logging_config import get_logger

logger = get_logger(__name__)

class FileStorageInterface(ABC):
    """
    Abstract interface for archive byte storage.
    Paths are relative keys chosen by the caller (e.g. "store/<archive_id>/<name>");
    the adapter never derives them from content.
    """
    
    @abstractmethod
    async def save_file(self, source_path: Path, file_path: str) -> str:
        """
        Copy a file from the local filesystem into storage.
        
        Args:
            source_path: File to copy
            file_path: Storage path/key where the copy should live
        
        Returns:
            Storage path/key where file was saved (for retrieval)
        """
        pass
    
    @abstractmethod
    def resolve_path(self, file_path: str) -> Path:
        """Absolute local path for a storage key (for readers that need a real file)."""
        pass
    
    @abstractmethod
    async def delete_dir(self, dir_path: str) -> bool:
        """
        Delete a directory and everything below it.
        
        Returns:
            True if something was deleted, False if it did not exist
        """
        pass
    
    @abstractmethod
    async def file_exists(self, file_path: str) -> bool:
        """Check if a file exists in storage."""
        pass
    
    @abstractmethod
    async def initialize(self):
        """Initialize storage (create directories, etc.)."""
        pass
