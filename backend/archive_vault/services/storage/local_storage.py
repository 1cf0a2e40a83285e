"""
Local filesystem storage adapter implementing FileStorageInterface.
Stores archive bytes under the library root.
"""
import shutil
import asyncio
from pathlib import Path

from .base import FileStorageInterface
from ...core.logging_config import get_logger

logger = get_logger(__name__)

class LocalFileStorage(FileStorageInterface):
    """
    Local filesystem storage adapter.
    Storage keys are paths relative to base_dir.
    """
    
    def __init__(self, base_dir: Path):
        """
        Initialize local file storage.
        
        Args:
            base_dir: Base directory for file storage (the library root)
        """
        self.base_dir = Path(base_dir)
    
    async def initialize(self):
        """Initialize storage - ensure base directory exists."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
    
    def _get_full_path(self, file_path: str) -> Path:
        """Get full filesystem path from storage path."""
        # Normalize path to prevent directory traversal
        normalized = Path(file_path).as_posix().lstrip('/')
        full_path = (self.base_dir / normalized).resolve()
        base = self.base_dir.resolve()
        if full_path != base and base not in full_path.parents:
            raise ValueError(f"Storage path escapes base directory: {file_path}")
        return full_path
    
    def resolve_path(self, file_path: str) -> Path:
        return self._get_full_path(file_path)
    
    async def save_file(self, source_path: Path, file_path: str) -> str:
        """Copy a local file into storage."""
        full_path = self._get_full_path(file_path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        
        def _copy():
            shutil.copyfile(source_path, full_path)
        
        # Run in executor to avoid blocking
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, _copy)
        logger.debug(f"Stored {source_path} as {file_path}")
        
        return file_path
    
    async def delete_dir(self, dir_path: str) -> bool:
        """Delete a directory tree from local filesystem."""
        full_path = self._get_full_path(dir_path)
        
        if not full_path.exists():
            return False
        
        def _delete():
            shutil.rmtree(full_path)
        
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, _delete)
        logger.debug(f"Deleted storage directory {dir_path}")
        return True
    
    async def file_exists(self, file_path: str) -> bool:
        """Check if a file exists in local filesystem."""
        full_path = self._get_full_path(file_path)
        return full_path.is_file()
