"""
Folder scanning for batch imports.
"""
import os
from pathlib import Path
from typing import List, Union

from ..core.config import FOLDER_SCAN_LIMIT
from ..core.logging_config import get_logger

logger = get_logger(__name__)


def collect_zip_files(directory: Union[str, Path], limit: int = FOLDER_SCAN_LIMIT) -> List[str]:
    """
    Recursively collect .zip files under a directory.
    
    Hidden entries (names starting with ".") are skipped, files and
    folders alike. Entries are visited in sorted order so the result is
    stable between runs.
    
    Args:
        directory: Folder to scan
        limit: Maximum number of paths returned
    
    Returns:
        Absolute paths of the ZIP files found
    
    Raises:
        NotADirectoryError: If directory is not a folder
    """
    root = Path(directory)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    
    found: List[str] = []
    _scan(root, found, limit)
    if len(found) >= limit:
        logger.warning(f"Folder scan of {root} stopped at {limit} ZIP files")
    return found


def _scan(directory: Path, found: List[str], limit: int) -> None:
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        if len(found) >= limit:
            return
        if entry.name.startswith("."):
            continue
        if entry.is_dir(follow_symlinks=False):
            _scan(Path(entry.path), found, limit)
        elif entry.is_file() and entry.name.lower().endswith(".zip"):
            found.append(str(Path(entry.path).resolve()))
