"""
Library root handling.

The library root is the directory that holds everything the vault owns:

    <root>/db.sqlite          relational store + full-text indexes
    <root>/store/<id>/<name>  raw bytes of every imported archive
    <root>/cache/<id>/...     lazily extracted attachment files

The current root is process-wide configuration. It is held by
LibraryRootState behind one lock and only changed by the administrative
"set library root" operation; services never read it directly, they are
given a Library handle when they are constructed.
"""
import threading
from dataclasses import dataclass
from datetime import timedelta, timezone
from pathlib import Path
from typing import Optional, Union

from .config import LIBRARY_ROOT, LIBRARY_TZ_OFFSET_HOURS
from .logging_config import get_logger

logger = get_logger(__name__)

DB_FILENAME = "db.sqlite"
STORE_DIRNAME = "store"
CACHE_DIRNAME = "cache"


@dataclass(frozen=True)
class Library:
    """Immutable handle describing one library root on disk."""
    root: Path
    tz_offset_hours: int = LIBRARY_TZ_OFFSET_HOURS

    @property
    def db_path(self) -> Path:
        return self.root / DB_FILENAME

    @property
    def store_dir(self) -> Path:
        return self.root / STORE_DIRNAME

    @property
    def cache_dir(self) -> Path:
        return self.root / CACHE_DIRNAME

    @property
    def tz(self) -> timezone:
        """Fixed-offset timezone used to compute archive dates."""
        return timezone(timedelta(hours=self.tz_offset_hours))

    def ensure_layout(self) -> None:
        """Create the root and its store/cache directories if missing."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)


class LibraryRootState:
    """
    Process-wide current library root with explicit get/set.

    Every access goes through a single exclusive lock.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self._lock = threading.Lock()
        self._library = Library(root=Path(root) if root else LIBRARY_ROOT)

    def get(self) -> Library:
        with self._lock:
            return self._library

    def set(self, root: Union[str, Path]) -> Library:
        """
        Point the process at a new library root.

        Args:
            root: Directory to use as the new root (created if missing)

        Returns:
            The new Library handle
        """
        library = Library(root=Path(root).expanduser().resolve())
        library.ensure_layout()
        with self._lock:
            previous = self._library
            self._library = library
        logger.info(f"Library root changed: {previous.root} -> {library.root}")
        return library


library_state = LibraryRootState()
