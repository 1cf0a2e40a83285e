"""
File Storage abstraction layer for archive bytes.
"""
from .base import FileStorageInterface
from .local_storage import LocalFileStorage
from ...core.logging_config import get_logger

logger = get_logger(__name__)

__all__ = [
    "FileStorageInterface",
    "LocalFileStorage",
]
