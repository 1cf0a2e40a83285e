"""
Base Block Extractor Interface.

Block extractors turn a main document's bytes into its ordered paragraph
blocks. Each supported format has its own extractor class inheriting from
this base class.
"""
from abc import ABC, abstractmethod
from typing import List

from ...domain.entities import DocBlock
from ...domain.value_objects import make_block_id
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class BaseBlockExtractor(ABC):
    """
    Abstract base class for block extractors.
    
    Subclasses implement extract_paragraphs(); numbering and text
    normalization are shared so every format yields the same block ids.
    """
    
    def __init__(self, file_extension: str, format_name: str):
        """
        Initialize the extractor.
        
        Args:
            file_extension: File extension (e.g., '.docx')
            format_name: Human-readable format name (e.g., 'DOCX')
        """
        self.file_extension = file_extension.lower()
        self.format_name = format_name
    
    @abstractmethod
    def extract_paragraphs(self, file_bytes: bytes) -> List[str]:
        """
        Extract body paragraph texts in document order.
        
        Args:
            file_bytes: Raw file content as bytes
            
        Returns:
            Paragraph texts, empty paragraphs included
            
        Raises:
            ArchiveFormatError: If the file cannot be parsed
        """
        pass
    
    def extract_blocks(self, file_bytes: bytes) -> List[DocBlock]:
        """Extract paragraphs and number them as blocks."""
        paragraphs = self.extract_paragraphs(file_bytes)
        return [
            DocBlock(block_id=make_block_id(idx), text=normalize_text(text))
            for idx, text in enumerate(paragraphs)
        ]
    
    def supports(self, filename: str) -> bool:
        return filename.lower().endswith(self.file_extension)


def normalize_text(text: str) -> str:
    """Minimal normalization: CRLF to LF, no-break and ideographic spaces to plain spaces."""
    return text.replace("\r\n", "\n").replace("\u00a0", " ").replace("\u3000", " ")
