"""
Block Extractors Module - main document format handlers.

To support another main document format:
1. Create a new extractor class inheriting from BaseBlockExtractor
2. Implement the extract_paragraphs() method
"""
from .base import BaseBlockExtractor, normalize_text
from .docx_extractor import DOCXBlockExtractor

__all__ = [
    "BaseBlockExtractor",
    "DOCXBlockExtractor",
    "normalize_text",
]
