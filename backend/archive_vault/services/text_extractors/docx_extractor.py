"""
DOCX Block Extractor.

Extracts body paragraphs from DOCX files using python-docx library.

Every w:p of the document body is a block, including paragraphs wrapped in
content controls (w:sdt), except those inside a table. A paragraph's text
is read from all of its w:t nodes, so runs inside tracked insertions,
smart tags and field results are kept.
"""
import io
from typing import List

from docx import Document as DocxDocument
from docx.oxml.ns import qn

from .base import BaseBlockExtractor
from ...api.exceptions import ArchiveFormatError
from ...core.logging_config import get_logger

logger = get_logger(__name__)

_PARAGRAPH = qn("w:p")
_TABLE = qn("w:tbl")
_RUN = qn("w:r")
_TEXT = qn("w:t")
_TAB = qn("w:tab")
_LINE_BREAKS = (qn("w:br"), qn("w:cr"), qn("w:lastRenderedPageBreak"))


def paragraph_text(paragraph) -> str:
    """
    Text of one w:p element.

    w:tab becomes a tab and line/page breaks a newline; tab stops and other
    markup outside runs contribute nothing.
    """
    parts = []
    for node in paragraph.iter(_TEXT, _TAB, *_LINE_BREAKS):
        if node.tag == _TEXT:
            parts.append(node.text or "")
            continue
        # w:tab also defines tab stops under w:pPr/w:tabs
        if node.getparent().tag != _RUN:
            continue
        parts.append("\t" if node.tag == _TAB else "\n")
    return "".join(parts)


def body_paragraphs(body) -> List:
    """Top-level w:p elements of a body in document order, tables excluded."""
    return [
        p for p in body.iter(_PARAGRAPH)
        # nested paragraphs (text boxes) are read as part of their outer paragraph
        if next(p.iterancestors(_TABLE, _PARAGRAPH), None) is None
    ]


class DOCXBlockExtractor(BaseBlockExtractor):
    """Extractor for DOCX main documents."""

    def __init__(self):
        super().__init__(".docx", "DOCX")

    def extract_paragraphs(self, file_bytes: bytes) -> List[str]:
        """
        Extract paragraph texts from a DOCX file.

        Args:
            file_bytes: DOCX file content as bytes

        Returns:
            One string per body paragraph, in document order

        Raises:
            ArchiveFormatError: If the bytes are not a readable DOCX package
        """
        try:
            doc = DocxDocument(io.BytesIO(file_bytes))
        except Exception as e:
            logger.error(f"Error opening DOCX: {e}", exc_info=True)
            raise ArchiveFormatError(f"Main document is not a valid DOCX file: {e}") from e

        paragraphs = [paragraph_text(p) for p in body_paragraphs(doc.element.body)]
        logger.debug(f"Extracted {len(paragraphs)} paragraphs from DOCX")
        return paragraphs
