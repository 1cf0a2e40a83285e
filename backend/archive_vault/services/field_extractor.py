"""
Structured field extraction for instruction documents.

Recovers the document number, title, issue date and body from the
paragraph stream of a main document. Two layouts are supported:

1. One "label：value" pair per paragraph
2. Several pairs packed into one paragraph, e.g.
   "指令编号：A-1 指令标题：xxx 下发时间：2024-01-01 指令内容：..."

A label whose value is empty is resolved by the next non-empty paragraph.
The content label starts a collection run that appends every following
paragraph until a header label (number/title/date) opens a new line.
"""
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..domain.entities import DocBlock, ExtractedFields, FieldBlockMap
from ..core.logging_config import get_logger

logger = get_logger(__name__)

INSTRUCTION_NO = "instruction_no"
TITLE = "title"
ISSUED_AT = "issued_at"
CONTENT = "content"

LABEL_GROUPS: Dict[str, Tuple[str, ...]] = {
    INSTRUCTION_NO: ("指令编号", "编号", "文号", "发文字号", "文件编号", "指令号"),
    TITLE: ("指令标题", "标题", "主题", "事项", "名称"),
    ISSUED_AT: ("下发时间", "时间", "日期", "下发日期", "签发时间", "发文日期"),
    CONTENT: ("指令内容", "内容", "正文", "主要内容"),
}

LABEL_TO_FIELD: Dict[str, str] = {
    label: canonical
    for canonical, labels in LABEL_GROUPS.items()
    for label in labels
}

_HEADER_LABELS = LABEL_GROUPS[INSTRUCTION_NO] + LABEL_GROUPS[TITLE] + LABEL_GROUPS[ISSUED_AT]
_ALL_LABELS = _HEADER_LABELS + LABEL_GROUPS[CONTENT]

LABEL_PATTERN = re.compile(r"(" + "|".join(_ALL_LABELS) + r")\s*[:：]")
HEADER_LINE_PATTERN = re.compile(r"^\s*(" + "|".join(_HEADER_LABELS) + r")\s*[:：]")

_VALUE_STRIP_CHARS = "\n\t \u3000"


def find_labels(text: str) -> List[Tuple[str, int, int]]:
    """
    Locate "label + colon" occurrences.

    Returns:
        (label, match_start, label_end) tuples sorted by position
    """
    hits = [(m.group(1), m.start(), m.end()) for m in LABEL_PATTERN.finditer(text)]
    hits.sort(key=lambda hit: hit[1])
    return hits


class _ExtractionState:
    """Mutable state of one extraction pass."""

    def __init__(self):
        self.scalars: Dict[str, str] = {INSTRUCTION_NO: "", TITLE: "", ISSUED_AT: ""}
        self.scalar_blocks: Dict[str, Optional[str]] = {
            INSTRUCTION_NO: None,
            TITLE: None,
            ISSUED_AT: None,
        }
        self.content_lines: List[str] = []
        self.content_block_ids: List[str] = []
        self.content_anchor: Optional[str] = None
        # None while Seeking, otherwise the index of the block holding the content label
        self.collect_start: Optional[int] = None
        # (canonical field, block id of the label) waiting for its value
        self.pending: Optional[Tuple[str, str]] = None

    def set_scalar(self, canonical: str, value: str, block_id: str) -> bool:
        """First writer wins; returns True when the value was taken."""
        if self.scalars[canonical]:
            return False
        self.scalars[canonical] = value
        self.scalar_blocks[canonical] = block_id
        return True

    def add_content(self, text: str, block_id: str) -> None:
        self.content_lines.append(text)
        self.content_block_ids.append(block_id)

    def result(self) -> ExtractedFields:
        block_map = FieldBlockMap(
            instruction_no=self.scalar_blocks[INSTRUCTION_NO],
            title=self.scalar_blocks[TITLE],
            issued_at=self.scalar_blocks[ISSUED_AT],
            content=list(self.content_block_ids),
            content_anchor=self.content_anchor,
        )
        return ExtractedFields(
            instruction_no=self.scalars[INSTRUCTION_NO],
            title=self.scalars[TITLE],
            issued_at=self.scalars[ISSUED_AT],
            content="\n".join(self.content_lines),
            block_map=block_map,
        )


def _apply_labels(state: _ExtractionState, index: int, block: DocBlock, text: str,
                  hits: List[Tuple[str, int, int]]) -> None:
    state.pending = None
    for pos, (label, _start, label_end) in enumerate(hits):
        next_start = hits[pos + 1][1] if pos + 1 < len(hits) else len(text)
        value = text[label_end:next_start].strip().strip(_VALUE_STRIP_CHARS)
        canonical = LABEL_TO_FIELD[label]

        if canonical == CONTENT:
            if state.content_anchor is None:
                state.content_anchor = block.block_id
            if value:
                state.add_content(value, block.block_id)
            state.collect_start = index
            continue

        if state.scalars[canonical]:
            continue
        if value:
            state.set_scalar(canonical, value, block.block_id)
        else:
            state.pending = (canonical, block.block_id)


def extract_fields(blocks: Sequence[DocBlock]) -> ExtractedFields:
    """
    Extract instruction fields and their block provenance.

    Args:
        blocks: Main document paragraphs in order, tables already excluded

    Returns:
        ExtractedFields; missing fields are empty strings and content
        provenance is an empty list when no content label was found
    """
    state = _ExtractionState()

    for index, block in enumerate(blocks):
        text = block.text.strip()
        collecting = state.collect_start is not None and index > state.collect_start

        if collecting and HEADER_LINE_PATTERN.match(text):
            break

        if not collecting:
            hits = find_labels(text)
            if hits:
                _apply_labels(state, index, block, text, hits)
                continue

        if not text:
            # blank paragraphs neither resolve a pending label nor add to the body
            continue

        if state.pending is not None:
            canonical, label_block_id = state.pending
            state.pending = None
            if state.set_scalar(canonical, text, label_block_id):
                continue

        if collecting:
            # body paragraphs are kept verbatim, labels inside them included
            state.add_content(block.text, block.block_id)

    fields = state.result()
    logger.debug(
        f"Extracted fields: instruction_no={fields.instruction_no!r}, "
        f"title={fields.title!r}, content_blocks={len(fields.block_map.content)}"
    )
    return fields
