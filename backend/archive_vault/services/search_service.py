"""
Search Service - Ranked full-text search across archives.

A query is tokenized with the same tokenizer used at index time and turned
into an OR of all its tokens, so any shared token qualifies a row. Four
indexes are queried independently (main document blocks, main document
fields, attachment names, annotations), over-fetching past the requested
page because de-duplication changes row counts. Hits are then:

- highlighted against their display text (UTF-16 ranges)
- de-duplicated: a "content" field hit is dropped when a block hit already
  covers one of the blocks that make up that content; otherwise it is
  anchored to its best supporting block
- ranked by kind, field and highlighted width, and sliced to the page

Example Usage:
    service = SearchService(db)
    page = await service.search(SearchRequest(query="安全 检查", limit=20))
"""
from typing import Dict, List, Optional, Sequence, Tuple

from .database.base import DatabaseInterface
from ..core.config import (
    HIGHLIGHT_MAX_RANGES,
    SEARCH_DEFAULT_LIMIT,
    SEARCH_FETCH_CAP,
    SEARCH_FETCH_FLOOR,
    SEARCH_FETCH_MULTIPLIER,
    SEARCH_MAX_LIMIT,
    SEARCH_MAX_OFFSET,
)
from ..core.logging_config import get_logger
from ..domain.entities import FieldBlockMap
from ..models.search import (
    AnnotationHit,
    AttachmentNameHit,
    DocxBlockHit,
    HighlightRange,
    MainDocFieldHit,
    SearchFilters,
    SearchHit,
    SearchPage,
    SearchRequest,
)
from ..utils.highlight import compute_highlights, highlight_span
from ..utils.tokenizer import build_match_query, tokenize

logger = get_logger(__name__)

# Pseudo file types selecting non-attachment results in SearchFilters.file_types
DOCX_MAIN_TYPE = "docx_main"
ANNOTATION_TYPE = "annotation"

KIND_RANK = {
    "docx_block": 0,
    "main_doc_field": 1,
    "annotation": 2,
    "attachment_name": 3,
}

FIELD_RANK = {
    "instruction_no": 0,
    "title": 1,
    "content": 2,
    "issued_at": 3,
}
OTHER_FIELD_RANK = 9

CONTENT_FIELD = "content"


def clamp_page(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    """Apply defaults and hard ceilings to caller-supplied paging."""
    if limit is None or limit < 1:
        limit = SEARCH_DEFAULT_LIMIT
    if offset is None or offset < 0:
        offset = 0
    return min(limit, SEARCH_MAX_LIMIT), min(offset, SEARCH_MAX_OFFSET)


def fetch_limit(limit: int, offset: int) -> int:
    """Rows requested from each index: page end plus one, scaled, floored and capped."""
    need = offset + limit + 1
    return max(min(need * SEARCH_FETCH_MULTIPLIER, SEARCH_FETCH_CAP), SEARCH_FETCH_FLOOR)


def split_file_types(file_types: Optional[Sequence[str]]) -> Tuple[bool, bool, Optional[List[str]]]:
    """
    Interpret a result-type allow-set.

    Returns:
        (include main document hits, include annotation hits, attachment
        types to include or None for all of them)
    """
    if file_types is None:
        return True, True, None
    wanted = set(file_types)
    attachment_types = sorted(wanted - {DOCX_MAIN_TYPE, ANNOTATION_TYPE})
    return DOCX_MAIN_TYPE in wanted, ANNOTATION_TYPE in wanted, attachment_types


def _date_range(filters: SearchFilters) -> Optional[tuple]:
    if filters.date_from is None and filters.date_to is None:
        return None
    return filters.date_from, filters.date_to


def _ranges(text: str, query: str) -> List[HighlightRange]:
    return [
        HighlightRange(start=start, end=end)
        for start, end in compute_highlights(text, query, HIGHLIGHT_MAX_RANGES)
    ]


def _span(ranges: List[HighlightRange]) -> int:
    return highlight_span([(r.start, r.end) for r in ranges])


def rank_key(hit: SearchHit) -> Tuple[int, int, int]:
    """Sort key: kind, then field (field hits only), then widest highlight first."""
    if isinstance(hit, DocxBlockHit):
        field_rank = 0
    elif isinstance(hit, MainDocFieldHit):
        field_rank = FIELD_RANK.get(hit.field_name, OTHER_FIELD_RANK)
    elif isinstance(hit, (AnnotationHit, AttachmentNameHit)):
        field_rank = 0
    else:
        raise TypeError(f"Unknown search hit type: {type(hit).__name__}")
    return KIND_RANK[hit.kind], field_rank, -_span(hit.highlights)


def score_block(text: str, tokens: Sequence[str]) -> int:
    """Raw occurrence count of every query token in a block."""
    return sum(text.count(token) for token in tokens)


class SearchService:
    """
    Service for paged, ranked search.

    Read-only; safe to run concurrently with itself and with imports.
    """

    def __init__(self, db: DatabaseInterface):
        self.db = db

    async def search(self, request: SearchRequest) -> SearchPage:
        """
        Run a paged search.

        Args:
            request: Query text, optional filters and paging

        Returns:
            SearchPage with ranked hits; an empty page when the query has no
            usable tokens or nothing matches
        """
        limit, offset = clamp_page(request.limit, request.offset)
        query = request.query or ""
        match_query = build_match_query(query)
        if not match_query:
            return SearchPage(items=[], has_more=False, offset=offset, limit=limit)

        filters = request.filters or SearchFilters()
        date_range = _date_range(filters)
        include_docx, include_annotations, attachment_types = split_file_types(filters.file_types)
        fetch = fetch_limit(limit, offset)

        block_hits: List[DocxBlockHit] = []
        field_hits: List[MainDocFieldHit] = []
        if include_docx:
            block_rows = await self.db.search_blocks(match_query, fetch, date_range)
            block_hits = [
                DocxBlockHit(
                    archive_id=row["archive_id"],
                    block_id=row["block_id"],
                    text=row["source_text"],
                    highlights=_ranges(row["source_text"], query),
                )
                for row in block_rows
            ]
            field_rows = await self.db.search_fields(match_query, fetch, date_range)
            field_hits = await self._field_hits(field_rows, block_hits, query)

        attachment_hits: List[AttachmentNameHit] = []
        if attachment_types is None or attachment_types:
            attachment_rows = await self.db.search_attachments(match_query, fetch, date_range, attachment_types)
            attachment_hits = [
                AttachmentNameHit(
                    archive_id=row["archive_id"],
                    file_id=row["file_id"],
                    display_name=row["display_name"],
                    highlights=_ranges(row["display_name"], query),
                )
                for row in attachment_rows
            ]

        annotation_hits: List[AnnotationHit] = []
        if include_annotations:
            annotation_rows = await self.db.search_annotations(match_query, fetch, date_range)
            annotation_hits = [
                AnnotationHit(
                    archive_id=row["archive_id"],
                    annotation_id=row["annotation_id"],
                    target_kind=row["target_kind"],
                    target_ref=row["target_ref"],
                    locator=row["locator"],
                    content=row["content"],
                    highlights=_ranges(row["content"], query),
                )
                for row in annotation_rows
            ]

        merged: List[SearchHit] = [*block_hits, *field_hits, *annotation_hits, *attachment_hits]
        merged.sort(key=rank_key)

        end = offset + limit
        logger.debug(
            f"Search {query!r}: {len(block_hits)} blocks, {len(field_hits)} fields, "
            f"{len(annotation_hits)} annotations, {len(attachment_hits)} attachments"
        )
        return SearchPage(
            items=merged[offset:end],
            has_more=len(merged) > end,
            offset=offset,
            limit=limit,
        )

    async def _field_hits(self, field_rows: List[Dict], block_hits: List[DocxBlockHit],
                          query: str) -> List[MainDocFieldHit]:
        """Build field hits, dropping or anchoring content hits against block hits."""
        content_archives = sorted({
            row["archive_id"] for row in field_rows if row["field_name"] == CONTENT_FIELD
        })
        block_maps = await self.db.get_field_block_maps(content_archives) if content_archives else {}
        covered = {(hit.archive_id, hit.block_id) for hit in block_hits}
        query_tokens = sorted(set(tokenize(query)))

        hits = []
        for row in field_rows:
            archive_id = row["archive_id"]
            hit = MainDocFieldHit(
                archive_id=archive_id,
                field_name=row["field_name"],
                text=row["source_text"],
                highlights=_ranges(row["source_text"], query),
            )
            if hit.field_name == CONTENT_FIELD:
                content_ids = block_maps.get(archive_id, FieldBlockMap()).content
                if any((archive_id, block_id) in covered for block_id in content_ids):
                    continue
                if content_ids:
                    await self._anchor_best_block(hit, content_ids, query_tokens, query)
            hits.append(hit)
        return hits

    async def _anchor_best_block(self, hit: MainDocFieldHit, content_ids: List[str],
                                 query_tokens: List[str], query: str) -> None:
        """Point a content hit at the block with the most token occurrences (first wins ties)."""
        blocks = await self.db.get_block_texts(hit.archive_id, content_ids)

        best_id = content_ids[0]
        best_text: Optional[str] = None
        best_score = 0
        for block in blocks:
            if best_text is None and block["block_id"] == best_id:
                best_text = block["text"]
            score = score_block(block["text"], query_tokens)
            if score > best_score:
                best_id, best_text, best_score = block["block_id"], block["text"], score

        hit.best_block_id = best_id
        if best_text is not None:
            hit.best_block_highlights = _ranges(best_text, query)
