import asyncio

import pytest

from archive_vault.domain.entities import FieldBlockMap
from archive_vault.models.search import DocxBlockHit, HighlightRange, SearchFilters, SearchRequest
from archive_vault.services.annotation_service import AnnotationService
from archive_vault.services.search_service import (
    KIND_RANK,
    SearchService,
    clamp_page,
    fetch_limit,
    split_file_types,
)

from conftest import make_instruction_zip


@pytest.fixture
def indexed(vault, sources):
    path = make_instruction_zip(sources / "指令-20240315.zip")
    archive = vault.run(vault.importer.import_archive(path)).archive
    return vault, archive, SearchService(vault.db)


def search(vault, service, query, **kwargs):
    filters = kwargs.pop("filters", None)
    return vault.run(service.search(SearchRequest(query=query, filters=filters, **kwargs)))


def test_paging_is_clamped():
    assert clamp_page(None, None) == (50, 0)
    assert clamp_page(0, -5) == (50, 0)
    assert clamp_page(10_000, 10 ** 9) == (200, 20000)
    assert fetch_limit(50, 0) == 204
    assert fetch_limit(1, 0) == 200
    assert fetch_limit(200, 20000) == 5000


def test_file_type_allow_set():
    assert split_file_types(None) == (True, True, None)
    assert split_file_types(["docx_main"]) == (True, False, [])
    assert split_file_types(["pdf", "annotation", "excel"]) == (False, True, ["excel", "pdf"])


def test_blank_query_returns_empty_page(indexed):
    vault, _, service = indexed
    page = search(vault, service, "   ")
    assert page.items == []
    assert page.has_more is False
    assert (page.offset, page.limit) == (0, 50)


def test_unmatched_query_returns_empty_page(indexed):
    vault, _, service = indexed
    page = search(vault, service, "防汛抗旱", filters=SearchFilters(file_types=["pdf", "docx_main"]))
    assert page.items == []
    assert page.has_more is False


def test_block_hit_replaces_content_field_hit(indexed):
    vault, archive, service = indexed
    page = search(vault, service, "消防设施")

    first = page.items[0]
    assert first.kind == "docx_block"
    assert first.archive_id == archive["archive_id"]
    assert first.block_id == "p:000005"
    assert first.highlights == [HighlightRange(start=4, end=8)]
    assert not any(
        hit.kind == "main_doc_field" and hit.field_name == "content" for hit in page.items
    )


def test_results_are_ranked_by_kind(indexed):
    vault, _, service = indexed
    page = search(vault, service, "安全检查")

    kinds = [hit.kind for hit in page.items]
    assert kinds == sorted(kinds, key=KIND_RANK.get)
    assert "docx_block" in kinds
    assert any(hit.kind == "main_doc_field" and hit.field_name == "title" for hit in page.items)
    assert any(hit.kind == "attachment_name" and hit.display_name == "检查表.xlsx" for hit in page.items)


def test_attachment_type_filter(indexed):
    vault, _, service = indexed
    page = search(vault, service, "整改报告", filters=SearchFilters(file_types=["pdf"]))
    assert [(hit.kind, hit.display_name) for hit in page.items] == [
        ("attachment_name", "[补充材料.zip]/整改报告.pdf"),
    ]

    page = search(vault, service, "检查", filters=SearchFilters(file_types=["docx_main"]))
    assert page.items
    assert {hit.kind for hit in page.items} <= {"docx_block", "main_doc_field"}

    assert search(vault, service, "检查", filters=SearchFilters(file_types=[])).items == []


def test_date_filter(indexed):
    vault, archive, service = indexed
    day = archive["zip_date"]
    assert search(vault, service, "检查", filters=SearchFilters(date_to=day - 1)).items == []
    assert search(vault, service, "检查", filters=SearchFilters(date_from=day, date_to=day)).items
    assert search(vault, service, "检查", filters=SearchFilters(date_from=day)).items


def test_has_more_and_offset(indexed):
    vault, _, service = indexed
    everything = search(vault, service, "检查", limit=200)
    assert len(everything.items) > 1
    assert everything.has_more is False

    page = search(vault, service, "检查", limit=1)
    assert len(page.items) == 1
    assert page.has_more is True
    assert page.items[0] == everything.items[0]

    second = search(vault, service, "检查", limit=1, offset=1)
    assert second.items[0] == everything.items[1]

    beyond = search(vault, service, "检查", offset=len(everything.items))
    assert beyond.items == []
    assert beyond.has_more is False


def test_annotation_hits(indexed):
    vault, archive, service = indexed
    annotations = AnnotationService(vault.db)
    vault.run(annotations.create_annotation(
        archive["archive_id"], "block", "p:000005", {"start": 4, "end": 8}, "需要复查应急通道"
    ))

    page = search(vault, service, "复查", filters=SearchFilters(file_types=["annotation"]))
    assert len(page.items) == 1
    hit = page.items[0]
    assert hit.kind == "annotation"
    assert hit.target_ref == "p:000005"
    assert hit.locator == {"start": 4, "end": 8}
    assert hit.highlights == [HighlightRange(start=2, end=4)]


class FakeBlockStore:
    def __init__(self, block_maps, blocks):
        self.block_maps = block_maps
        self.blocks = blocks

    async def get_field_block_maps(self, archive_ids):
        return {a: m for a, m in self.block_maps.items() if a in archive_ids}

    async def get_block_texts(self, archive_id, block_ids):
        return [b for b in self.blocks if b["block_id"] in block_ids]


CONTENT_ROW = {"archive_id": "a1", "field_name": "content", "source_text": "无关\n检查检查\n检查"}
CONTENT_MAP = {"a1": FieldBlockMap(content=["p:000001", "p:000002", "p:000003"])}


def field_hits(store, query, block_hits=()):
    service = SearchService(store)
    return asyncio.run(service._field_hits([dict(CONTENT_ROW)], list(block_hits), query))


def test_content_hit_is_anchored_to_best_block():
    store = FakeBlockStore(CONTENT_MAP, [
        {"block_id": "p:000001", "text": "无关"},
        {"block_id": "p:000002", "text": "检查检查"},
        {"block_id": "p:000003", "text": "检查"},
    ])
    [hit] = field_hits(store, "检查")
    assert hit.best_block_id == "p:000002"
    assert hit.best_block_highlights == [HighlightRange(start=0, end=4)]


def test_best_block_ties_go_to_first_block():
    store = FakeBlockStore(CONTENT_MAP, [
        {"block_id": "p:000001", "text": "无关"},
        {"block_id": "p:000002", "text": "检查"},
        {"block_id": "p:000003", "text": "检查"},
    ])
    [hit] = field_hits(store, "检查")
    assert hit.best_block_id == "p:000002"


def test_best_block_defaults_to_first_provenance_block():
    store = FakeBlockStore(CONTENT_MAP, [{"block_id": "p:000001", "text": "无关"}])
    [hit] = field_hits(store, "防汛")
    assert hit.best_block_id == "p:000001"
    assert hit.best_block_highlights == []


def test_content_hit_without_provenance_is_kept():
    [hit] = field_hits(FakeBlockStore({}, []), "检查")
    assert hit.best_block_id is None


def test_content_hit_dropped_when_block_hit_covers_it():
    store = FakeBlockStore(CONTENT_MAP, [])
    covering = DocxBlockHit(archive_id="a1", block_id="p:000003", text="检查")
    assert field_hits(store, "检查", [covering]) == []
