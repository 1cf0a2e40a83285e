import shutil
import sqlite3
from datetime import date

from archive_vault.domain.entities import ArchiveStatus
from archive_vault.services.import_service import FAILED, IMPORTED, SKIPPED
from archive_vault.services.progress import IMPORT_STEPS_PER_ARCHIVE
from archive_vault.services.text_extractors import DOCXBlockExtractor
from archive_vault.utils.archive_date import local_midnight

from conftest import INSTRUCTION_PARAGRAPHS, make_instruction_zip, make_zip_bytes


def assert_indexes_in_sync(vault):
    counts = vault.run(vault.db.index_counts())
    for name, pair in counts.items():
        assert pair["expected"] == pair["actual"], name
    return counts


def test_import_extracts_fields_blocks_and_attachments(vault, sources):
    path = make_instruction_zip(sources / "指令-20240315.zip")
    outcome = vault.run(vault.importer.import_archive(path))

    assert outcome.status == IMPORTED
    archive = outcome.archive
    assert archive["status"] == ArchiveStatus.COMPLETED.value
    assert archive["error"] is None
    assert archive["zip_date"] == local_midnight(date(2024, 3, 15), vault.library.tz)
    assert (vault.library.root / archive["stored_path"]).is_file()

    main_doc = vault.run(vault.db.get_main_doc(archive["archive_id"]))
    assert main_doc["instruction_no"] == "ZL-2024-001"
    assert main_doc["title"] == "关于开展安全检查的通知"
    assert main_doc["issued_at"] == "2024年3月15日"
    assert main_doc["content"] == "请各单位于本月底前完成自查。\n重点检查消防设施与应急通道。\n检查结果报送办公室。"

    blocks = vault.run(vault.db.get_blocks(archive["archive_id"]))
    assert [b["text"] for b in blocks] == INSTRUCTION_PARAGRAPHS
    assert blocks[0]["block_id"] == "p:000001"

    attachments = vault.run(vault.db.get_attachments(archive["archive_id"]))
    assert len(attachments) == 5
    assert [a["source_depth"] for a in attachments] == [0, 0, 0, 1, 1]

    counts = assert_indexes_in_sync(vault)
    assert counts["docx_blocks_fts"]["actual"] == len(INSTRUCTION_PARAGRAPHS)
    assert counts["main_doc_fts"]["actual"] == 4
    assert counts["attachments_fts"]["actual"] == 5


def test_same_bytes_are_imported_once(vault, sources):
    first = make_instruction_zip(sources / "通知.zip")
    second = sources / "改名后的通知.zip"
    shutil.copyfile(first, second)

    summary = vault.run(vault.importer.import_batch([first, second]))

    assert (summary.imported, summary.skipped, summary.failed) == (1, 1, 0)
    archives = vault.run(vault.db.list_archives(None, None, 100, 0))
    assert len(archives) == 1
    assert archives[0]["original_name"] == "通知.zip"


def test_bad_archive_is_kept_as_failed(vault, sources):
    sources.mkdir(parents=True)
    broken = sources / "broken.zip"
    broken.write_bytes(b"this is not a zip archive")
    no_docx = sources / "no-docx.zip"
    no_docx.write_bytes(make_zip_bytes({"only.pdf": b"%PDF"}))
    good = make_instruction_zip(sources / "good.zip")

    summary = vault.run(vault.importer.import_batch([broken, no_docx, good]))

    assert (summary.imported, summary.skipped, summary.failed) == (1, 0, 2)
    assert [f["path"] for f in summary.failures] == [str(broken), str(no_docx)]
    rows = {a["original_name"]: a for a in vault.run(vault.db.list_archives(None, None, 100, 0))}
    assert rows["broken.zip"]["status"] == ArchiveStatus.FAILED.value
    assert "ArchiveFormatError" in rows["broken.zip"]["error"]
    assert "MainDocumentNotFoundError" in rows["no-docx.zip"]["error"]
    assert rows["good.zip"]["status"] == ArchiveStatus.COMPLETED.value
    # failed archives keep their bytes and leave no derived rows
    assert (vault.library.root / rows["broken.zip"]["stored_path"]).is_file()
    assert vault.run(vault.db.get_blocks(rows["no-docx.zip"]["archive_id"])) == []
    assert_indexes_in_sync(vault)


def test_missing_source_file_is_reported(vault, sources):
    summary = vault.run(vault.importer.import_batch([sources / "absent.zip"]))
    assert summary.failed == 1
    assert "FileNotFoundError" in summary.failures[0]["error"]
    assert vault.run(vault.db.list_archives(None, None, 100, 0)) == []


def test_progress_events(vault, sources):
    paths = [
        make_instruction_zip(sources / "a.zip"),
        make_instruction_zip(sources / "b.zip", paragraphs=["标题：另一份"]),
    ]
    events = []
    vault.run(vault.importer.import_batch(paths, observer=events.append))

    total = 2 * IMPORT_STEPS_PER_ARCHIVE
    assert all(e.total == total for e in events)
    assert [e.current for e in events if not e.is_complete] == list(range(total))
    assert events[-1].is_complete
    assert events[-1].current == total
    assert events[-1].message == "imported 2, skipped 0, failed 0"


def test_failing_observer_does_not_break_import(vault, sources):
    def observer(event):
        raise RuntimeError("ui went away")

    path = make_instruction_zip(sources / "a.zip")
    summary = vault.run(vault.importer.import_batch([path], observer=observer))
    assert summary.imported == 1


class TruncatingExtractor(DOCXBlockExtractor):
    """Simulates an extractor upgrade that yields different paragraphs."""

    def extract_paragraphs(self, file_bytes):
        return super().extract_paragraphs(file_bytes)[:2] + ["内容：新的正文"]


def test_reextract_replaces_derived_rows(vault, sources):
    path = make_instruction_zip(sources / "a.zip")
    archive = vault.run(vault.importer.import_archive(path)).archive
    archive_id = archive["archive_id"]
    attachments_before = vault.run(vault.db.get_attachments(archive_id))

    vault.importer.extractor = TruncatingExtractor()
    refreshed = vault.run(vault.importer.reextract(archive_id))

    assert refreshed["status"] == ArchiveStatus.COMPLETED.value
    blocks = vault.run(vault.db.get_blocks(archive_id))
    assert [b["text"] for b in blocks] == INSTRUCTION_PARAGRAPHS[:2] + ["内容：新的正文"]
    main_doc = vault.run(vault.db.get_main_doc(archive_id))
    assert main_doc["content"] == "新的正文"
    assert main_doc["issued_at"] == ""
    attachments_after = vault.run(vault.db.get_attachments(archive_id))
    assert [a["file_id"] for a in attachments_after] == [a["file_id"] for a in attachments_before]
    counts = assert_indexes_in_sync(vault)
    assert counts["docx_blocks_fts"]["actual"] == 3


def test_reextract_preserves_cached_paths(vault, sources):
    path = make_instruction_zip(sources / "a.zip")
    archive_id = vault.run(vault.importer.import_archive(path)).archive["archive_id"]
    file_id = vault.run(vault.db.get_attachments(archive_id))[0]["file_id"]
    conn = sqlite3.connect(str(vault.library.db_path))
    try:
        conn.execute("UPDATE attachments SET cached_path='cache/x/file' WHERE file_id=?", (file_id,))
        conn.commit()
    finally:
        conn.close()

    vault.run(vault.importer.reextract(archive_id))

    cached = {a["file_id"]: a["cached_path"] for a in vault.run(vault.db.get_attachments(archive_id))}
    assert cached[file_id] == "cache/x/file"


def test_out_of_sync_index_is_rebuilt(vault, sources):
    path = make_instruction_zip(sources / "a.zip")
    vault.run(vault.importer.import_archive(path))
    conn = sqlite3.connect(str(vault.library.db_path))
    try:
        conn.execute("DELETE FROM docx_blocks_fts WHERE rowid IN (SELECT rowid FROM docx_blocks_fts LIMIT 2)")
        conn.commit()
    finally:
        conn.close()

    counts = vault.run(vault.db.index_counts())
    assert counts["docx_blocks_fts"]["actual"] == counts["docx_blocks_fts"]["expected"] - 2

    assert vault.run(vault.db.sync_indexes()) == ["docx_blocks_fts"]
    assert_indexes_in_sync(vault)
    assert vault.run(vault.db.sync_indexes()) == []


def test_row_insert_failure_removes_copied_bytes(vault, sources, monkeypatch):
    async def locked(archive_data):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(vault.db, "create_archive", locked)
    path = make_instruction_zip(sources / "指令-20240315.zip")
    outcome = vault.run(vault.importer.import_archive(path))

    assert outcome.status == FAILED
    assert "database is locked" in outcome.reason
    assert list(vault.library.store_dir.iterdir()) == []
    assert vault.run(vault.db.list_archives(None, None, 100, 0)) == []
