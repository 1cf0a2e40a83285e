import asyncio
import io
import zipfile
from pathlib import Path

import pytest
from docx import Document

from archive_vault.core.library import Library
from archive_vault.services.database import SQLiteAdapter
from archive_vault.services.import_service import ImportService
from archive_vault.services.storage import LocalFileStorage


INSTRUCTION_PARAGRAPHS = [
    "指令编号：ZL-2024-001",
    "指令标题：关于开展安全检查的通知",
    "下发时间：2024年3月15日",
    "指令内容：请各单位于本月底前完成自查。",
    "重点检查消防设施与应急通道。",
    "检查结果报送办公室。",
]


def make_docx(paragraphs):
    """Bytes of a .docx whose body holds the given paragraphs."""
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    table = doc.add_table(rows=1, cols=1)
    table.cell(0, 0).text = "表格内容不参与抽取"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def make_zip_bytes(entries):
    """Bytes of a ZIP holding {entry name: bytes} in insertion order."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def make_instruction_zip(path: Path, paragraphs=None, extra_entries=None) -> Path:
    """Write an instruction archive named like its main document."""
    entries = {f"{path.stem}.docx": make_docx(paragraphs or INSTRUCTION_PARAGRAPHS)}
    entries["附件/检查表.xlsx"] = b"xlsx-bytes"
    entries["现场照片.png"] = b"png-bytes"
    entries["__MACOSX/._现场照片.png"] = b"resource-fork"
    entries[".DS_Store"] = b"finder"
    entries["补充材料.zip"] = make_zip_bytes({
        "整改报告.pdf": b"%PDF-1.4",
        "更深一层.zip": make_zip_bytes({"never-expanded.txt": b"x"}),
    })
    if extra_entries:
        entries.update(extra_entries)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(make_zip_bytes(entries))
    return path


class Vault:
    """Library, database, storage and import service on a temporary root."""

    def __init__(self, root: Path):
        self.library = Library(root=root)
        self.library.ensure_layout()
        self.db = SQLiteAdapter(self.library.db_path)
        self.storage = LocalFileStorage(self.library.root)
        asyncio.run(self.db.initialize())
        self.importer = ImportService(self.library, self.db, self.storage)

    def run(self, coro):
        return asyncio.run(coro)


@pytest.fixture
def vault(tmp_path):
    return Vault(tmp_path / "library")


@pytest.fixture
def sources(tmp_path):
    return tmp_path / "incoming"
