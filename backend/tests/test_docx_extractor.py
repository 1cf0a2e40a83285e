import io

from docx import Document
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches

from archive_vault.services.field_extractor import extract_fields
from archive_vault.services.text_extractors import DOCXBlockExtractor


def wrap_in_content_control(paragraph):
    sdt = OxmlElement("w:sdt")
    content = OxmlElement("w:sdtContent")
    paragraph._p.addprevious(sdt)
    sdt.append(content)
    content.append(paragraph._p)


def wrap_in_tracked_insertion(run):
    ins = OxmlElement("w:ins")
    ins.set(qn("w:id"), "1")
    ins.set(qn("w:author"), "审核人")
    run._r.addprevious(ins)
    ins.append(run._r)


def docx_bytes(doc):
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def test_wrapped_paragraphs_and_runs_are_kept():
    doc = Document()
    doc.add_paragraph("指令编号：A-001")
    wrap_in_content_control(doc.add_paragraph("标题：测试"))
    doc.add_paragraph("内容：第一段")
    wrap_in_tracked_insertion(doc.add_paragraph().add_run("第二段"))

    blocks = DOCXBlockExtractor().extract_blocks(docx_bytes(doc))
    assert [b.text for b in blocks] == ["指令编号：A-001", "标题：测试", "内容：第一段", "第二段"]
    assert [b.block_id for b in blocks] == ["p:000001", "p:000002", "p:000003", "p:000004"]

    fields = extract_fields(blocks)
    assert fields.title == "测试"
    assert fields.content == "第一段\n第二段"
    assert fields.block_map.content == ["p:000003", "p:000004"]


def test_tables_tabs_and_breaks():
    doc = Document()
    doc.add_paragraph("正文开始")
    doc.add_table(rows=1, cols=1).cell(0, 0).text = "表格内容"
    paragraph = doc.add_paragraph()
    paragraph.paragraph_format.tab_stops.add_tab_stop(Inches(1))
    run = paragraph.add_run("甲")
    run.add_tab()
    run.add_text("乙")
    run.add_break()
    run.add_text("丙")

    paragraphs = DOCXBlockExtractor().extract_paragraphs(docx_bytes(doc))
    assert paragraphs == ["正文开始", "甲\t乙\n丙"]


def test_empty_paragraphs_keep_their_position():
    doc = Document()
    doc.add_paragraph("第一段")
    doc.add_paragraph("")
    doc.add_paragraph("第三段")

    blocks = DOCXBlockExtractor().extract_blocks(docx_bytes(doc))
    assert [(b.block_id, b.text) for b in blocks] == [
        ("p:000001", "第一段"),
        ("p:000002", ""),
        ("p:000003", "第三段"),
    ]
