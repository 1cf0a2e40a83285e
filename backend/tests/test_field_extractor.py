from archive_vault.domain.entities import DocBlock
from archive_vault.domain.value_objects import make_block_id
from archive_vault.services.field_extractor import extract_fields, find_labels


def blocks(*texts):
    return [DocBlock(block_id=make_block_id(i), text=t) for i, t in enumerate(texts)]


def test_one_label_per_paragraph():
    fields = extract_fields(blocks("指令编号：A-001", "标题：测试", "内容：第一段", "第二段"))
    assert fields.instruction_no == "A-001"
    assert fields.title == "测试"
    assert fields.content == "第一段\n第二段"
    assert fields.block_map.content == ["p:000003", "p:000004"]
    assert fields.block_map.content_anchor == "p:000003"
    assert fields.block_map.instruction_no == "p:000001"


def test_several_labels_in_one_paragraph():
    fields = extract_fields(blocks("指令编号：B-7 指令标题：检查通知 下发时间：2024-01-01 指令内容：立即执行"))
    assert fields.instruction_no == "B-7"
    assert fields.title == "检查通知"
    assert fields.issued_at == "2024-01-01"
    assert fields.content == "立即执行"


def test_ascii_colon_and_full_width_space():
    fields = extract_fields(blocks("编号:　C-9　", "标题 ： 通知"))
    assert fields.instruction_no == "C-9"
    assert fields.title == "通知"


def test_label_without_colon_is_not_a_label():
    assert find_labels("标题 测试") == []
    fields = extract_fields(blocks("标题 测试"))
    assert fields.title == ""


def test_pending_label_takes_next_non_empty_block():
    fields = extract_fields(blocks("指令标题：", "", "关于防汛工作的通知", "内容：正文"))
    assert fields.title == "关于防汛工作的通知"
    # provenance points at the label's block
    assert fields.block_map.title == "p:000001"
    assert fields.content == "正文"


def test_new_label_cancels_pending_one():
    fields = extract_fields(blocks("指令标题：", "编号：X-1", "不是标题"))
    assert fields.title == ""
    assert fields.instruction_no == "X-1"


def test_first_writer_wins():
    fields = extract_fields(blocks("标题：第一个", "标题：第二个"))
    assert fields.title == "第一个"


def test_header_label_stops_collection():
    fields = extract_fields(blocks("内容：甲", "乙", "编号：Z-1", "丙"))
    assert fields.content == "甲\n乙"
    assert fields.block_map.content == ["p:000001", "p:000002"]
    assert fields.instruction_no == ""


def test_body_keeps_non_header_labels_verbatim():
    fields = extract_fields(blocks("内容：", "注意事项：按时完成", "  缩进段落"))
    assert fields.content == "注意事项：按时完成\n  缩进段落"


def test_no_content_label():
    fields = extract_fields(blocks("编号：Q-1", "随便一段"))
    assert fields.content == ""
    assert fields.block_map.content == []
    assert fields.block_map.content_anchor is None
