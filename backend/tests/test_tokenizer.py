from archive_vault.utils.tokenizer import (
    build_match_query,
    build_search_text,
    char_ngrams,
    tokenize,
)
from archive_vault.utils.highlight import compute_highlights, merge_ranges, utf16_len


def test_blank_text_has_no_tokens():
    assert tokenize("") == []
    assert tokenize("   \n\t") == []


def test_ngrams_skip_short_text():
    assert char_ngrams("a", 2) == []
    assert char_ngrams("ab", 3) == []
    assert char_ngrams("abc", 2) == ["ab", "bc"]


def test_tokens_include_bigrams_and_trigrams():
    tokens = tokenize("安全检查")
    for gram in ("安全", "全检", "检查", "安全检", "全检查"):
        assert gram in tokens
    assert len(tokens) == len(set(tokens))


def test_tokenize_is_deterministic():
    text = "关于开展安全检查的通知"
    assert tokenize(text) == tokenize(text)
    assert build_search_text(text) == " ".join(tokenize(text))


def test_every_indexed_token_is_queryable():
    text = "整改报告2024"
    query = build_match_query(text)
    terms = set(query.split(" OR "))
    for token in tokenize(text):
        assert f'"{token}"' in terms


def test_match_query_empty_for_punctuation_only():
    assert build_match_query("") == ""
    assert build_match_query("，。！") == ""


def test_match_query_escapes_double_quotes():
    terms = build_match_query('a"b').split(" OR ")
    assert '"a""b"' in terms


def test_highlight_in_utf16_units():
    assert compute_highlights("ABC测试DEF", "测试") == [(3, 5)]


def test_highlight_counts_astral_characters_twice():
    # U+1F600 takes two UTF-16 code units
    text = "\U0001F600测试"
    assert utf16_len(text) == 4
    assert compute_highlights(text, "测试") == [(2, 4)]


def test_highlight_without_match_is_empty():
    assert compute_highlights("ABCDEF", "测试") == []
    assert compute_highlights("", "测试") == []


def test_merge_ranges_merges_touching_and_caps():
    assert merge_ranges([(5, 7), (0, 2), (2, 4)], 20) == [(0, 4), (5, 7)]
    assert merge_ranges([(0, 1), (3, 4), (6, 7)], 2) == [(0, 1), (3, 4)]
