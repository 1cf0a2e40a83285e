"""
Highlight range computation for search results.

Ranges are [start, end) offsets in UTF-16 code units, the unit used by the
text renderers that display results.
"""
from typing import List, Tuple

from .tokenizer import char_ngrams, segment_words

HighlightRange = Tuple[int, int]


def utf16_len(text: str) -> int:
    """Number of UTF-16 code units needed to encode text."""
    return len(text.encode("utf-16-le")) // 2


def _utf16_offsets(text: str) -> List[int]:
    # offsets[i] is the UTF-16 position of code point i; offsets[len(text)] is the total
    offsets = [0] * (len(text) + 1)
    position = 0
    for i, ch in enumerate(text):
        offsets[i] = position
        position += 2 if ord(ch) > 0xFFFF else 1
    offsets[len(text)] = position
    return offsets


def highlight_needles(query: str) -> List[str]:
    """
    Needles searched for in display text.

    The query with all whitespace removed, then its segmented words and its
    bigrams and trigrams, sorted and de-duplicated.
    """
    q = query.strip()
    if not q:
        return []
    needles = []
    collapsed = "".join(q.split())
    if collapsed:
        needles.append(collapsed)
    needles.extend(segment_words(q))
    needles.extend(char_ngrams(q, 2))
    needles.extend(char_ngrams(q, 3))
    return sorted(set(n for n in needles if n.strip()))


def merge_ranges(ranges: List[HighlightRange], max_ranges: int) -> List[HighlightRange]:
    """Sort ranges, merge overlapping or touching ones and keep the first max_ranges."""
    if not ranges:
        return []
    ordered = sorted(ranges)
    merged = []
    cur_start, cur_end = ordered[0]
    for start, end in ordered[1:]:
        if start <= cur_end:
            cur_end = max(cur_end, end)
        else:
            merged.append((cur_start, cur_end))
            cur_start, cur_end = start, end
    merged.append((cur_start, cur_end))
    return merged[:max_ranges]


def compute_highlights(text: str, query: str, max_ranges: int = 20) -> List[HighlightRange]:
    """
    Locate query matches inside display text.

    Args:
        text: Original display text of a hit
        query: Raw user query
        max_ranges: Cap on merged ranges returned

    Returns:
        Merged [start, end) ranges in UTF-16 code units
    """
    if not text:
        return []
    needles = highlight_needles(query)
    if not needles:
        return []

    offsets = _utf16_offsets(text)
    ranges = []
    for needle in needles:
        # non-overlapping occurrences, scanning left to right
        pos = text.find(needle)
        while pos != -1:
            end = pos + len(needle)
            start16, end16 = offsets[pos], offsets[end]
            if start16 < end16:
                ranges.append((start16, end16))
            pos = text.find(needle, end)
    return merge_ranges(ranges, max_ranges)


def highlight_span(ranges: List[HighlightRange]) -> int:
    """Total highlighted width, used as a relevance proxy when ranking."""
    return sum(end - start for start, end in ranges)
