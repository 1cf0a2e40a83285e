"""
Index tokenizer - pure functions shared by indexing and querying.

A token set is the union of:
- jieba word segmentation (precise mode, no HMM)
- character bigrams
- character trigrams

Indexed text and query text go through the same function, so every token
written to an index row can be produced again by a query.
"""
import logging
from typing import Iterable, List

import jieba

from ..core.logging_config import get_logger

logger = get_logger(__name__)

# jieba prints dictionary-loading chatter through its own logger
jieba.setLogLevel(logging.WARNING)

TOKEN_SEPARATOR = " "


def segment_words(text: str) -> List[str]:
    """Segment text into words with jieba, dropping whitespace-only pieces."""
    words = []
    for word in jieba.cut(text, cut_all=False, HMM=False):
        word = word.strip()
        if word:
            words.append(word)
    return words


def char_ngrams(text: str, n: int) -> List[str]:
    """
    Sliding window of n characters over text.

    Args:
        text: Source text
        n: Window length in Unicode code points

    Returns:
        List of n-grams in order (empty when text is shorter than n)
    """
    if len(text) < n:
        return []
    return [text[i:i + n] for i in range(len(text) - n + 1)]


def _ordered_unique(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def _raw_tokens(text: str) -> List[str]:
    tokens = segment_words(text)
    tokens.extend(char_ngrams(text, 2))
    tokens.extend(char_ngrams(text, 3))
    return [t for t in tokens if t.strip()]


def tokenize(text: str) -> List[str]:
    """
    Tokenize text into an ordered set of index tokens.

    Args:
        text: Any text (document paragraph, field value, file name, query)

    Returns:
        Tokens in first-seen order without duplicates; empty for blank input
    """
    if not text:
        return []
    t = text.strip()
    if not t:
        return []
    return _ordered_unique(_raw_tokens(t))


def build_search_text(text: str) -> str:
    """Build the token string persisted next to display text in an index row."""
    return TOKEN_SEPARATOR.join(tokenize(text))


def _escape_match_token(token: str) -> str:
    # FTS5 string literal: double quotes are escaped by doubling
    return '"' + token.replace('"', '""') + '"'


def build_match_query(query: str) -> str:
    """
    Build an FTS5 MATCH expression that ORs every query token.

    Tokens without a single letter or digit are dropped because the index
    tokenizer treats them as separators and they could never match.

    Args:
        query: Raw user query

    Returns:
        MATCH expression, or an empty string when nothing is searchable
    """
    tokens = sorted(t for t in tokenize(query) if any(ch.isalnum() for ch in t))
    return " OR ".join(_escape_match_token(t) for t in tokens)
