"""
Value Objects - Immutable objects that represent domain concepts.
These have no identity and are compared by value.
"""
from typing import NewType

# Value objects for type safety and domain clarity
ArchiveId = NewType("ArchiveId", str)
Fingerprint = NewType("Fingerprint", str)  # SHA-256 hex of raw archive bytes
BlockId = NewType("BlockId", str)  # "p:000001" style, encodes paragraph order
FileId = NewType("FileId", str)  # stable attachment id

BLOCK_ID_PREFIX = "p:"


def make_block_id(index: int) -> BlockId:
    """Block id for the paragraph at zero-based position index."""
    return BlockId(f"{BLOCK_ID_PREFIX}{index + 1:06d}")
