"""
Utility functions - Pure functions with no dependencies.
These can be used across all layers.
"""
from .checksum import calculate_file_checksum
from .archive_date import derive_archive_date, parse_date_from_name
from .file_scan import collect_zip_files
from .tokenizer import tokenize, build_search_text, build_match_query
from .highlight import compute_highlights

__all__ = [
    "calculate_file_checksum",
    "derive_archive_date",
    "parse_date_from_name",
    "collect_zip_files",
    "tokenize",
    "build_search_text",
    "build_match_query",
    "compute_highlights",
]
