from pydantic import BaseModel
from typing import Dict


class LibraryInfo(BaseModel):
    root: str
    db_path: str
    tz_offset_hours: int
    index_counts: Dict[str, Dict[str, int]] = {}  # expected/actual rows per search index


class LibraryUpdate(BaseModel):
    root: str
