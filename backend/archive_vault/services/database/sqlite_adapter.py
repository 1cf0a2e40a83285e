"""
SQLite adapter implementing DatabaseInterface.

One database file per library (<root>/db.sqlite). Search uses four FTS5
tables, each pairing the displayable text with its token string:

    docx_blocks_fts   <- docx_blocks         (one row per block)
    main_doc_fts      <- main_doc            (four rows per document)
    attachments_fts   <- attachments         (one row per attachment)
    annotations_fts   <- annotations         (one row per annotation)

A new connection is opened for every operation and blocking work runs in
the default executor. Writers are serialized by a lock; readers are not and
see whatever the last committed transaction left (WAL mode).
"""
import asyncio
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from .base import DatabaseInterface, DateRange
from ...api.exceptions import ArchiveNotFoundError, DuplicateArchiveError
from ...core.logging_config import get_logger
from ...domain.entities import ArchiveStatus, AttachmentCandidate, FieldBlockMap, ParsedMainDocument
from ...utils.tokenizer import build_search_text

logger = get_logger(__name__)

SCHEMA_VERSION = "1"

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS archives (
  archive_id TEXT PRIMARY KEY,
  sha256 TEXT NOT NULL UNIQUE,
  original_name TEXT NOT NULL,
  source_path TEXT,
  stored_path TEXT NOT NULL,
  zip_date INTEGER NOT NULL,
  imported_at INTEGER NOT NULL,
  status TEXT NOT NULL,
  error TEXT
);
CREATE INDEX IF NOT EXISTS idx_archives_zip_date ON archives(zip_date);
CREATE INDEX IF NOT EXISTS idx_archives_imported_at ON archives(imported_at);

CREATE TABLE IF NOT EXISTS main_doc (
  archive_id TEXT PRIMARY KEY,
  instruction_no TEXT NOT NULL DEFAULT '',
  title TEXT NOT NULL DEFAULT '',
  issued_at TEXT NOT NULL DEFAULT '',
  content TEXT NOT NULL DEFAULT '',
  field_block_map_json TEXT NOT NULL DEFAULT '{}',
  FOREIGN KEY(archive_id) REFERENCES archives(archive_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS docx_blocks (
  archive_id TEXT NOT NULL,
  block_id TEXT NOT NULL,
  text TEXT NOT NULL,
  PRIMARY KEY(archive_id, block_id),
  FOREIGN KEY(archive_id) REFERENCES archives(archive_id) ON DELETE CASCADE
);

CREATE VIRTUAL TABLE IF NOT EXISTS docx_blocks_fts USING fts5(
  archive_id UNINDEXED,
  block_id UNINDEXED,
  search_text,
  source_text
);

CREATE VIRTUAL TABLE IF NOT EXISTS main_doc_fts USING fts5(
  archive_id UNINDEXED,
  field_name UNINDEXED,
  search_text,
  source_text
);

CREATE TABLE IF NOT EXISTS attachments (
  file_id TEXT PRIMARY KEY,
  archive_id TEXT NOT NULL,
  display_name TEXT NOT NULL,
  file_type TEXT NOT NULL,
  source_depth INTEGER NOT NULL,
  container_virtual_path TEXT,
  virtual_path TEXT NOT NULL,
  cached_path TEXT,
  size_bytes INTEGER,
  FOREIGN KEY(archive_id) REFERENCES archives(archive_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_attachments_archive ON attachments(archive_id);

CREATE VIRTUAL TABLE IF NOT EXISTS attachments_fts USING fts5(
  archive_id UNINDEXED,
  file_id UNINDEXED,
  search_text,
  display_name
);

CREATE TABLE IF NOT EXISTS annotations (
  annotation_id TEXT PRIMARY KEY,
  archive_id TEXT NOT NULL,
  target_kind TEXT NOT NULL,
  target_ref TEXT NOT NULL,
  locator_json TEXT NOT NULL,
  content TEXT NOT NULL,
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL,
  FOREIGN KEY(archive_id) REFERENCES archives(archive_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_annotations_archive ON annotations(archive_id);

CREATE VIRTUAL TABLE IF NOT EXISTS annotations_fts USING fts5(
  archive_id UNINDEXED,
  annotation_id UNINDEXED,
  search_text,
  source_text
);
"""

# Index tables, in the order they are checked
FTS_TABLES = ("docx_blocks_fts", "main_doc_fts", "attachments_fts", "annotations_fts")

MAIN_DOC_FIELDS = ("instruction_no", "title", "issued_at", "content")


@contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def _date_clause(column: str, date_range: DateRange):
    """SQL fragment restricting column (an archive id) to archives inside the date range."""
    if date_range is None:
        return "", []
    date_from, date_to = date_range
    return (
        f" AND {column} IN (SELECT archive_id FROM archives WHERE zip_date BETWEEN ? AND ?)",
        [
            date_from if date_from is not None else _INT64_MIN,
            date_to if date_to is not None else _INT64_MAX,
        ],
    )


def _parse_locator(raw: Optional[str]) -> Dict:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}


def _annotation_row(row: sqlite3.Row) -> Dict:
    data = dict(row)
    data["locator"] = _parse_locator(data.pop("locator_json", None))
    return data


# Index rebuilds: each replaces a whole index from its source table

def _rebuild_docx_blocks_fts(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM docx_blocks_fts")
    rows = conn.execute("SELECT archive_id, block_id, text FROM docx_blocks").fetchall()
    conn.executemany(
        "INSERT INTO docx_blocks_fts(archive_id, block_id, search_text, source_text) VALUES(?,?,?,?)",
        [(r["archive_id"], r["block_id"], build_search_text(r["text"]), r["text"]) for r in rows],
    )


def _rebuild_main_doc_fts(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM main_doc_fts")
    rows = conn.execute(
        "SELECT archive_id, instruction_no, title, issued_at, content FROM main_doc"
    ).fetchall()
    values = []
    for r in rows:
        for name in MAIN_DOC_FIELDS:
            text = r[name] or ""
            values.append((r["archive_id"], name, build_search_text(text), text))
    conn.executemany(
        "INSERT INTO main_doc_fts(archive_id, field_name, search_text, source_text) VALUES(?,?,?,?)",
        values,
    )


def _rebuild_attachments_fts(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM attachments_fts")
    rows = conn.execute("SELECT archive_id, file_id, display_name FROM attachments").fetchall()
    conn.executemany(
        "INSERT INTO attachments_fts(archive_id, file_id, search_text, display_name) VALUES(?,?,?,?)",
        [(r["archive_id"], r["file_id"], build_search_text(r["display_name"]), r["display_name"]) for r in rows],
    )


def _rebuild_annotations_fts(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM annotations_fts")
    rows = conn.execute("SELECT archive_id, annotation_id, content FROM annotations").fetchall()
    conn.executemany(
        "INSERT INTO annotations_fts(archive_id, annotation_id, search_text, source_text) VALUES(?,?,?,?)",
        [(r["archive_id"], r["annotation_id"], build_search_text(r["content"]), r["content"]) for r in rows],
    )


# index name -> (expected row count SQL, rebuild function)
_INDEX_SOURCES = {
    "docx_blocks_fts": ("SELECT COUNT(1) FROM docx_blocks", _rebuild_docx_blocks_fts),
    "main_doc_fts": (f"SELECT COUNT(1) * {len(MAIN_DOC_FIELDS)} FROM main_doc", _rebuild_main_doc_fts),
    "attachments_fts": ("SELECT COUNT(1) FROM attachments", _rebuild_attachments_fts),
    "annotations_fts": ("SELECT COUNT(1) FROM annotations", _rebuild_annotations_fts),
}


def _count_indexes(conn: sqlite3.Connection) -> Dict[str, Dict[str, int]]:
    counts = {}
    for name in FTS_TABLES:
        expected_sql, _ = _INDEX_SOURCES[name]
        expected = conn.execute(expected_sql).fetchone()[0]
        actual = conn.execute(f"SELECT COUNT(1) FROM {name}").fetchone()[0]
        counts[name] = {"expected": expected, "actual": actual}
    return counts


class SQLiteAdapter(DatabaseInterface):
    """
    SQLite database adapter with FTS5 search indexes.
    """

    def __init__(self, db_path: Path):
        """
        Initialize SQLite adapter.

        Args:
            db_path: Path of the database file (created on initialize)
        """
        self.db_path = Path(db_path)
        # Serializes writers so dedup checks and transactional writes never interleave
        self._write_lock = Lock()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    async def _run(self, fn: Callable, *args, write: bool = False):
        """Run fn(conn, *args) on a fresh connection in the default executor."""
        def _call():
            conn = self._connect()
            try:
                if write:
                    with self._write_lock:
                        return fn(conn, *args)
                return fn(conn, *args)
            finally:
                conn.close()

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _call)

    # Lifecycle operations

    async def initialize(self):
        """Create the schema and heal any index whose row count drifted."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        def _init(conn):
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
            with _transaction(conn):
                conn.execute(
                    "INSERT INTO meta(key, value) VALUES('schema_version', ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                    (SCHEMA_VERSION,),
                )

        await self._run(_init, write=True)
        rebuilt = await self.sync_indexes()
        logger.info(f"SQLite database ready at {self.db_path} (rebuilt indexes: {rebuilt or 'none'})")

    async def close(self):
        """Close database (connections are per operation, nothing to release)."""
        pass

    # Archive operations

    async def find_archive_by_sha256(self, sha256: str) -> Optional[Dict]:
        def _find(conn):
            row = conn.execute("SELECT * FROM archives WHERE sha256=?", (sha256,)).fetchone()
            return dict(row) if row else None

        return await self._run(_find)

    async def create_archive(self, archive_data: Dict) -> Dict:
        def _create(conn):
            try:
                with _transaction(conn):
                    conn.execute(
                        "INSERT INTO archives(archive_id, sha256, original_name, source_path, stored_path, "
                        "zip_date, imported_at, status, error) VALUES(?,?,?,?,?,?,?,?,NULL)",
                        (
                            archive_data["archive_id"],
                            archive_data["sha256"],
                            archive_data["original_name"],
                            archive_data.get("source_path"),
                            archive_data["stored_path"],
                            archive_data["zip_date"],
                            archive_data["imported_at"],
                            archive_data.get("status", ArchiveStatus.PROCESSING.value),
                        ),
                    )
            except sqlite3.IntegrityError as e:
                raise DuplicateArchiveError(
                    f"Archive with fingerprint {archive_data['sha256']} already exists"
                ) from e
            row = conn.execute(
                "SELECT * FROM archives WHERE archive_id=?", (archive_data["archive_id"],)
            ).fetchone()
            return dict(row)

        return await self._run(_create, write=True)

    async def get_archive(self, archive_id: str) -> Optional[Dict]:
        def _get(conn):
            row = conn.execute("SELECT * FROM archives WHERE archive_id=?", (archive_id,)).fetchone()
            return dict(row) if row else None

        return await self._run(_get)

    async def list_archives(self, date_from: Optional[int], date_to: Optional[int],
                            limit: int, offset: int) -> List[Dict]:
        def _list(conn):
            sql = (
                "SELECT a.*, m.instruction_no AS instruction_no, m.title AS title "
                "FROM archives a LEFT JOIN main_doc m ON m.archive_id = a.archive_id"
            )
            params: list = []
            if date_from is not None or date_to is not None:
                sql += " WHERE a.zip_date BETWEEN ? AND ?"
                params.extend([
                    date_from if date_from is not None else _INT64_MIN,
                    date_to if date_to is not None else _INT64_MAX,
                ])
            sql += " ORDER BY a.imported_at DESC, a.rowid DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            return [dict(r) for r in conn.execute(sql, params).fetchall()]

        return await self._run(_list)

    async def list_archive_paths(self) -> List[Dict]:
        """archive_id and stored_path of every archive (integrity checks)."""
        def _paths(conn):
            rows = conn.execute("SELECT archive_id, stored_path FROM archives ORDER BY imported_at").fetchall()
            return [dict(r) for r in rows]

        return await self._run(_paths)

    async def mark_archive_failed(self, archive_id: str, error: str) -> None:
        def _fail(conn):
            with _transaction(conn):
                conn.execute(
                    "UPDATE archives SET status=?, error=? WHERE archive_id=?",
                    (ArchiveStatus.FAILED.value, error, archive_id),
                )

        await self._run(_fail, write=True)

    async def write_extraction(self, archive_id: str, parsed: ParsedMainDocument,
                               attachments: Sequence[AttachmentCandidate]) -> None:
        fields = parsed.fields
        block_map_json = fields.block_map.to_json()

        # Tokenize outside the transaction; it is the expensive part
        block_rows = [(archive_id, b.block_id, b.text) for b in parsed.blocks]
        block_index_rows = [
            (archive_id, b.block_id, build_search_text(b.text), b.text) for b in parsed.blocks
        ]
        field_index_rows = [
            (archive_id, name, build_search_text(value), value) for name, value in fields.field_items()
        ]
        attachment_index_rows = [
            (archive_id, a.file_id, build_search_text(a.display_name), a.display_name) for a in attachments
        ]

        def _write(conn):
            with _transaction(conn):
                exists = conn.execute(
                    "SELECT 1 FROM archives WHERE archive_id=?", (archive_id,)
                ).fetchone()
                if exists is None:
                    raise ArchiveNotFoundError(f"Archive not found: {archive_id}")

                # cached extraction paths survive re-extraction for attachments that keep their id
                cached = {
                    r["file_id"]: r["cached_path"]
                    for r in conn.execute(
                        "SELECT file_id, cached_path FROM attachments "
                        "WHERE archive_id=? AND cached_path IS NOT NULL",
                        (archive_id,),
                    )
                }

                for table in ("docx_blocks_fts", "main_doc_fts", "attachments_fts"):
                    conn.execute(f"DELETE FROM {table} WHERE archive_id=?", (archive_id,))
                conn.execute("DELETE FROM docx_blocks WHERE archive_id=?", (archive_id,))
                conn.execute("DELETE FROM attachments WHERE archive_id=?", (archive_id,))

                conn.execute(
                    "INSERT INTO main_doc(archive_id, instruction_no, title, issued_at, content, "
                    "field_block_map_json) VALUES(?,?,?,?,?,?) "
                    "ON CONFLICT(archive_id) DO UPDATE SET instruction_no=excluded.instruction_no, "
                    "title=excluded.title, issued_at=excluded.issued_at, content=excluded.content, "
                    "field_block_map_json=excluded.field_block_map_json",
                    (archive_id, fields.instruction_no, fields.title, fields.issued_at,
                     fields.content, block_map_json),
                )
                conn.executemany(
                    "INSERT INTO docx_blocks(archive_id, block_id, text) VALUES(?,?,?)", block_rows
                )
                conn.executemany(
                    "INSERT INTO docx_blocks_fts(archive_id, block_id, search_text, source_text) "
                    "VALUES(?,?,?,?)",
                    block_index_rows,
                )
                conn.executemany(
                    "INSERT INTO main_doc_fts(archive_id, field_name, search_text, source_text) "
                    "VALUES(?,?,?,?)",
                    field_index_rows,
                )
                conn.executemany(
                    "INSERT INTO attachments(file_id, archive_id, display_name, file_type, source_depth, "
                    "container_virtual_path, virtual_path, cached_path, size_bytes) "
                    "VALUES(?,?,?,?,?,?,?,?,?)",
                    [
                        (a.file_id, archive_id, a.display_name, a.file_type.value, a.source_depth,
                         a.container_virtual_path, a.virtual_path, cached.get(a.file_id), a.size_bytes)
                        for a in attachments
                    ],
                )
                conn.executemany(
                    "INSERT INTO attachments_fts(archive_id, file_id, search_text, display_name) "
                    "VALUES(?,?,?,?)",
                    attachment_index_rows,
                )
                conn.execute(
                    "UPDATE archives SET status=?, error=NULL WHERE archive_id=?",
                    (ArchiveStatus.COMPLETED.value, archive_id),
                )

        await self._run(_write, write=True)
        logger.debug(
            f"Wrote extraction for {archive_id}: {len(block_rows)} blocks, {len(attachments)} attachments"
        )

    async def delete_archive(self, archive_id: str) -> bool:
        def _delete(conn):
            with _transaction(conn):
                for table in FTS_TABLES:
                    conn.execute(f"DELETE FROM {table} WHERE archive_id=?", (archive_id,))
                # foreign keys cascade main_doc, docx_blocks, attachments and annotations
                cur = conn.execute("DELETE FROM archives WHERE archive_id=?", (archive_id,))
                return cur.rowcount > 0

        return await self._run(_delete, write=True)

    # Main document operations

    async def get_main_doc(self, archive_id: str) -> Optional[Dict]:
        def _get(conn):
            row = conn.execute("SELECT * FROM main_doc WHERE archive_id=?", (archive_id,)).fetchone()
            return dict(row) if row else None

        return await self._run(_get)

    async def get_blocks(self, archive_id: str) -> List[Dict]:
        def _get(conn):
            rows = conn.execute(
                "SELECT block_id, text FROM docx_blocks WHERE archive_id=? ORDER BY block_id",
                (archive_id,),
            ).fetchall()
            return [dict(r) for r in rows]

        return await self._run(_get)

    async def get_block_texts(self, archive_id: str, block_ids: Sequence[str]) -> List[Dict]:
        def _get(conn):
            out = []
            for block_id in block_ids:
                row = conn.execute(
                    "SELECT block_id, text FROM docx_blocks WHERE archive_id=? AND block_id=?",
                    (archive_id, block_id),
                ).fetchone()
                if row is not None:
                    out.append(dict(row))
            return out

        return await self._run(_get)

    async def get_field_block_maps(self, archive_ids: Sequence[str]) -> Dict[str, FieldBlockMap]:
        def _get(conn):
            out = {}
            for archive_id in archive_ids:
                row = conn.execute(
                    "SELECT field_block_map_json FROM main_doc WHERE archive_id=?", (archive_id,)
                ).fetchone()
                if row is None:
                    continue
                block_map = FieldBlockMap.from_json(row["field_block_map_json"])
                if block_map is not None:
                    out[archive_id] = block_map
            return out

        return await self._run(_get)

    async def get_attachments(self, archive_id: str) -> List[Dict]:
        def _get(conn):
            rows = conn.execute(
                "SELECT * FROM attachments WHERE archive_id=? ORDER BY source_depth, display_name",
                (archive_id,),
            ).fetchall()
            return [dict(r) for r in rows]

        return await self._run(_get)

    # Annotation operations

    async def create_annotation(self, annotation_data: Dict) -> Dict:
        content = annotation_data["content"]
        search_text = build_search_text(content)

        def _create(conn):
            with _transaction(conn):
                conn.execute(
                    "INSERT INTO annotations(annotation_id, archive_id, target_kind, target_ref, "
                    "locator_json, content, created_at, updated_at) VALUES(?,?,?,?,?,?,?,?)",
                    (
                        annotation_data["annotation_id"],
                        annotation_data["archive_id"],
                        annotation_data["target_kind"],
                        annotation_data["target_ref"],
                        json.dumps(annotation_data.get("locator") or {}, ensure_ascii=False),
                        content,
                        annotation_data["created_at"],
                        annotation_data["updated_at"],
                    ),
                )
                conn.execute(
                    "INSERT INTO annotations_fts(archive_id, annotation_id, search_text, source_text) "
                    "VALUES(?,?,?,?)",
                    (annotation_data["archive_id"], annotation_data["annotation_id"], search_text, content),
                )
            row = conn.execute(
                "SELECT * FROM annotations WHERE annotation_id=?", (annotation_data["annotation_id"],)
            ).fetchone()
            return _annotation_row(row)

        return await self._run(_create, write=True)

    async def get_annotation(self, annotation_id: str) -> Optional[Dict]:
        def _get(conn):
            row = conn.execute(
                "SELECT * FROM annotations WHERE annotation_id=?", (annotation_id,)
            ).fetchone()
            return _annotation_row(row) if row else None

        return await self._run(_get)

    async def list_annotations(self, archive_id: str) -> List[Dict]:
        def _list(conn):
            rows = conn.execute(
                "SELECT * FROM annotations WHERE archive_id=? ORDER BY created_at DESC, rowid DESC",
                (archive_id,),
            ).fetchall()
            return [_annotation_row(r) for r in rows]

        return await self._run(_list)

    async def delete_annotation(self, annotation_id: str) -> bool:
        def _delete(conn):
            with _transaction(conn):
                conn.execute("DELETE FROM annotations_fts WHERE annotation_id=?", (annotation_id,))
                cur = conn.execute("DELETE FROM annotations WHERE annotation_id=?", (annotation_id,))
                return cur.rowcount > 0

        return await self._run(_delete, write=True)

    # Full-text search operations

    async def search_blocks(self, match_query: str, limit: int, date_range: DateRange = None) -> List[Dict]:
        def _search(conn):
            clause, params = _date_clause("archive_id", date_range)
            rows = conn.execute(
                "SELECT archive_id, block_id, source_text FROM docx_blocks_fts "
                f"WHERE docx_blocks_fts MATCH ?{clause} LIMIT ?",
                [match_query, *params, limit],
            ).fetchall()
            return [dict(r) for r in rows]

        return await self._run(_search)

    async def search_fields(self, match_query: str, limit: int, date_range: DateRange = None) -> List[Dict]:
        def _search(conn):
            clause, params = _date_clause("archive_id", date_range)
            rows = conn.execute(
                "SELECT archive_id, field_name, source_text FROM main_doc_fts "
                f"WHERE main_doc_fts MATCH ?{clause} LIMIT ?",
                [match_query, *params, limit],
            ).fetchall()
            return [dict(r) for r in rows]

        return await self._run(_search)

    async def search_attachments(self, match_query: str, limit: int, date_range: DateRange = None,
                                 file_types: Optional[Sequence[str]] = None) -> List[Dict]:
        if file_types is not None and not file_types:
            return []

        def _search(conn):
            sql = (
                "SELECT a.archive_id, a.file_id, attachments_fts.display_name AS display_name "
                "FROM attachments_fts JOIN attachments a ON a.file_id = attachments_fts.file_id "
                "WHERE attachments_fts MATCH ?"
            )
            params: list = [match_query]
            if file_types is not None:
                sql += f" AND a.file_type IN ({','.join('?' for _ in file_types)})"
                params.extend(file_types)
            clause, date_params = _date_clause("a.archive_id", date_range)
            sql += clause + " LIMIT ?"
            params.extend(date_params)
            params.append(limit)
            return [dict(r) for r in conn.execute(sql, params).fetchall()]

        return await self._run(_search)

    async def search_annotations(self, match_query: str, limit: int, date_range: DateRange = None) -> List[Dict]:
        def _search(conn):
            clause, params = _date_clause("a.archive_id", date_range)
            rows = conn.execute(
                "SELECT a.* FROM annotations_fts "
                "JOIN annotations a ON a.annotation_id = annotations_fts.annotation_id "
                f"WHERE annotations_fts MATCH ?{clause} LIMIT ?",
                [match_query, *params, limit],
            ).fetchall()
            return [_annotation_row(r) for r in rows]

        return await self._run(_search)

    # Index maintenance

    async def index_counts(self) -> Dict[str, Dict[str, int]]:
        return await self._run(_count_indexes)

    async def sync_indexes(self) -> List[str]:
        def _sync(conn):
            rebuilt = []
            with _transaction(conn):
                for name, counts in _count_indexes(conn).items():
                    if counts["expected"] == counts["actual"]:
                        continue
                    logger.warning(
                        f"Index {name} out of sync ({counts['actual']} rows, "
                        f"expected {counts['expected']}), rebuilding"
                    )
                    _, rebuild = _INDEX_SOURCES[name]
                    rebuild(conn)
                    rebuilt.append(name)
            return rebuilt

        return await self._run(_sync, write=True)
