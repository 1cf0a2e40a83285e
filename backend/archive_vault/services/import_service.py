"""
Import Service - Ingests ZIP archives into the library.

One archive goes through six steps:
1. Fingerprint the raw bytes (SHA-256); a known fingerprint is skipped
2. Derive the archive date from the filename or import day
3. Copy the bytes to store/<archive_id>/<name> and insert the archive row
   with status "processing"
4. Identify and parse the main .docx document into blocks and fields
5. Enumerate attachments (nested ZIPs expanded one level)
6. Write everything in one transaction and mark the archive "completed"

Any failure after step 3 leaves the archive row in place with status
"failed" and a readable error; a failure in one archive never stops the
rest of a batch. Batches are processed strictly one archive at a time.

Example Usage:
    service = ImportService(library, db, storage)
    summary = await service.import_batch([Path("a.zip"), Path("b.zip")])
"""
import asyncio
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .archive_reader import ArchiveReader
from .database.base import DatabaseInterface
from .field_extractor import extract_fields
from .progress import (
    ProgressEvent,
    ProgressObserver,
    emit,
    import_position,
    import_total,
)
from .storage.base import FileStorageInterface
from .text_extractors import DOCXBlockExtractor
from ..api.exceptions import (
    ArchiveNotFoundError,
    DuplicateArchiveError,
    StoredFileMissingError,
    describe_error,
)
from ..core.library import STORE_DIRNAME, Library
from ..core.logging_config import get_logger
from ..domain.entities import AttachmentCandidate, ParsedMainDocument
from ..utils.archive_date import derive_archive_date
from ..utils.checksum import calculate_file_checksum
from ..utils.file_scan import collect_zip_files

logger = get_logger(__name__)

IMPORTED = "imported"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class ImportOutcome:
    """Result of importing one source file."""
    source_path: str
    status: str  # imported | skipped | failed
    archive: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None


@dataclass
class ImportSummary:
    """Running counters of a batch import."""
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    archives: List[Dict[str, Any]] = field(default_factory=list)
    failures: List[Dict[str, str]] = field(default_factory=list)

    def record(self, outcome: ImportOutcome) -> None:
        if outcome.status == IMPORTED:
            self.imported += 1
            if outcome.archive is not None:
                self.archives.append(outcome.archive)
        elif outcome.status == SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            self.failures.append({"path": outcome.source_path, "error": outcome.reason or ""})

    def message(self) -> str:
        return f"imported {self.imported}, skipped {self.skipped}, failed {self.failed}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "archives": list(self.archives),
            "failures": list(self.failures),
        }


def resolve_sources(paths: Iterable[Union[str, Path]], directory: Optional[Union[str, Path]] = None) -> List[Path]:
    """
    Expand import sources into a list of ZIP paths.

    Plain paths are kept as given (in order); directories, and the optional
    directory argument, are scanned recursively for .zip files.
    """
    sources: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            sources.extend(collect_zip_files(path))
        else:
            sources.append(path)
    if directory is not None:
        sources.extend(collect_zip_files(Path(directory)))
    return sources


class ImportService:
    """
    Service for importing and re-extracting archives.

    Attributes:
        library: Library handle (timezone for archive dates)
        db: Database adapter
        storage: File storage rooted at the library root
        extractor: Block extractor for main documents
    """

    def __init__(self, library: Library, db: DatabaseInterface, storage: FileStorageInterface,
                 extractor: Optional[DOCXBlockExtractor] = None):
        self.library = library
        self.db = db
        self.storage = storage
        self.extractor = extractor or DOCXBlockExtractor()

    # Blocking helpers, run in the default executor

    def _parse_main_document(self, archive_path: Path, original_name: str) -> ParsedMainDocument:
        with ArchiveReader(archive_path, label=original_name) as reader:
            entry_name = reader.identify_main_document(original_name)
            data = reader.read_entry(entry_name)
        blocks = self.extractor.extract_blocks(data)
        fields = extract_fields(blocks)
        return ParsedMainDocument(entry_name=entry_name, blocks=blocks, fields=fields)

    def _enumerate_attachments(self, archive_path: Path, original_name: str, archive_id: str,
                               main_entry: str) -> List[AttachmentCandidate]:
        with ArchiveReader(archive_path, label=original_name) as reader:
            return reader.enumerate_attachments(archive_id, main_entry)

    async def _extract_and_write(self, archive_id: str, archive_path: Path, original_name: str,
                                 step) -> Tuple[ParsedMainDocument, List[AttachmentCandidate]]:
        loop = asyncio.get_event_loop()

        step(3, "parse", f"Parsing main document of {original_name}")
        parsed = await loop.run_in_executor(None, self._parse_main_document, archive_path, original_name)

        step(4, "attachments", f"Enumerating attachments of {original_name}")
        attachments = await loop.run_in_executor(
            None, self._enumerate_attachments, archive_path, original_name, archive_id, parsed.entry_name
        )

        step(5, "write", f"Writing {original_name}")
        await self.db.write_extraction(archive_id, parsed, attachments)
        return parsed, attachments

    async def import_archive(
        self,
        source_path: Union[str, Path],
        observer: Optional[ProgressObserver] = None,
        archive_index: int = 0,
        archive_count: int = 1,
    ) -> ImportOutcome:
        """
        Import one ZIP archive.

        Args:
            source_path: Path of the ZIP file to import
            observer: Optional progress observer
            archive_index: Position of this archive in its batch (progress only)
            archive_count: Batch size (progress only)

        Returns:
            ImportOutcome; this method reports failures, it does not raise them
        """
        source = Path(source_path)
        original_name = source.name
        total = import_total(archive_count)

        def step(index: int, name: str, message: str) -> None:
            emit(observer, ProgressEvent(
                operation="import",
                current=import_position(archive_index, index),
                total=total,
                step=name,
                message=message,
            ))

        loop = asyncio.get_event_loop()
        archive_id: Optional[str] = None
        try:
            step(0, "hash", f"Fingerprinting {original_name}")
            if not source.is_file():
                raise FileNotFoundError(f"Source file not found: {source}")
            sha256 = await loop.run_in_executor(None, calculate_file_checksum, source)
            existing = await self.db.find_archive_by_sha256(sha256)
            if existing is not None:
                logger.info(f"Skipped {original_name}: same content as archive {existing['archive_id']}")
                return ImportOutcome(
                    source_path=str(source),
                    status=SKIPPED,
                    archive=existing,
                    reason=f"duplicate of {existing['archive_id']}",
                )

            step(1, "date", f"Dating {original_name}")
            imported_at = int(time.time())
            zip_date = derive_archive_date(original_name, imported_at, self.library.tz)

            step(2, "store", f"Storing {original_name}")
            new_id = str(uuid.uuid4())
            stored_path = f"{STORE_DIRNAME}/{new_id}/{original_name}"
            await self.storage.save_file(source, stored_path)
            try:
                await self.db.create_archive({
                    "archive_id": new_id,
                    "sha256": sha256,
                    "original_name": original_name,
                    "source_path": str(source),
                    "stored_path": stored_path,
                    "zip_date": zip_date,
                    "imported_at": imported_at,
                })
            except DuplicateArchiveError:
                await self.storage.delete_dir(f"{STORE_DIRNAME}/{new_id}")
                logger.info(f"Skipped {original_name}: fingerprint registered concurrently")
                existing = await self.db.find_archive_by_sha256(sha256)
                return ImportOutcome(source_path=str(source), status=SKIPPED, archive=existing,
                                     reason="duplicate")
            except Exception:
                # no row points at the copy
                await self.storage.delete_dir(f"{STORE_DIRNAME}/{new_id}")
                raise
            archive_id = new_id

            parsed, attachments = await self._extract_and_write(
                archive_id, self.storage.resolve_path(stored_path), original_name, step
            )
            archive = await self.db.get_archive(archive_id)
            logger.info(
                f"Imported {original_name} as {archive_id}: {len(parsed.blocks)} blocks, "
                f"{len(attachments)} attachments"
            )
            return ImportOutcome(source_path=str(source), status=IMPORTED, archive=archive)

        except Exception as e:
            reason = describe_error(e)
            logger.error(f"Failed to import {original_name}: {reason}", exc_info=True)
            if archive_id is not None:
                await self.db.mark_archive_failed(archive_id, reason)
            return ImportOutcome(source_path=str(source), status=FAILED, reason=reason)

    async def import_batch(
        self,
        paths: Sequence[Union[str, Path]],
        observer: Optional[ProgressObserver] = None,
    ) -> ImportSummary:
        """
        Import archives one after another.

        Args:
            paths: ZIP files to import, in order
            observer: Optional progress observer

        Returns:
            ImportSummary with counters, created archives and per-file failures
        """
        summary = ImportSummary()
        count = len(paths)
        logger.info(f"Starting import of {count} archive(s)")

        for index, path in enumerate(paths):
            outcome = await self.import_archive(path, observer=observer, archive_index=index,
                                                archive_count=count)
            summary.record(outcome)

        emit(observer, ProgressEvent.complete("import", import_total(count), summary.message()))
        logger.info(f"Import finished: {summary.message()}")
        return summary

    async def reextract(self, archive_id: str) -> Dict[str, Any]:
        """
        Re-derive main document, blocks and attachments from stored bytes.

        All rows derived from the archive are replaced in one transaction. If
        anything fails the previous rows stay untouched and the error is
        raised to the caller.

        Args:
            archive_id: Archive to re-extract

        Returns:
            Refreshed archive row

        Raises:
            ArchiveNotFoundError: If the archive does not exist
            StoredFileMissingError: If the stored ZIP is gone
        """
        archive = await self.db.get_archive(archive_id)
        if archive is None:
            raise ArchiveNotFoundError(f"Archive not found: {archive_id}")

        stored_path = archive["stored_path"]
        if not await self.storage.file_exists(stored_path):
            raise StoredFileMissingError(f"Stored file missing for archive {archive_id}: {stored_path}")

        def step(index: int, name: str, message: str) -> None:
            logger.debug(f"Re-extract {archive_id}: {name}")

        parsed, attachments = await self._extract_and_write(
            archive_id, self.storage.resolve_path(stored_path), archive["original_name"], step
        )
        logger.info(
            f"Re-extracted {archive_id}: {len(parsed.blocks)} blocks, {len(attachments)} attachments"
        )
        return await self.db.get_archive(archive_id)
