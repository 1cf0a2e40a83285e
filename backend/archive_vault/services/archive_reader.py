"""
ZIP archive reading for ingestion.

Handles everything the pipeline needs to know about an archive's inner
structure:
- decoding entry names written by Windows tools (GBK) or modern tools (UTF-8)
- identifying the main .docx document
- reading entries by name, with a fallback scan by index
- enumerating attachments, expanding nested ZIPs exactly one level deep
"""
import hashlib
import io
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, List, Optional, Union

from ..api.exceptions import ArchiveFormatError, MainDocumentNotFoundError
from ..core.config import MAX_NESTED_ZIP_BYTES, MAX_ZIP_ENTRIES
from ..core.logging_config import get_logger
from ..domain.entities import AttachmentCandidate, FileType

logger = get_logger(__name__)

MAIN_DOCUMENT_EXTENSION = ".docx"

# Nested ZIPs found at this depth are recorded but never opened
MAX_EXPANSION_DEPTH = 1

# Python sets this flag bit when the entry name is stored as UTF-8
_UTF8_NAME_FLAG = 0x800

_EXTENSION_TYPES = {
    ".pdf": FileType.PDF,
    ".xlsx": FileType.EXCEL,
    ".xls": FileType.EXCEL,
    ".png": FileType.IMAGE,
    ".jpg": FileType.IMAGE,
    ".jpeg": FileType.IMAGE,
    ".gif": FileType.IMAGE,
    ".bmp": FileType.IMAGE,
    ".mp4": FileType.VIDEO,
    ".mov": FileType.VIDEO,
    ".avi": FileType.VIDEO,
    ".wmv": FileType.VIDEO,
    ".docx": FileType.DOCX_OTHER,
    ".zip": FileType.ZIP_CHILD,
}


@dataclass
class ZipEntry:
    """One non-directory entry of an archive."""
    internal_name: str  # name as stored in the container, used for lookups
    decoded_name: str  # best-effort human readable name
    size_bytes: int
    info: zipfile.ZipInfo


def raw_entry_name(info: zipfile.ZipInfo) -> bytes:
    """Recover the raw name bytes zipfile decoded into info.filename."""
    if info.flag_bits & _UTF8_NAME_FLAG:
        return info.filename.encode("utf-8")
    try:
        return info.filename.encode("cp437")
    except UnicodeEncodeError:
        return info.filename.encode("utf-8")


def decode_entry_name(raw: bytes, fallback: str) -> str:
    """
    Decode a ZIP entry name.

    UTF-8 first (rejecting results containing replacement characters),
    then GBK, then the name the container reported.
    """
    try:
        text = raw.decode("utf-8")
        if "\ufffd" not in text and "\u25a1" not in text:
            return text
    except UnicodeDecodeError:
        pass
    try:
        return raw.decode("gbk")
    except UnicodeDecodeError:
        return fallback


def basename(path: str) -> str:
    return path.replace("\\", "/").split("/")[-1]


def file_type_from_name(name: str) -> FileType:
    """Classify an attachment by extension (case-insensitive)."""
    suffix = PurePosixPath(name.replace("\\", "/").lower()).suffix
    return _EXTENSION_TYPES.get(suffix, FileType.OTHER)


def should_skip_entry(decoded: str, internal: str) -> bool:
    """True for macOS metadata: __MACOSX/ trees, AppleDouble ._ files and .DS_Store."""
    d = decoded.replace("\\", "/").lower()
    i = internal.replace("\\", "/").lower()
    if d.startswith("__macosx/") or i.startswith("__macosx/"):
        return True
    base = basename(d)
    return base.startswith("._") or base == ".ds_store"


def stable_file_id(archive_id: str, source_depth: int,
                   container_virtual_path: Optional[str], virtual_path: str) -> str:
    """
    Deterministic attachment id.

    SHA-256 over "archive_id|depth|container|virtual_path"; the same logical
    file always gets the same id regardless of entry order.
    """
    hasher = hashlib.sha256()
    hasher.update(archive_id.encode("utf-8"))
    hasher.update(b"|")
    hasher.update(str(source_depth).encode("utf-8"))
    hasher.update(b"|")
    if container_virtual_path is not None:
        hasher.update(container_virtual_path.encode("utf-8"))
    hasher.update(b"|")
    hasher.update(virtual_path.encode("utf-8"))
    return hasher.hexdigest()


def _stem(name: str) -> str:
    return PurePosixPath(basename(name)).stem.lower()


class ArchiveReader:
    """
    Read-only view over one ZIP archive.

    Usable as a context manager; every zipfile failure is reported as
    ArchiveFormatError.
    """

    def __init__(self, source: Union[str, Path, BinaryIO], label: str = ""):
        self.label = label or str(source)
        try:
            self._zip = zipfile.ZipFile(source)
        except (zipfile.BadZipFile, OSError, ValueError) as e:
            raise ArchiveFormatError(f"Not a readable ZIP archive: {self.label}: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self._zip.close()

    def entries(self) -> List[ZipEntry]:
        """All non-directory entries in container order."""
        out = []
        for info in self._zip.infolist():
            if info.is_dir():
                continue
            decoded = decode_entry_name(raw_entry_name(info), info.filename)
            out.append(ZipEntry(
                internal_name=info.filename,
                decoded_name=decoded,
                size_bytes=info.file_size,
                info=info,
            ))
        return out

    def identify_main_document(self, archive_filename: str) -> str:
        """
        Pick the main .docx entry.

        Preference: entry stem equal to the archive's stem, then either stem
        containing the other, then the first .docx entry.

        Returns:
            Internal entry name of the main document

        Raises:
            MainDocumentNotFoundError: If the archive holds no .docx entry
        """
        candidates = [
            e for e in self.entries()
            if e.decoded_name.lower().endswith(MAIN_DOCUMENT_EXTENSION)
            and not should_skip_entry(e.decoded_name, e.internal_name)
        ]
        if not candidates:
            raise MainDocumentNotFoundError(f"No .docx document found in {self.label}")

        archive_stem = PurePosixPath(basename(archive_filename)).stem.lower()
        for entry in candidates:
            if _stem(entry.decoded_name) == archive_stem:
                return entry.internal_name
        for entry in candidates:
            stem = _stem(entry.decoded_name)
            if stem in archive_stem or archive_stem in stem:
                return entry.internal_name
        return candidates[0].internal_name

    def read_entry(self, internal_name: str) -> bytes:
        """
        Read an entry's bytes by exact name, falling back to a scan by index.

        Raises:
            ArchiveFormatError: If the entry is missing or unreadable
        """
        try:
            try:
                return self._zip.read(internal_name)
            except KeyError:
                for info in self._zip.infolist():
                    if info.filename == internal_name:
                        return self._zip.read(info)
        except (zipfile.BadZipFile, OSError, RuntimeError, NotImplementedError, EOFError) as e:
            raise ArchiveFormatError(f"Cannot read entry {internal_name!r} in {self.label}: {e}") from e
        raise ArchiveFormatError(f"Entry {internal_name!r} not found in {self.label}")

    def enumerate_attachments(self, archive_id: str, main_entry: Optional[str]) -> List[AttachmentCandidate]:
        """
        List every attachment of the archive.

        Top-level entries become depth-0 attachments (nested ZIPs included
        as files). Each nested ZIP is then opened and its entries become
        depth-1 attachments displayed as "[<zip name>]/<file name>".

        Args:
            archive_id: Owning archive id, part of every stable file id
            main_entry: Internal name of the main document, excluded from the list

        Returns:
            Attachment candidates, depth-0 first
        """
        return self._walk(archive_id, depth=0, container=None, display_prefix=None,
                          exclude=main_entry)

    def _walk(self, archive_id: str, depth: int, container: Optional[str],
              display_prefix: Optional[str], exclude: Optional[str]) -> List[AttachmentCandidate]:
        out = []
        nested = []
        entries = self.entries()
        if len(entries) > MAX_ZIP_ENTRIES:
            logger.warning(
                f"{self.label}: {len(entries)} entries, only the first {MAX_ZIP_ENTRIES} are enumerated"
            )
            entries = entries[:MAX_ZIP_ENTRIES]

        for entry in entries:
            if should_skip_entry(entry.decoded_name, entry.internal_name):
                continue
            if exclude is not None and entry.internal_name == exclude:
                continue

            file_name = basename(entry.decoded_name)
            display_name = f"[{display_prefix}]/{file_name}" if display_prefix else file_name
            file_type = file_type_from_name(entry.decoded_name)
            out.append(AttachmentCandidate(
                file_id=stable_file_id(archive_id, depth, container, entry.internal_name),
                display_name=display_name,
                file_type=file_type,
                source_depth=depth,
                container_virtual_path=container,
                virtual_path=entry.internal_name,
                size_bytes=entry.size_bytes,
            ))
            if file_type == FileType.ZIP_CHILD:
                nested.append((entry, file_name))

        if depth >= MAX_EXPANSION_DEPTH:
            return out

        for entry, file_name in nested:
            if entry.size_bytes > MAX_NESTED_ZIP_BYTES:
                logger.warning(
                    f"{self.label}: nested ZIP {entry.decoded_name!r} is {entry.size_bytes} bytes, not expanded"
                )
                continue
            data = self.read_entry(entry.internal_name)
            with ArchiveReader(io.BytesIO(data), label=f"{self.label}!{entry.decoded_name}") as child:
                out.extend(child._walk(
                    archive_id,
                    depth=depth + 1,
                    container=entry.internal_name,
                    display_prefix=file_name,
                    exclude=None,
                ))
        return out
