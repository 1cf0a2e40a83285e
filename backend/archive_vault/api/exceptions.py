"""
Custom exceptions for API layer.
Separates business exceptions from HTTP exceptions.
"""
from fastapi import HTTPException, status

class ArchiveNotFoundError(Exception):
    """Raised when an archive id does not exist."""
    pass

class DuplicateArchiveError(Exception):
    """Raised when an archive with the same fingerprint already exists."""
    pass

class ArchiveFormatError(Exception):
    """Raised when a ZIP archive or one of its entries cannot be read."""
    pass

class MainDocumentNotFoundError(Exception):
    """Raised when an archive contains no .docx main document."""
    pass

class StoredFileMissingError(Exception):
    """Raised when the stored bytes of an archive are missing from the library."""
    pass

class AnnotationNotFoundError(Exception):
    """Raised when annotation is not found."""
    pass

class AnnotationValidationError(Exception):
    """Raised when annotation content is invalid."""
    pass

class LibraryRootError(Exception):
    """Raised when the library root cannot be used."""
    pass

def describe_error(e: BaseException) -> str:
    """
    Flatten an exception and its causes into one human-readable message.

    Used for the error text stored on failed archives.
    """
    parts = []
    current = e
    while current is not None and len(parts) < 5:
        message = str(current) or current.__class__.__name__
        parts.append(f"{current.__class__.__name__}: {message}")
        current = current.__cause__ or current.__context__
    return " <- ".join(parts)

def handle_business_exception(e: Exception) -> HTTPException:
    """
    Convert business exceptions to HTTP exceptions.
    This keeps business logic clean of HTTP concerns.
    """
    if isinstance(e, (ArchiveNotFoundError, AnnotationNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    elif isinstance(e, DuplicateArchiveError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    elif isinstance(e, (ArchiveFormatError, MainDocumentNotFoundError, LibraryRootError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    elif isinstance(e, AnnotationValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    elif isinstance(e, StoredFileMissingError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    else:
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
