"""
Error Handling Middleware

Last-resort error handling and response formatting.
"""
import os
import traceback
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from fastapi import status
from ...core.logging_config import get_logger
from ...api.exceptions import (
    AnnotationNotFoundError,
    AnnotationValidationError,
    ArchiveFormatError,
    ArchiveNotFoundError,
    DuplicateArchiveError,
    LibraryRootError,
    MainDocumentNotFoundError,
    StoredFileMissingError,
    handle_business_exception,
)

logger = get_logger(__name__)

BUSINESS_EXCEPTIONS = (
    ArchiveNotFoundError,
    AnnotationNotFoundError,
    DuplicateArchiveError,
    ArchiveFormatError,
    MainDocumentNotFoundError,
    StoredFileMissingError,
    AnnotationValidationError,
    LibraryRootError,
)


def _error_response(request: Request, status_code: int, detail, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": detail,
            "status_code": status_code,
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
            **extra,
        }
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that turns exceptions escaping a route into JSON responses.

    - Business exceptions -> their mapped HTTP status
    - Unexpected exceptions -> 500 (with details outside production)
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except BUSINESS_EXCEPTIONS as e:
            http_exception = handle_business_exception(e)
            logger.warning(
                f"Business exception for {request.method} {request.url.path}: {http_exception.detail}"
            )
            return _error_response(request, http_exception.status_code, http_exception.detail)

        except Exception as e:
            is_development = os.getenv("ENVIRONMENT", "development") != "production"
            error_detail = str(e) if is_development else "Internal server error"
            error_traceback = traceback.format_exc() if is_development else None

            logger.error(f"Unexpected error for {request.method} {request.url.path}: {e}", exc_info=True)

            return _error_response(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_detail,
                traceback=error_traceback,
            )
