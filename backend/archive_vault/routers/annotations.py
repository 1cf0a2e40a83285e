"""
Annotations Router - User notes on archives.
"""
from fastapi import APIRouter
from typing import List

from .dependencies import get_annotation_service
from ..api.exceptions import (
    AnnotationNotFoundError,
    AnnotationValidationError,
    ArchiveNotFoundError,
    handle_business_exception,
)
from ..models.annotation import Annotation, AnnotationCreate

router = APIRouter()


@router.post("/annotations", response_model=Annotation, status_code=201)
async def create_annotation(request: AnnotationCreate):
    try:
        return await get_annotation_service().create_annotation(
            archive_id=request.archive_id,
            target_kind=request.target_kind,
            target_ref=request.target_ref,
            locator=request.locator,
            content=request.content,
        )
    except (AnnotationValidationError, ArchiveNotFoundError) as e:
        raise handle_business_exception(e)


@router.get("/archives/{archive_id}/annotations", response_model=List[Annotation])
async def list_annotations(archive_id: str):
    try:
        return await get_annotation_service().list_annotations(archive_id)
    except ArchiveNotFoundError as e:
        raise handle_business_exception(e)


@router.delete("/annotations/{annotation_id}")
async def delete_annotation(annotation_id: str):
    try:
        await get_annotation_service().delete_annotation(annotation_id)
    except AnnotationNotFoundError as e:
        raise handle_business_exception(e)
    return {"message": "Annotation deleted successfully", "annotation_id": annotation_id}
