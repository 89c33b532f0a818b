import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, Query, UploadFile, status
from pydantic import ValidationError as PydanticValidationError

from papervault.api.v1 import dependencies as deps
from papervault.core.config import Settings
from papervault.core.exceptions import (
    AlreadyProcessed,
    DuplicateSubmission,
    NotFound,
    PaperVaultError,
    StorageFailure,
    ValidationError,
)
from papervault.models.paper import (
    ActionResponse,
    AdminPaperItem,
    ApprovedFilter,
    ApprovedPaperItem,
    PaperMetadata,
    UploadResponse,
)
from papervault.repositories.blob_store import PDF_CONTENT_TYPE
from papervault.services.moderation_service import ModerationService

router = APIRouter()
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("category", "subject", "semester", "year")
READ_CHUNK_SIZE = 1024 * 1024


def to_http_exception(exc: Exception) -> HTTPException:
    """Maps a domain error onto the HTTP error a client should see."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, (DuplicateSubmission, AlreadyProcessed)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    if isinstance(exc, StorageFailure):
        # internal detail is in the logs only
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Storage operation failed. Please try again later.",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An internal server error occurred.",
    )


async def read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    """Reads the upload, refusing anything over `max_bytes`."""
    chunks = []
    total = 0
    while True:
        chunk = await upload.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            limit_mb = max_bytes / (1024 * 1024)
            raise ValidationError(f"File exceeds maximum size of {limit_mb:g} MB")
        chunks.append(chunk)
    return b"".join(chunks)


# --- Public endpoints ---


@router.post("", response_model=UploadResponse)
async def upload_paper(
    paper: Optional[UploadFile] = File(default=None),
    category: Optional[str] = Form(default=None),
    subject: Optional[str] = Form(default=None),
    semester: Optional[str] = Form(default=None),
    year: Optional[str] = Form(default=None),
    service: ModerationService = Depends(deps.get_moderation_service),
    settings: Settings = Depends(deps.get_settings),
) -> UploadResponse:
    """Submits a question paper for moderation (or immediate auto-approval)."""
    try:
        if paper is None or not paper.filename:
            raise ValidationError("No file uploaded")

        fields = {
            "category": category,
            "subject": subject,
            "semester": semester,
            "year": year,
        }
        missing = [name for name in REQUIRED_FIELDS if not (fields[name] or "").strip()]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}")

        if paper.content_type != PDF_CONTENT_TYPE:
            raise ValidationError("Only PDF files allowed")

        content = await read_upload(paper, settings.max_upload_bytes)
        if not content:
            raise ValidationError("Uploaded file is empty")

        try:
            metadata = PaperMetadata(**fields)
        except PydanticValidationError as e:
            raise ValidationError("Invalid paper metadata") from e

        logger.info(
            f"Received upload '{paper.filename}' ({len(content)} bytes) "
            f"for {metadata.duplicate_key()}"
        )
        result = await service.submit(metadata, content, filename=paper.filename)
        return UploadResponse(id=result.paper_id, auto_approved=result.auto_approved)

    except PaperVaultError as e:
        if isinstance(e, StorageFailure):
            logger.exception(f"Storage failure while handling upload: {e}")
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error while handling upload: {e}")
        raise to_http_exception(e)


@router.get("/approved", response_model=List[ApprovedPaperItem])
async def list_approved_papers(
    category: Optional[str] = Query(default=None, description="Case-insensitive category."),
    semester: Optional[str] = Query(default=None),
    year: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Substring of the subject."),
    service: ModerationService = Depends(deps.get_moderation_service),
) -> List[ApprovedPaperItem]:
    """Approved papers, most recent first."""
    filters = ApprovedFilter(category=category, semester=semester, year=year, q=q)
    try:
        papers = await service.list_approved(filters)
    except PaperVaultError as e:
        logger.exception(f"Error listing approved papers: {e}")
        raise to_http_exception(e)
    return [ApprovedPaperItem.from_paper(p) for p in papers]


# --- Admin endpoints ---


@router.get(
    "/pending",
    response_model=List[AdminPaperItem],
    dependencies=[Depends(deps.require_admin)],
)
async def list_pending_papers(
    service: ModerationService = Depends(deps.get_moderation_service),
) -> List[AdminPaperItem]:
    try:
        papers = await service.list_pending()
    except PaperVaultError as e:
        logger.exception(f"Error listing pending papers: {e}")
        raise to_http_exception(e)
    return [AdminPaperItem.from_paper(p) for p in papers]


@router.get(
    "/rejected",
    response_model=List[AdminPaperItem],
    dependencies=[Depends(deps.require_admin)],
)
async def list_rejected_papers(
    service: ModerationService = Depends(deps.get_moderation_service),
) -> List[AdminPaperItem]:
    try:
        papers = await service.list_rejected()
    except PaperVaultError as e:
        logger.exception(f"Error listing rejected papers: {e}")
        raise to_http_exception(e)
    return [AdminPaperItem.from_paper(p) for p in papers]


@router.get(
    "/papers/{paper_id}",
    response_model=AdminPaperItem,
    dependencies=[Depends(deps.require_admin)],
)
async def get_paper(
    paper_id: UUID = Path(..., description="The paper id."),
    service: ModerationService = Depends(deps.get_moderation_service),
) -> AdminPaperItem:
    try:
        paper = await service.get_paper(paper_id)
    except PaperVaultError as e:
        raise to_http_exception(e)
    return AdminPaperItem.from_paper(paper)


@router.post(
    "/approve/{paper_id}",
    response_model=ActionResponse,
    dependencies=[Depends(deps.require_admin)],
)
async def approve_paper(
    paper_id: UUID = Path(..., description="The paper id."),
    service: ModerationService = Depends(deps.get_moderation_service),
) -> ActionResponse:
    logger.info(f"Received approve request for paper {paper_id}")
    try:
        await service.approve(paper_id)
    except PaperVaultError as e:
        if isinstance(e, StorageFailure):
            logger.exception(f"Storage failure approving paper {paper_id}: {e}")
        raise to_http_exception(e)
    return ActionResponse()


@router.post(
    "/reject/{paper_id}",
    response_model=ActionResponse,
    dependencies=[Depends(deps.require_admin)],
)
async def reject_paper(
    paper_id: UUID = Path(..., description="The paper id."),
    service: ModerationService = Depends(deps.get_moderation_service),
) -> ActionResponse:
    logger.info(f"Received reject request for paper {paper_id}")
    try:
        await service.reject(paper_id)
    except PaperVaultError as e:
        if isinstance(e, StorageFailure):
            logger.exception(f"Storage failure rejecting paper {paper_id}: {e}")
        raise to_http_exception(e)
    return ActionResponse()


@router.delete(
    "/delete/{paper_id}",
    response_model=ActionResponse,
    dependencies=[Depends(deps.require_admin)],
)
async def delete_paper(
    paper_id: UUID = Path(..., description="The paper id."),
    service: ModerationService = Depends(deps.get_moderation_service),
) -> ActionResponse:
    logger.info(f"Received delete request for paper {paper_id}")
    try:
        await service.delete(paper_id)
    except PaperVaultError as e:
        if isinstance(e, StorageFailure):
            logger.exception(f"Storage failure deleting paper {paper_id}: {e}")
        raise to_http_exception(e)
    return ActionResponse()
