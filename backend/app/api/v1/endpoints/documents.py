"""
Document API Endpoints.

Features:
- Multipart upload with free-form metadata
- Metadata-only create for blobs uploaded through a presigned URL
- Metadata edits mirrored onto blob headers
- Bucket sync for objects that were uploaded outside the API
"""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.deps import get_document_repository, get_document_service, get_storage_service_dep
from app.config import settings
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
    ReservedKeyConflictException,
    StorageUnavailableException,
)
from app.core.metrics import track_upload
from app.core.rate_limiter import limiter, RATE_LIMITS
from app.core.sentry import capture_exception
from app.models.document import AccessLevel
from app.schemas.document import (
    DocumentCreate,
    DocumentMetadataUpdate,
    DocumentRead,
    DocumentUploadResponse,
    DownloadUrlResponse,
    MetadataList,
    PresignedUploadResponse,
    PresignedUrlRequest,
    SyncResponse,
)
from app.services.bucket_sync import BucketSyncError, sync_from_store
from app.services.document_repository import DocumentRepository
from app.services.document_service import (
    DocumentNotFoundError,
    DocumentService,
    DuplicateDocumentError,
    ReservedMetadataKeyError,
)
from app.services.storage_service import StorageError

logger = logging.getLogger(__name__)
router = APIRouter()

METADATA_WARNING_HEADER = "X-Metadata-Sync-Warning"

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.ms-powerpoint",
    "text/plain",
    "image/jpeg",
    "image/png",
}


def _warn_if_not_mirrored(response: Response, mirrored: bool) -> None:
    if not mirrored:
        response.headers[METADATA_WARNING_HEADER] = "Blob metadata could not be updated"


@router.get("/", response_model=List[DocumentRead])
def list_documents(
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
):
    """List all documents, newest first."""
    return repository.list()


@router.post("/", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def create_document(
    payload: DocumentCreate,
    response: Response,
    service: Annotated[DocumentService, Depends(get_document_service)],
):
    """Record a document whose blob was uploaded through a presigned URL."""
    try:
        outcome = service.create_document(
            name=payload.name,
            file_name=payload.file_name,
            file_key=payload.file_key,
            file_size=payload.file_size,
            file_type=payload.file_type,
            access_level=payload.access_level,
            pairs=payload.metadata,
        )
    except DuplicateDocumentError as e:
        raise ConflictException(str(e))

    _warn_if_not_mirrored(response, outcome.mirrored)
    return outcome.document


@router.post(
    "/upload",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document with metadata",
)
@limiter.limit(RATE_LIMITS["upload"])
async def upload_document(
    request: Request,
    file: Annotated[UploadFile, File(description="Document file (max 10MB)")],
    service: Annotated[DocumentService, Depends(get_document_service)],
    name: Annotated[Optional[str], Form()] = None,
    topology: Annotated[Optional[str], Form()] = None,
    access_level: Annotated[AccessLevel, Form(alias="accessLevel")] = AccessLevel.PRIVATE,
    metadata: Annotated[Optional[str], Form(description="JSON list of {key, value}")] = None,
):
    """Upload a file, store its metadata on the blob and in the database."""
    content_type = file.content_type or "application/octet-stream"
    if content_type not in ALLOWED_CONTENT_TYPES:
        track_upload("rejected", content_type, 0)
        raise BadRequestException(
            "Invalid file type. Only PDF, DOCX, XLSX, PPTX, TXT, JPG, and PNG files are allowed."
        )

    content = await file.read()
    file_size = len(content)

    if file_size > settings.MAX_FILE_SIZE:
        track_upload("rejected", content_type, file_size)
        raise BadRequestException("File too large. Maximum size is 10MB")

    if file_size == 0:
        track_upload("rejected", content_type, 0)
        raise BadRequestException("Empty file not allowed")

    try:
        pairs = MetadataList.validate_json(metadata) if metadata else []
    except ValidationError as e:
        raise BadRequestException(f"Invalid metadata: {e.error_count()} malformed entries")

    file_name = file.filename or "document"
    try:
        document = await run_in_threadpool(
            service.upload_document,
            content=content,
            file_name=file_name,
            content_type=content_type,
            name=topology or name,
            access_level=access_level,
            pairs=pairs,
        )
    except StorageError as e:
        track_upload("failed", content_type, file_size)
        logger.error(f"Upload of {file_name} failed: {e}")
        raise StorageUnavailableException(f"Failed to upload file: {str(e)}")

    track_upload("success", content_type, file_size)
    logger.info(f"Uploaded: {file_name} as {document.file_key}")

    return DocumentUploadResponse(
        success=True,
        message="Document uploaded successfully",
        document=DocumentRead.model_validate(document),
    )


@router.post("/presigned-url", response_model=PresignedUploadResponse)
def create_presigned_upload_url(
    payload: PresignedUrlRequest,
    storage=Depends(get_storage_service_dep),
):
    """Issue a URL the client can upload a blob to directly."""
    file_key = storage.generate_file_key(payload.file_name)
    try:
        url = storage.get_upload_url(file_key, settings.UPLOAD_URL_EXPIRE_SECONDS)
    except NotImplementedError as e:
        return JSONResponse(status_code=status.HTTP_501_NOT_IMPLEMENTED, content={"detail": str(e)})
    except StorageError as e:
        raise StorageUnavailableException(str(e))
    return PresignedUploadResponse(presigned_url=url, file_key=file_key)


@router.get("/sync-from-s3", response_model=SyncResponse)
@limiter.limit(RATE_LIMITS["sync"])
def sync_documents(
    request: Request,
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
    storage=Depends(get_storage_service_dep),
):
    """Create records for bucket objects that are not in the database yet."""
    try:
        result = sync_from_store(storage, repository)
    except BucketSyncError as e:
        capture_exception(e, tags={"operation": "bucket_sync"})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": str(e)},
        )

    if result.synced_count == 0 and not result.failed_keys:
        message = "No new objects found in bucket"
    else:
        message = f"Synced {result.synced_count} new documents from S3"
    return SyncResponse(
        success=True,
        message=message,
        synced_count=result.synced_count,
        documents=[DocumentRead.model_validate(document) for document in result.documents],
    )


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: int,
    service: Annotated[DocumentService, Depends(get_document_service)],
):
    """Get a specific document."""
    try:
        return service.get_document(document_id)
    except DocumentNotFoundError:
        raise NotFoundException("Document not found")


@router.get("/{document_id}/download", response_model=DownloadUrlResponse)
def get_download_url(
    document_id: int,
    service: Annotated[DocumentService, Depends(get_document_service)],
):
    """Time-limited, read-only URL for the document's blob."""
    try:
        document = service.get_document(document_id)
        url = service.storage.get_download_url(
            document.file_key, settings.DOWNLOAD_URL_EXPIRE_SECONDS
        )
    except DocumentNotFoundError:
        raise NotFoundException("Document not found")
    except StorageError as e:
        raise StorageUnavailableException(f"Failed to generate download URL: {e}")
    return DownloadUrlResponse(presigned_url=url)


@router.patch("/{document_id}", response_model=DocumentRead)
def update_document(
    document_id: int,
    payload: DocumentMetadataUpdate,
    response: Response,
    service: Annotated[DocumentService, Depends(get_document_service)],
):
    """Update name, metadata and access level. Reserved keys are protected."""
    try:
        outcome = service.update_document(
            document_id,
            name=payload.name,
            pairs=payload.metadata,
            access_level=payload.access_level,
        )
    except DocumentNotFoundError:
        raise NotFoundException("Document not found")
    except ReservedMetadataKeyError as e:
        raise ReservedKeyConflictException(e.rejected_keys)

    _warn_if_not_mirrored(response, outcome.mirrored)
    return outcome.document


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: int,
    service: Annotated[DocumentService, Depends(get_document_service)],
):
    """Delete the blob, then the record."""
    try:
        service.delete_document(document_id)
    except DocumentNotFoundError:
        raise NotFoundException("Document not found")
    except StorageError as e:
        logger.error(f"Blob delete failed for document {document_id}: {e}")
        raise StorageUnavailableException("Failed to delete document file; record kept")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
