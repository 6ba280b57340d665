"""
Pydantic schemas for request/response validation.
"""

from app.schemas.document import (
    MetadataKeyValue,
    MetadataList,
    DocumentCreate,
    DocumentMetadataUpdate,
    DocumentRead,
    DocumentUploadResponse,
    SyncResponse,
    PresignedUrlRequest,
    PresignedUploadResponse,
    DownloadUrlResponse,
    StatsResponse,
)

__all__ = [
    "MetadataKeyValue",
    "MetadataList",
    "DocumentCreate",
    "DocumentMetadataUpdate",
    "DocumentRead",
    "DocumentUploadResponse",
    "SyncResponse",
    "PresignedUrlRequest",
    "PresignedUploadResponse",
    "DownloadUrlResponse",
    "StatsResponse",
]
