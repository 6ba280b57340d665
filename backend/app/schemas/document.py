"""
Document schemas for request/response validation.

Defines Pydantic models for document create, update, upload and sync
operations. Metadata pairs are validated here, before they reach the
metadata merger.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, ConfigDict, Field, StrictStr, TypeAdapter, field_validator

from app.config import settings
from app.models.document import AccessLevel
from app.schemas.base import CamelModel, CamelORMModel


class MetadataKeyValue(CamelModel):
    """A single user-supplied metadata entry."""

    model_config = ConfigDict(extra="forbid")

    key: StrictStr = Field(..., description="Metadata key, normalized before storage")
    value: StrictStr = Field("", description="Metadata value")


MetadataList = TypeAdapter(list[MetadataKeyValue])


class DocumentCreate(CamelModel):
    """Schema for a metadata-only create (blob uploaded separately)."""

    name: str = Field(..., min_length=1, description="Logical name (topology)")
    file_name: str = Field(..., min_length=1, description="Original filename")
    file_key: str = Field(..., min_length=1, description="S3/MinIO object key")
    file_size: int = Field(..., ge=0, description="File size in bytes")
    file_type: str = Field(..., min_length=1, description="MIME type")
    metadata: list[MetadataKeyValue] = Field(default_factory=list)
    access_level: AccessLevel = AccessLevel.PRIVATE

    @field_validator("file_key")
    @classmethod
    def validate_file_key(cls, v: str) -> str:
        """Keys are relative to the bucket; no absolute paths or parent segments."""
        if v.startswith("/") or "\\" in v:
            raise ValueError("File key must be a relative path")
        if ".." in v.split("/"):
            raise ValueError("File key must not contain '..' segments")
        return v


class DocumentMetadataUpdate(CamelModel):
    """Schema for PATCH /documents/{id}. Omitted fields stay unchanged."""

    name: Optional[str] = Field(None, min_length=1, description="Logical name (topology)")
    metadata: Optional[list[MetadataKeyValue]] = Field(
        None, description="Full metadata list as shown in the editor"
    )
    access_level: Optional[AccessLevel] = None


class DocumentRead(CamelORMModel):
    """Schema for reading document data."""

    id: int
    file_name: str
    file_key: str
    file_size: int
    file_type: str
    name: str
    metadata: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("document_metadata", "metadata"),
    )
    access_level: AccessLevel
    uploaded_at: datetime
    last_updated: datetime


class DocumentUploadResponse(CamelModel):
    """Schema for the multipart upload response."""

    success: bool
    message: str
    document: DocumentRead


class SyncResponse(CamelModel):
    """Schema for the bucket sync response."""

    success: bool
    message: str
    synced_count: int
    documents: list[DocumentRead] = Field(default_factory=list)


class PresignedUrlRequest(CamelModel):
    """Schema for requesting a direct-to-bucket upload URL."""

    file_name: str = Field(..., min_length=1)
    file_type: str = Field(..., min_length=1)
    file_size: int = Field(
        ..., ge=0, le=settings.MAX_FILE_SIZE, description="File size must be less than 10MB"
    )


class PresignedUploadResponse(CamelModel):
    presigned_url: str
    file_key: str


class DownloadUrlResponse(CamelModel):
    presigned_url: str


class StatsResponse(CamelModel):
    """Upload statistics shown on the dashboard."""

    total_uploads: int
    today_uploads: int
    storage_used: int
    bucket_name: str
