"""
Document Service.

Create, upload, update and delete flows for documents. Each flow runs the
metadata merger, writes the record store, and mirrors headers onto the
blob. The record store is authoritative; header mirroring after a record
change is best-effort.
"""

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from app.db.base import utcnow
from app.models.document import AccessLevel, Document
from app.services.document_repository import DocumentRepository
from app.services.metadata_mirror import compose_blob_headers, mirror_metadata
from app.services.metadata_service import (
    TOPOLOGY_KEY,
    MetadataPair,
    SystemFields,
    build_create_metadata,
    build_update_metadata,
    logical_name_from_file_name,
)
from app.services.storage_service import StorageError

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


class DocumentServiceError(Exception):
    """Base exception for document service errors."""
    pass


class DocumentNotFoundError(DocumentServiceError):
    """Raised when document is not found."""
    pass


class DuplicateDocumentError(DocumentServiceError):
    """Raised when a record already exists for an object key."""
    pass


class ReservedMetadataKeyError(DocumentServiceError):
    """Raised when an update tries to change a reserved metadata key."""

    def __init__(self, rejected_keys: list[str]):
        self.rejected_keys = list(rejected_keys)
        super().__init__(
            f"Reserved metadata keys cannot be changed: {', '.join(self.rejected_keys)}"
        )


@dataclass
class DocumentOutcome:
    """A written document and whether its blob headers were mirrored."""

    document: Document
    mirrored: bool = True


@dataclass
class DocumentStats:
    total_uploads: int
    today_uploads: int
    storage_used: int


class DocumentService:
    """Orchestrates the metadata rules across record store and blob store."""

    def __init__(
        self,
        repository: DocumentRepository,
        storage,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.storage = storage
        self.clock = clock

    def system_fields(self, file_name: str, name: str) -> SystemFields:
        now = self.clock()
        return SystemFields(
            original_filename=file_name,
            logical_name=name,
            year=str(now.year),
            month=MONTH_ABBREVIATIONS[now.month - 1],
        )

    def get_document(self, document_id: int) -> Document:
        document = self.repository.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    def create_document(
        self,
        name: str,
        file_name: str,
        file_key: str,
        file_size: int,
        file_type: str,
        access_level: AccessLevel,
        pairs: Iterable[MetadataPair],
    ) -> DocumentOutcome:
        """
        Record a blob the client uploaded straight to the bucket.

        Raises:
            DuplicateDocumentError: if file_key is already recorded.
        """
        if self.repository.exists_by_file_key(file_key):
            raise DuplicateDocumentError(f"Document for {file_key} already exists")

        metadata = build_create_metadata(self.system_fields(file_name, name), pairs)
        document = self.repository.create(
            name=name,
            file_name=file_name,
            file_key=file_key,
            file_size=file_size,
            file_type=file_type,
            document_metadata=metadata,
            access_level=access_level,
        )
        mirrored = mirror_metadata(
            self.storage, document.file_key, document.name,
            document.access_level, document.document_metadata,
        )
        return DocumentOutcome(document=document, mirrored=mirrored)

    def upload_document(
        self,
        content: bytes,
        file_name: str,
        content_type: str,
        name: Optional[str],
        access_level: AccessLevel,
        pairs: Iterable[MetadataPair],
    ) -> Document:
        """
        Store a file and its metadata.

        The blob is written first with its full header set; the record is
        only created once the blob exists.

        Raises:
            StorageError: if the blob cannot be written.
        """
        name = name or logical_name_from_file_name(file_name)
        metadata = build_create_metadata(self.system_fields(file_name, name), pairs)
        file_key = self.storage.generate_file_key(file_name)

        self.storage.upload_file(
            file_data=io.BytesIO(content),
            file_key=file_key,
            content_type=content_type,
            file_size=len(content),
            metadata=compose_blob_headers(name, access_level, metadata),
        )

        try:
            return self.repository.create(
                name=name,
                file_name=file_name,
                file_key=file_key,
                file_size=len(content),
                file_type=content_type,
                document_metadata=metadata,
                access_level=access_level,
            )
        except Exception:
            logger.error(f"Record write failed for {file_key}, removing uploaded blob")
            try:
                self.storage.delete_file(file_key)
            except StorageError as e:
                logger.error(f"Failed to remove orphaned blob {file_key}: {e}")
            raise

    def update_document(
        self,
        document_id: int,
        name: Optional[str] = None,
        pairs: Optional[Iterable[MetadataPair]] = None,
        access_level: Optional[AccessLevel] = None,
    ) -> DocumentOutcome:
        """
        Apply an editor update. All-or-nothing.

        Raises:
            DocumentNotFoundError: if the document doesn't exist.
            ReservedMetadataKeyError: if a reserved key would change. Nothing
                is written in that case.
        """
        document = self.get_document(document_id)
        metadata = dict(document.document_metadata or {})

        if pairs is not None:
            merged = build_update_metadata(metadata, pairs)
            if not merged.is_valid:
                logger.warning(
                    f"Rejected update of document {document_id}: reserved keys {merged.rejected_keys}"
                )
                raise ReservedMetadataKeyError(merged.rejected_keys)
            metadata = merged.metadata

        fields = {}
        if name is not None:
            fields["name"] = name
            if TOPOLOGY_KEY in metadata:
                metadata[TOPOLOGY_KEY] = name
        if access_level is not None:
            fields["access_level"] = access_level
        fields["document_metadata"] = metadata

        document = self.repository.update(document_id, **fields)
        mirrored = mirror_metadata(
            self.storage, document.file_key, document.name,
            document.access_level, document.document_metadata,
        )
        return DocumentOutcome(document=document, mirrored=mirrored)

    def delete_document(self, document_id: int) -> None:
        """
        Delete the blob, then the record.

        Raises:
            DocumentNotFoundError: if the document doesn't exist.
            StorageError: if the blob can't be deleted; the record is kept.
        """
        document = self.get_document(document_id)
        self.storage.delete_file(document.file_key)
        self.repository.delete(document_id)
        logger.info(f"Deleted document {document_id} ({document.file_key})")

    def get_stats(self) -> DocumentStats:
        documents = self.repository.list()
        today = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)

        def uploaded_today(document: Document) -> bool:
            uploaded_at = document.uploaded_at
            if uploaded_at.tzinfo is None:
                uploaded_at = uploaded_at.replace(tzinfo=timezone.utc)
            return uploaded_at >= today

        return DocumentStats(
            total_uploads=len(documents),
            today_uploads=sum(1 for document in documents if uploaded_today(document)),
            storage_used=sum(document.file_size for document in documents),
        )
