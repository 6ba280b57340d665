"""
Bucket Sync Service.

Creates document records for objects that exist in the bucket but are not
yet known to the database. The sync is additive only: known objects are
never read or rewritten, and one bad object never aborts the run. Losing
the record store mid-run does.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import OperationalError

from app.core.metrics import track_sync_object, track_sync_run
from app.models.document import AccessLevel, Document
from app.services.document_repository import DocumentRepository
from app.services.metadata_service import (
    ACCESS_LEVEL_KEY,
    CONTENT_TYPE_KEY,
    ORIGINAL_FILENAME_KEY,
    TOPOLOGY_KEY,
    logical_name_from_file_name,
    normalize_metadata_key,
)
from app.services.storage_service import StoredObject

logger = logging.getLogger(__name__)

DEFAULT_FILE_TYPE = "application/octet-stream"

# "<uuid>-name.pdf" or "<timestamp>-name.pdf"
_KEY_PREFIX = re.compile(
    r"^(?:[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}|\d+)-(?P<name>.+)$"
)


class BucketSyncError(Exception):
    """Raised when the sync cannot start (listing or record store failure)."""
    pass


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    synced_count: int = 0
    documents: list[Document] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)


def file_name_from_key(file_key: str) -> str:
    """Recover the original filename from an object key."""
    base_name = file_key.rsplit("/", 1)[-1]
    match = _KEY_PREFIX.match(base_name)
    return match.group("name") if match else base_name


def parse_access_level(value: Optional[str]) -> AccessLevel:
    """Unknown or missing values fall back to private, never public."""
    try:
        return AccessLevel((value or "").strip().lower())
    except ValueError:
        return AccessLevel.PRIVATE


def metadata_from_headers(headers: dict[str, str]) -> dict[str, str]:
    """Build a record's metadata map from blob headers."""
    metadata = {}
    for key in (ORIGINAL_FILENAME_KEY, TOPOLOGY_KEY):
        if headers.get(key):
            metadata[key] = headers[key]

    for key, value in headers.items():
        canonical_key, _ = normalize_metadata_key(key)
        if not canonical_key or not value:
            continue
        if canonical_key in (ACCESS_LEVEL_KEY, CONTENT_TYPE_KEY):
            continue
        metadata.setdefault(canonical_key, value)
    return metadata


class BucketSyncService:
    """Reconciles the object store with the documents table."""

    def __init__(self, storage, repository: DocumentRepository):
        self.storage = storage
        self.repository = repository

    def sync(self) -> SyncResult:
        """
        Create records for every unknown object in the bucket.

        Returns:
            SyncResult: Newly created documents and the keys that failed.

        Raises:
            BucketSyncError: if the known keys or the bucket listing cannot be
                loaded (no record is created), or if the record store becomes
                unreachable mid-run (records already created are kept).
        """
        started = time.perf_counter()
        try:
            known_keys = self.repository.list_file_keys()
            objects = list(self.storage.list_objects())
        except Exception as e:
            track_sync_run("failed", time.perf_counter() - started)
            raise BucketSyncError(f"Failed to list bucket contents: {e}") from e

        result = SyncResult()
        for stored in objects:
            if not stored.key or stored.key in known_keys:
                continue
            try:
                document = self._import_object(stored)
            except OperationalError as e:
                track_sync_run("failed", time.perf_counter() - started)
                raise BucketSyncError(f"Record store unavailable during sync: {e}") from e
            except Exception as e:
                logger.error(f"Error syncing object {stored.key}: {e}")
                track_sync_object("failed")
                result.failed_keys.append(stored.key)
                continue

            if document is None:
                track_sync_object("duplicate")
                continue
            track_sync_object("created")
            known_keys.add(stored.key)
            result.documents.append(document)

        result.synced_count = len(result.documents)
        track_sync_run("success", time.perf_counter() - started)
        logger.info(
            f"Bucket sync created {result.synced_count} documents "
            f"({len(result.failed_keys)} objects failed)"
        )
        return result

    def _import_object(self, listed: StoredObject) -> Optional[Document]:
        details = self.storage.stat_file(listed.key)
        headers = details.metadata

        file_name = headers.get(ORIGINAL_FILENAME_KEY) or file_name_from_key(listed.key)
        name = headers.get(TOPOLOGY_KEY) or logical_name_from_file_name(file_name)

        return self.repository.create_if_absent(
            file_name=file_name,
            file_key=listed.key,
            file_size=listed.size or details.size or 0,
            file_type=details.content_type or DEFAULT_FILE_TYPE,
            name=name,
            document_metadata=metadata_from_headers(headers),
            access_level=parse_access_level(headers.get(ACCESS_LEVEL_KEY)),
        )


def sync_from_store(storage, repository: DocumentRepository) -> SyncResult:
    """Run one bucket sync with the given storage and record store."""
    return BucketSyncService(storage, repository).sync()
