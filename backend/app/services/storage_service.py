"""
Storage service for blob operations.

Supports both MinIO/S3 and local filesystem storage.
Falls back to local storage if MinIO is not available.

Both services expose the same methods. Object header metadata is a flat
``str -> str`` map of user headers (``x-amz-meta-*`` on S3, without the
prefix); headers are immutable on S3, so changing them means copying the
object onto itself with the header block replaced.
"""

import json
import os
import shutil
import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Iterator, Optional
from urllib.parse import quote, unquote

from app.config import settings

logger = logging.getLogger(__name__)

USER_METADATA_PREFIX = "x-amz-meta-"

# Printable ASCII passes through; "%" and anything else is percent-encoded
HEADER_SAFE_CHARS = "".join(chr(c) for c in range(0x20, 0x7f) if chr(c) != "%")


class StorageError(RuntimeError):
    """Raised when the object store rejects or cannot complete a request."""
    pass


@dataclass
class StoredObject:
    """An object in the store, as seen by a listing or a head request."""

    key: str
    size: int = 0
    content_type: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)


def generate_file_key(filename: str) -> str:
    """Generate a unique object key: ``<uuid4>-<filename>``."""
    safe_name = Path(filename).name or "document"
    return f"{uuid.uuid4()}-{safe_name}"


def encode_header_metadata(metadata: dict[str, str]) -> dict[str, str]:
    """
    Make user metadata safe for S3 headers, which only carry US-ASCII.

    Keys and values are percent-encoded as UTF-8; ``extract_user_metadata``
    reverses it, so non-ASCII filenames survive a sync.
    """
    return {
        quote(key, safe=HEADER_SAFE_CHARS): quote(value, safe=HEADER_SAFE_CHARS)
        for key, value in metadata.items()
    }


def extract_user_metadata(headers) -> dict[str, str]:
    """Pull user metadata out of raw S3 response headers, keys lower-cased."""
    metadata = {}
    for key, value in headers.items():
        lowered = key.lower()
        if lowered.startswith(USER_METADATA_PREFIX):
            metadata[unquote(lowered[len(USER_METADATA_PREFIX):])] = unquote(value)
    return metadata


class LocalStorageService:
    """
    Local filesystem storage service.

    Used for development when MinIO/S3 is not available. Header metadata
    is kept in JSON sidecar files under ``<base_path>/.metadata/``.
    """

    METADATA_DIR = ".metadata"

    def __init__(self, base_path: str = None) -> None:
        """Initialize local storage."""
        self.base_path = Path(base_path or settings.LOCAL_STORAGE_PATH or os.environ.get(
            "LOCAL_STORAGE_PATH",
            Path(__file__).parent.parent.parent.parent / "data" / "uploads"
        ))
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.bucket_name = str(self.base_path)
        logger.info(f"Using local storage at: {self.base_path}")

    def generate_file_key(self, filename: str) -> str:
        """Generate unique file key."""
        return generate_file_key(filename)

    def _contained(self, root: Path, relative: str, file_key: str) -> Path:
        root = root.resolve()
        path = (root / relative).resolve()
        if path == root or root not in path.parents:
            raise StorageError(f"Object key escapes storage root: {file_key}")
        return path

    def _object_path(self, file_key: str) -> Path:
        return self._contained(self.base_path, file_key, file_key)

    def _sidecar_path(self, file_key: str) -> Path:
        return self._contained(self.base_path / self.METADATA_DIR, f"{file_key}.json", file_key)

    def _write_sidecar(self, file_key: str, content_type: Optional[str], metadata: dict[str, str]) -> None:
        sidecar = self._sidecar_path(file_key)
        sidecar.parent.mkdir(parents=True, exist_ok=True)
        sidecar.write_text(json.dumps({"content_type": content_type, "metadata": metadata}))

    def _read_sidecar(self, file_key: str) -> dict:
        sidecar = self._sidecar_path(file_key)
        if not sidecar.exists():
            return {"content_type": None, "metadata": {}}
        try:
            return json.loads(sidecar.read_text())
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt metadata for {file_key}: {e}")

    def upload_file(
        self,
        file_data: BinaryIO,
        file_key: str,
        content_type: str,
        file_size: int,
        metadata: Optional[dict[str, str]] = None,
    ) -> str:
        """Upload file to local storage."""
        file_path = self._object_path(file_key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "wb") as f:
            shutil.copyfileobj(file_data, f)
        self._write_sidecar(file_key, content_type, dict(metadata or {}))

        logger.info(f"File saved locally: {file_path}")
        return file_key

    def stat_file(self, file_key: str) -> StoredObject:
        """Return size, content type and header metadata of a stored file."""
        file_path = self._object_path(file_key)
        if not file_path.is_file():
            raise StorageError(f"Object not found: {file_key}")
        sidecar = self._read_sidecar(file_key)
        return StoredObject(
            key=file_key,
            size=file_path.stat().st_size,
            content_type=sidecar.get("content_type"),
            metadata=dict(sidecar.get("metadata") or {}),
        )

    def list_objects(self) -> Iterator[StoredObject]:
        """Yield every stored file (sidecars excluded)."""
        for path in sorted(self.base_path.rglob("*")):
            relative = path.relative_to(self.base_path)
            if not path.is_file() or relative.parts[0] == self.METADATA_DIR:
                continue
            yield StoredObject(key=relative.as_posix(), size=path.stat().st_size)

    def replace_metadata(
        self,
        file_key: str,
        metadata: dict[str, str],
        content_type: Optional[str] = None,
    ) -> None:
        """Replace the whole header metadata block of a stored file."""
        current = self.stat_file(file_key)
        self._write_sidecar(file_key, content_type or current.content_type, dict(metadata))

    def delete_file(self, file_key: str) -> None:
        """Delete file from local storage."""
        file_path = self._object_path(file_key)
        if file_path.exists():
            file_path.unlink()
            logger.info(f"File deleted: {file_path}")
        sidecar = self._sidecar_path(file_key)
        if sidecar.exists():
            sidecar.unlink()

    def get_download_url(self, file_key: str, expires_seconds: int) -> str:
        """Local files are served by path; there is no expiry."""
        return self._object_path(file_key).resolve().as_uri()

    def get_upload_url(self, file_key: str, expires_seconds: int) -> str:
        raise NotImplementedError("Presigned uploads require object storage")


class MinIOStorageService:
    """
    MinIO/S3 object storage service.

    Used for production with cloud storage.
    """

    def __init__(self, client=None, bucket_name: Optional[str] = None) -> None:
        """Initialize MinIO client."""
        self.client = client or self._build_client()
        self.bucket_name = bucket_name or settings.MINIO_BUCKET_NAME
        self._ensure_bucket_exists()

    @staticmethod
    def _build_client():
        import urllib3
        from minio import Minio

        # Bounded timeouts so one unreachable object cannot stall a sync
        timeout = settings.STORAGE_TIMEOUT_SECONDS
        http_client = urllib3.PoolManager(
            timeout=urllib3.Timeout(connect=timeout, read=timeout),
            maxsize=10,
            retries=urllib3.Retry(
                total=3,
                backoff_factor=0.2,
                status_forcelist=[500, 502, 503, 504],
            ),
        )
        return Minio(
            endpoint=settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_SECURE,
            region=settings.MINIO_REGION,
            http_client=http_client,
        )

    @staticmethod
    def _errors():
        from minio.error import MinioException
        from urllib3.exceptions import HTTPError

        return (MinioException, HTTPError)

    def _ensure_bucket_exists(self) -> None:
        """Create bucket if it doesn't exist."""
        try:
            if not self.client.bucket_exists(bucket_name=self.bucket_name):
                self.client.make_bucket(bucket_name=self.bucket_name)
        except self._errors() as e:
            raise StorageError(f"Failed to create bucket: {e}")

    def generate_file_key(self, filename: str) -> str:
        """Generate unique file key."""
        return generate_file_key(filename)

    def upload_file(
        self,
        file_data: BinaryIO,
        file_key: str,
        content_type: str,
        file_size: int,
        metadata: Optional[dict[str, str]] = None,
    ) -> str:
        """Upload file to MinIO with its header metadata."""
        try:
            self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=file_key,
                data=file_data,
                length=file_size,
                content_type=content_type,
                metadata=encode_header_metadata(metadata or {}) or None,
            )
            return file_key
        except (*self._errors(), ValueError) as e:
            raise StorageError(f"Failed to upload file: {e}")

    def stat_file(self, file_key: str) -> StoredObject:
        """Head an object and return its size, content type and user metadata."""
        try:
            stat = self.client.stat_object(
                bucket_name=self.bucket_name,
                object_name=file_key,
            )
        except self._errors() as e:
            raise StorageError(f"Failed to read metadata for {file_key}: {e}")
        return StoredObject(
            key=file_key,
            size=stat.size or 0,
            content_type=stat.content_type,
            metadata=extract_user_metadata(stat.metadata or {}),
        )

    def list_objects(self) -> Iterator[StoredObject]:
        """Yield every object in the bucket; the client follows continuation tokens."""
        try:
            for obj in self.client.list_objects(
                bucket_name=self.bucket_name,
                recursive=True,
            ):
                if obj.is_dir:
                    continue
                yield StoredObject(key=obj.object_name, size=obj.size or 0)
        except self._errors() as e:
            raise StorageError(f"Failed to list bucket {self.bucket_name}: {e}")

    def replace_metadata(
        self,
        file_key: str,
        metadata: dict[str, str],
        content_type: Optional[str] = None,
    ) -> None:
        """Copy the object onto itself with the header block replaced."""
        from minio.commonconfig import CopySource, REPLACE

        headers = encode_header_metadata(metadata)
        if content_type:
            headers["Content-Type"] = content_type
        try:
            self.client.copy_object(
                bucket_name=self.bucket_name,
                object_name=file_key,
                source=CopySource(self.bucket_name, file_key),
                metadata=headers,
                metadata_directive=REPLACE,
            )
        except (*self._errors(), ValueError) as e:
            raise StorageError(f"Failed to replace metadata for {file_key}: {e}")

    def delete_file(self, file_key: str) -> None:
        """Delete file from MinIO."""
        try:
            self.client.remove_object(
                bucket_name=self.bucket_name,
                object_name=file_key,
            )
        except self._errors() as e:
            raise StorageError(f"Failed to delete file: {e}")

    def get_download_url(self, file_key: str, expires_seconds: int) -> str:
        """Time-limited, read-only URL for an object."""
        try:
            return self.client.presigned_get_object(
                bucket_name=self.bucket_name,
                object_name=file_key,
                expires=timedelta(seconds=expires_seconds),
            )
        except self._errors() as e:
            raise StorageError(f"Failed to sign download URL: {e}")

    def get_upload_url(self, file_key: str, expires_seconds: int) -> str:
        """Time-limited URL the client can PUT the object to."""
        try:
            return self.client.presigned_put_object(
                bucket_name=self.bucket_name,
                object_name=file_key,
                expires=timedelta(seconds=expires_seconds),
            )
        except self._errors() as e:
            raise StorageError(f"Failed to sign upload URL: {e}")


def get_storage_service():
    """
    Get the appropriate storage service.

    Tries MinIO first, falls back to local storage.
    """
    if settings.STORAGE_TYPE == "local":
        logger.info("Using local file storage")
        return LocalStorageService()

    try:
        service = MinIOStorageService()
        logger.info("Using MinIO storage")
        return service
    except Exception as e:
        logger.warning(f"MinIO not available ({e}), falling back to local storage")
        return LocalStorageService()


# Lazy-loaded singleton
_storage_service = None


def get_storage():
    """Return the process-wide storage service, creating it on first use."""
    global _storage_service
    if _storage_service is None:
        _storage_service = get_storage_service()
    return _storage_service
