"""
Pytest fixtures for backend tests.

Provides a fresh database per test, an in-memory object store with
failure injection, and a test client wired to both.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STORAGE_TYPE"] = "local"
os.environ["SENTRY_DSN"] = ""

import uuid
from datetime import datetime, timezone
from typing import Generator, Iterator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.deps import get_storage_service_dep
from app.db.base import Base
from app.db.session import get_db
from app.services.document_repository import DocumentRepository
from app.services.storage_service import StorageError, StoredObject


# Test database URL (SQLite in-memory)
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine,
)


class InMemoryStorage:
    """Object store fake with the storage service interface."""

    def __init__(self) -> None:
        self.bucket_name = "test-bucket"
        self.objects: dict[str, dict] = {}
        self.failing_stat_keys: set[str] = set()
        self.fail_list = False
        self.fail_replace = False
        self.fail_delete = False
        self.fail_upload = False
        self.stat_calls: list[str] = []
        self.replace_calls: list[tuple[str, dict, Optional[str]]] = []

    def add_object(
        self,
        key: str,
        data: bytes = b"content",
        content_type: Optional[str] = "application/pdf",
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        self.objects[key] = {
            "data": data,
            "content_type": content_type,
            "metadata": dict(metadata or {}),
        }

    def generate_file_key(self, filename: str) -> str:
        return f"{uuid.uuid4()}-{filename}"

    def upload_file(self, file_data, file_key, content_type, file_size, metadata=None) -> str:
        if self.fail_upload:
            raise StorageError("bucket unreachable")
        self.add_object(file_key, file_data.read(), content_type, metadata)
        return file_key

    def stat_file(self, file_key: str) -> StoredObject:
        self.stat_calls.append(file_key)
        if file_key in self.failing_stat_keys:
            raise StorageError(f"head failed for {file_key}")
        if file_key not in self.objects:
            raise StorageError(f"Object not found: {file_key}")
        obj = self.objects[file_key]
        return StoredObject(
            key=file_key,
            size=len(obj["data"]),
            content_type=obj["content_type"],
            metadata=dict(obj["metadata"]),
        )

    def list_objects(self) -> Iterator[StoredObject]:
        if self.fail_list:
            raise StorageError("listing failed")
        for key, obj in self.objects.items():
            yield StoredObject(key=key, size=len(obj["data"]))

    def replace_metadata(self, file_key, metadata, content_type=None) -> None:
        if self.fail_replace:
            raise StorageError("copy failed")
        if file_key not in self.objects:
            raise StorageError(f"Object not found: {file_key}")
        self.replace_calls.append((file_key, dict(metadata), content_type))
        self.objects[file_key]["metadata"] = dict(metadata)
        if content_type:
            self.objects[file_key]["content_type"] = content_type

    def delete_file(self, file_key: str) -> None:
        if self.fail_delete:
            raise StorageError("delete failed")
        self.objects.pop(file_key, None)

    def get_download_url(self, file_key: str, expires_seconds: int) -> str:
        return f"https://storage.test/{self.bucket_name}/{file_key}?expires={expires_seconds}"

    def get_upload_url(self, file_key: str, expires_seconds: int) -> str:
        return f"https://storage.test/{self.bucket_name}/{file_key}?upload=1&expires={expires_seconds}"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test.

    Yields:
        Session: Test database session.
    """
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def storage() -> InMemoryStorage:
    """Empty in-memory object store."""
    return InMemoryStorage()


@pytest.fixture
def repository(db: Session) -> DocumentRepository:
    return DocumentRepository(db)


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-03-15 UTC."""
    return lambda: datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def client(db: Session, storage: InMemoryStorage) -> Generator[TestClient, None, None]:
    """
    Create a test client with database and storage overrides.

    Yields:
        TestClient: FastAPI test client.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service_dep] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_document(repository: DocumentRepository):
    """Factory for documents that already exist in the database."""

    def _make(file_key: str = "doc-key.pdf", **overrides):
        fields = {
            "file_name": "report.pdf",
            "file_key": file_key,
            "file_size": 7,
            "file_type": "application/pdf",
            "name": "Report",
            "document_metadata": {
                "original-filename": "report.pdf",
                "topology": "Report",
                "year": "2024",
                "month": "Mar",
                "department": "finance",
            },
        }
        fields.update(overrides)
        return repository.create(**fields)

    return _make
