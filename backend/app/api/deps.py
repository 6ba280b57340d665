"""
API dependencies for dependency injection.

Provides the database session, storage service and the services built on
them. Tests override ``get_db`` and ``get_storage_service_dep``.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.document_repository import DocumentRepository
from app.services.document_service import DocumentService
from app.services.storage_service import get_storage


def get_storage_service_dep():
    """Storage service for the current request."""
    return get_storage()


def get_document_repository(
    db: Annotated[Session, Depends(get_db)],
) -> DocumentRepository:
    return DocumentRepository(db)


def get_document_service(
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
    storage=Depends(get_storage_service_dep),
) -> DocumentService:
    return DocumentService(repository=repository, storage=storage)
