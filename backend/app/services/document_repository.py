"""
Record store for documents.

Thin persistence layer over the ``documents`` table. Services receive a
repository bound to a session instead of reaching for a global store.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.base import utcnow
from app.models.document import Document

logger = logging.getLogger(__name__)

# Columns that never change after creation
IMMUTABLE_FIELDS = frozenset({"id", "file_name", "file_key", "file_size", "file_type", "uploaded_at"})


class DocumentRepository:
    """Database operations for the documents table."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> Document:
        """Insert a document and return it with its assigned ID."""
        document = Document(**fields)
        self.db.add(document)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(document)
        return document

    def create_if_absent(self, **fields: Any) -> Optional[Document]:
        """
        Insert a document unless one with the same file_key already exists.

        Returns:
            The new document, or None when the file_key was already taken
            (for example by an upload that committed mid-sync).
        """
        try:
            return self.create(**fields)
        except IntegrityError:
            logger.info(f"Document for {fields.get('file_key')} already exists, skipping")
            return None

    def get(self, document_id: int) -> Optional[Document]:
        return self.db.get(Document, document_id)

    def list(self) -> list[Document]:
        """All documents, newest first."""
        return list(
            self.db.scalars(
                select(Document).order_by(Document.uploaded_at.desc(), Document.id.desc())
            )
        )

    def update(self, document_id: int, **fields: Any) -> Optional[Document]:
        """
        Apply a partial update.

        Raises:
            ValueError: if an immutable column is included.
        """
        forbidden = IMMUTABLE_FIELDS.intersection(fields)
        if forbidden:
            raise ValueError(f"Cannot update immutable fields: {sorted(forbidden)}")

        document = self.get(document_id)
        if document is None:
            return None

        for name, value in fields.items():
            setattr(document, name, value)
        document.last_updated = utcnow()
        self.db.commit()
        self.db.refresh(document)
        return document

    def delete(self, document_id: int) -> bool:
        document = self.get(document_id)
        if document is None:
            return False
        self.db.delete(document)
        self.db.commit()
        return True

    def exists_by_file_key(self, file_key: str) -> bool:
        return self.db.scalar(
            select(Document.id).where(Document.file_key == file_key)
        ) is not None

    def list_file_keys(self) -> set[str]:
        """Every known object key, loaded in one query."""
        return set(self.db.scalars(select(Document.file_key)))
