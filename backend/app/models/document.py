"""
Document model for uploaded files.

Stores the record of each uploaded blob and its searchable metadata.
"""

from sqlalchemy import String, BigInteger, Enum, JSON
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base, IDMixin, TimestampMixin


class AccessLevel(str, enum.Enum):
    """Enum for document visibility."""

    PUBLIC = "public"
    PRIVATE = "private"


class Document(Base, IDMixin, TimestampMixin):
    """
    Document model for uploaded files.

    Attributes:
        id: Primary key.
        file_name: Original filename at upload time.
        file_key: S3/MinIO object key.
        file_size: Size in bytes.
        file_type: MIME type of the file.
        name: Logical display name (topology).
        document_metadata: Reserved and user-defined key/value pairs.
        access_level: public or private.
    """

    __tablename__ = "documents"

    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    file_key: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        unique=True,
        index=True,
    )
    file_size: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    file_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    # "metadata" is reserved on declarative classes
    document_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSON,
        default=dict,
        nullable=False,
    )
    access_level: Mapped[AccessLevel] = mapped_column(
        Enum(
            AccessLevel,
            native_enum=False,
            values_callable=lambda levels: [level.value for level in levels],
        ),
        default=AccessLevel.PRIVATE,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of Document."""
        return f"<Document(id={self.id}, file_key={self.file_key})>"
