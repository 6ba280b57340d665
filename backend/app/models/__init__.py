"""
SQLAlchemy ORM models.

Import all models here so Base.metadata sees every table.
"""

from app.models.document import Document, AccessLevel

__all__ = [
    "Document",
    "AccessLevel",
]
