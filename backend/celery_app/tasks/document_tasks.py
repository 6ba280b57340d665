"""
Document Celery tasks.

Runs the bucket sync in the background so objects uploaded outside the
API show up without anyone pressing "sync".
"""

import logging

from celery_app.celery import celery_app
from app.db.session import SessionLocal
from app.services.bucket_sync import BucketSyncError, sync_from_store
from app.services.document_repository import DocumentRepository
from app.services.storage_service import get_storage

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def sync_bucket_task(self) -> dict:
    """
    Create records for bucket objects that are not in the database yet.

    A failed listing is retried; per-object failures are only reported.

    Returns:
        dict: Sync result with the IDs of the created documents.
    """
    db = SessionLocal()
    try:
        result = sync_from_store(get_storage(), DocumentRepository(db))
        return {
            "status": "success",
            "synced_count": result.synced_count,
            "document_ids": [document.id for document in result.documents],
            "failed_keys": result.failed_keys,
        }
    except BucketSyncError as exc:
        logger.error(f"Background bucket sync failed: {exc}")
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()
