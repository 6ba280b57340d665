"""
Stats API Endpoint.

Upload totals for the dashboard header.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import get_document_service
from app.schemas.document import StatsResponse
from app.services.document_service import DocumentService

router = APIRouter()


@router.get("/", response_model=StatsResponse)
def get_stats(
    service: Annotated[DocumentService, Depends(get_document_service)],
):
    """Total uploads, uploads today, bytes stored and the bucket in use."""
    stats = service.get_stats()
    return StatsResponse(
        total_uploads=stats.total_uploads,
        today_uploads=stats.today_uploads,
        storage_used=stats.storage_used,
        bucket_name=service.storage.bucket_name,
    )
