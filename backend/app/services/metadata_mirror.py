"""
Mirror a document's metadata onto its blob headers.

S3 object headers cannot be patched in place, so the full header set is
recomputed and written with a copy-onto-itself. The relational record is
the source of truth: a failed mirror is logged and reported as ``False``,
never raised.
"""

import logging
from typing import Optional

from app.core.metrics import track_metadata_mirror
from app.models.document import AccessLevel
from app.services.metadata_service import (
    ACCESS_LEVEL_KEY,
    MONTH_KEY,
    ORIGINAL_FILENAME_KEY,
    TOPOLOGY_KEY,
    YEAR_KEY,
    user_metadata,
)

logger = logging.getLogger(__name__)

# System headers carried over from the existing object when present
PRESERVED_HEADER_KEYS = (ORIGINAL_FILENAME_KEY, YEAR_KEY, MONTH_KEY)


def compose_blob_headers(
    name: str,
    access_level: AccessLevel,
    metadata: dict[str, str],
    existing_headers: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """
    Build the complete header set for a blob.

    User keys come from ``metadata`` (reserved and control keys dropped),
    system headers are preserved from ``existing_headers`` with the record's
    values as fallback, and the two control fields are set last.
    """
    existing_headers = existing_headers or {}
    headers = user_metadata(metadata)

    for key in PRESERVED_HEADER_KEYS:
        value = existing_headers.get(key) or metadata.get(key)
        if value:
            headers[key] = value

    headers[TOPOLOGY_KEY] = name
    headers[ACCESS_LEVEL_KEY] = AccessLevel(access_level).value
    return headers


def mirror_metadata(
    storage,
    file_key: str,
    name: str,
    access_level: AccessLevel,
    metadata: dict[str, str],
) -> bool:
    """
    Rewrite the blob headers of ``file_key`` from the document's state.

    Args:
        storage: Storage service holding the blob.
        file_key: Object key.
        name: Logical name, mirrored as ``topology``.
        access_level: Mirrored as ``access-level``.
        metadata: The record's merged metadata map.

    Returns:
        bool: True if the headers were replaced, False otherwise.
    """
    try:
        current = storage.stat_file(file_key)
        headers = compose_blob_headers(name, access_level, metadata, current.metadata)
        storage.replace_metadata(file_key, headers, content_type=current.content_type)
    except Exception as e:
        logger.warning(f"Failed to mirror metadata to blob {file_key}: {e}")
        track_metadata_mirror("failed")
        return False

    track_metadata_mirror("success")
    logger.info(f"Mirrored metadata to blob {file_key}")
    return True
