"""
Metadata normalization and merge rules.

Every user-supplied metadata key goes through ``normalize_metadata_key``
before it is written to a document record or to blob headers. The
reserved keys below are derived by the system and can never be set,
overwritten or removed through user metadata.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional, Protocol

logger = logging.getLogger(__name__)


ORIGINAL_FILENAME_KEY = "original-filename"
TOPOLOGY_KEY = "topology"
YEAR_KEY = "year"
MONTH_KEY = "month"

RESERVED_METADATA_KEYS = frozenset({
    ORIGINAL_FILENAME_KEY,
    TOPOLOGY_KEY,
    YEAR_KEY,
    MONTH_KEY,
})

# Blob headers that are transport/control fields, never user metadata
ACCESS_LEVEL_KEY = "access-level"
CONTENT_TYPE_KEY = "content-type"
CONTROL_HEADER_KEYS = frozenset({ACCESS_LEVEL_KEY, CONTENT_TYPE_KEY})

_WHITESPACE_RUN = re.compile(r"\s+")


class MetadataPair(Protocol):
    key: str
    value: str


class NormalizedKey(NamedTuple):
    canonical_key: str
    is_reserved: bool


def normalize_metadata_key(raw_key: str) -> NormalizedKey:
    """
    Canonicalize a metadata key into its storage-safe form.

    Trims, lower-cases and replaces each whitespace run with a single
    hyphen. An empty or whitespace-only key canonicalizes to "".
    """
    canonical = _WHITESPACE_RUN.sub("-", raw_key.strip().lower())
    return NormalizedKey(canonical, canonical in RESERVED_METADATA_KEYS)


@dataclass
class SystemFields:
    """System-derived metadata facts for a new document."""

    original_filename: str
    logical_name: str
    year: Optional[str] = None
    month: Optional[str] = None

    def as_metadata(self) -> dict[str, str]:
        values = {
            ORIGINAL_FILENAME_KEY: self.original_filename,
            TOPOLOGY_KEY: self.logical_name,
            YEAR_KEY: self.year,
            MONTH_KEY: self.month,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass
class MetadataUpdate:
    """Result of merging an editor submission into existing metadata."""

    metadata: dict[str, str]
    rejected_keys: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.rejected_keys


def build_create_metadata(
    system_fields: SystemFields,
    user_pairs: Iterable[MetadataPair],
) -> dict[str, str]:
    """
    Build the metadata map for a new document.

    System fields are inserted first. User pairs whose key normalizes to a
    reserved key are discarded, so the system value always wins.

    Args:
        system_fields: Values derived by the system at upload time.
        user_pairs: Caller-supplied key/value entries, in order.

    Returns:
        dict: The authoritative metadata map.
    """
    metadata = system_fields.as_metadata()

    for pair in user_pairs:
        canonical_key, is_reserved = normalize_metadata_key(pair.key)
        if not canonical_key:
            continue
        if is_reserved:
            logger.warning(f"Discarding user value for reserved metadata key '{canonical_key}'")
            continue
        metadata[canonical_key] = pair.value or ""

    return metadata


def build_update_metadata(
    existing_metadata: dict[str, str],
    user_pairs: Iterable[MetadataPair],
) -> MetadataUpdate:
    """
    Merge the editor's full metadata list into a document's existing metadata.

    Reserved entries always keep their existing values. Submitting a
    different value for a reserved key marks that key as rejected; the
    caller must then refuse the whole update. User keys missing from the
    submission are removed.

    Args:
        existing_metadata: The record's current metadata map.
        user_pairs: Every entry shown in the editor, including echoed
            system entries.

    Returns:
        MetadataUpdate: The merged map and any rejected reserved keys.
    """
    metadata = {
        key: value
        for key, value in existing_metadata.items()
        if key in RESERVED_METADATA_KEYS
    }
    rejected_keys: list[str] = []

    for pair in user_pairs:
        canonical_key, is_reserved = normalize_metadata_key(pair.key)
        if is_reserved:
            # A key the record never had matches an empty echo
            if existing_metadata.get(canonical_key, "") != (pair.value or "") \
                    and canonical_key not in rejected_keys:
                rejected_keys.append(canonical_key)
            continue
        if not canonical_key:
            continue
        metadata[canonical_key] = pair.value or ""

    return MetadataUpdate(metadata=metadata, rejected_keys=rejected_keys)


def logical_name_from_file_name(file_name: str) -> str:
    """Filename without its extension."""
    stem, _ = os.path.splitext(file_name)
    return stem or file_name


def user_metadata(metadata: dict[str, str]) -> dict[str, str]:
    """Return only the user-defined entries of a metadata map."""
    result = {}
    for key, value in metadata.items():
        canonical_key, is_reserved = normalize_metadata_key(key)
        if canonical_key and not is_reserved and canonical_key not in CONTROL_HEADER_KEYS:
            result[canonical_key] = value
    return result
