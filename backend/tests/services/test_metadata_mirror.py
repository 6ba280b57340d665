"""
Unit tests for metadata_mirror.py module.
"""

from unittest.mock import MagicMock

from app.models.document import AccessLevel
from app.services.metadata_mirror import compose_blob_headers, mirror_metadata
from app.services.storage_service import StorageError, StoredObject


RECORD_METADATA = {
    "original-filename": "report.pdf",
    "topology": "Report",
    "year": "2024",
    "month": "Mar",
    "department": "legal",
}


class TestComposeBlobHeaders:
    """Tests for computing the full blob header set."""

    def test_headers_from_record(self):
        headers = compose_blob_headers("Report", AccessLevel.PRIVATE, RECORD_METADATA)

        assert headers == {
            "department": "legal",
            "original-filename": "report.pdf",
            "year": "2024",
            "month": "Mar",
            "topology": "Report",
            "access-level": "private",
        }

    def test_existing_system_headers_preserved(self):
        """Should keep the blob's own filename/year/month values."""
        existing = {"original-filename": "scan 01.pdf", "year": "2023", "month": "Dec", "stale": "x"}

        headers = compose_blob_headers("Report", AccessLevel.PUBLIC, RECORD_METADATA, existing)

        assert headers["original-filename"] == "scan 01.pdf"
        assert headers["year"] == "2023"
        assert headers["month"] == "Dec"
        assert "stale" not in headers

    def test_topology_and_access_level_follow_document(self):
        metadata = dict(RECORD_METADATA, topology="Old Name", **{"access-level": "private"})

        headers = compose_blob_headers("New Name", AccessLevel.PUBLIC, metadata)

        assert headers["topology"] == "New Name"
        assert headers["access-level"] == "public"

    def test_missing_system_values_omitted(self):
        headers = compose_blob_headers("Doc", AccessLevel.PRIVATE, {"owner": "bob"})

        assert headers == {"owner": "bob", "topology": "Doc", "access-level": "private"}


class TestMirrorMetadata:
    """Tests for copying record metadata onto the blob."""

    def test_replaces_headers_and_keeps_content_type(self):
        storage = MagicMock()
        storage.stat_file.return_value = StoredObject(
            key="k", size=3, content_type="application/pdf", metadata={"year": "2024"}
        )

        assert mirror_metadata(storage, "k", "Report", AccessLevel.PRIVATE, RECORD_METADATA) is True

        storage.replace_metadata.assert_called_once()
        args, kwargs = storage.replace_metadata.call_args
        assert args[0] == "k"
        assert args[1]["department"] == "legal"
        assert kwargs["content_type"] == "application/pdf"

    def test_stat_failure_reported_not_raised(self):
        storage = MagicMock()
        storage.stat_file.side_effect = StorageError("gone")

        assert mirror_metadata(storage, "k", "Report", AccessLevel.PRIVATE, RECORD_METADATA) is False
        storage.replace_metadata.assert_not_called()

    def test_copy_failure_reported_not_raised(self):
        storage = MagicMock()
        storage.stat_file.return_value = StoredObject(key="k")
        storage.replace_metadata.side_effect = StorageError("access denied")

        assert mirror_metadata(storage, "k", "Report", AccessLevel.PRIVATE, RECORD_METADATA) is False
