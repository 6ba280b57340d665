"""
Unit tests for metadata_service.py module.
"""

import pytest

from app.schemas.document import MetadataKeyValue
from app.services.metadata_service import (
    RESERVED_METADATA_KEYS,
    SystemFields,
    build_create_metadata,
    build_update_metadata,
    logical_name_from_file_name,
    normalize_metadata_key,
    user_metadata,
)


def pair(key: str, value: str = "") -> MetadataKeyValue:
    return MetadataKeyValue(key=key, value=value)


@pytest.fixture
def system_fields():
    return SystemFields(
        original_filename="report.pdf",
        logical_name="Report",
        year="2024",
        month="Mar",
    )


@pytest.fixture
def existing_metadata():
    return {
        "original-filename": "report.pdf",
        "topology": "Report",
        "year": "2024",
        "month": "Mar",
        "department": "finance",
        "owner": "alice",
    }


class TestNormalizeMetadataKey:
    """Tests for key canonicalization."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Department", "department"),
            ("  Cost Center ", "cost-center"),
            ("Project\t \nCode", "project-code"),
            ("already-canonical", "already-canonical"),
            ("", ""),
            ("   ", ""),
        ],
    )
    def test_canonical_form(self, raw, expected):
        """Should trim, lower-case and hyphenate whitespace runs."""
        assert normalize_metadata_key(raw).canonical_key == expected

    @pytest.mark.parametrize("raw", ["Topology", " YEAR ", "Original Filename", "month"])
    def test_reserved_keys_detected_after_normalization(self, raw):
        """Should flag keys that canonicalize to a reserved key."""
        assert normalize_metadata_key(raw).is_reserved is True

    def test_user_key_not_reserved(self):
        assert normalize_metadata_key("Department").is_reserved is False

    @pytest.mark.parametrize(
        "raw", ["A  B", " Mixed Case\tKey ", "topology", "x--y", "", "Ünïcode Key"]
    )
    def test_normalization_is_idempotent(self, raw):
        """Normalizing a canonical key should change nothing."""
        once = normalize_metadata_key(raw)
        assert normalize_metadata_key(once.canonical_key) == once

    def test_reserved_set_is_exactly_four_keys(self):
        assert RESERVED_METADATA_KEYS == {"original-filename", "topology", "year", "month"}


class TestBuildCreateMetadata:
    """Tests for building metadata on document creation."""

    def test_system_fields_present(self, system_fields):
        """Should always contain the system-derived entries."""
        metadata = build_create_metadata(system_fields, [])

        assert metadata == {
            "original-filename": "report.pdf",
            "topology": "Report",
            "year": "2024",
            "month": "Mar",
        }

    def test_spoofed_topology_discarded(self, system_fields):
        """Should keep the logical name when a user sends topology."""
        metadata = build_create_metadata(system_fields, [pair("topology", "x")])

        assert metadata["topology"] == "Report"

    def test_spoofed_reserved_keys_discarded_in_any_case(self, system_fields):
        metadata = build_create_metadata(
            system_fields,
            [pair("YEAR", "1999"), pair(" Original  Filename ", "evil.exe"), pair("Month", "Jan")],
        )

        assert metadata["year"] == "2024"
        assert metadata["original-filename"] == "report.pdf"
        assert metadata["month"] == "Mar"

    def test_user_keys_normalized(self, system_fields):
        metadata = build_create_metadata(
            system_fields, [pair("Cost Center", "42"), pair("Department", "finance")]
        )

        assert metadata["cost-center"] == "42"
        assert metadata["department"] == "finance"

    def test_blank_keys_dropped(self, system_fields):
        metadata = build_create_metadata(system_fields, [pair("   ", "orphan")])

        assert "" not in metadata
        assert len(metadata) == 4

    def test_empty_values_kept(self, system_fields):
        metadata = build_create_metadata(system_fields, [pair("notes", "")])

        assert metadata["notes"] == ""

    def test_later_duplicate_wins(self, system_fields):
        metadata = build_create_metadata(
            system_fields, [pair("Owner", "alice"), pair("owner", "bob")]
        )

        assert metadata["owner"] == "bob"

    def test_missing_date_fields_omitted(self):
        """Should not invent year/month when none were derived."""
        metadata = build_create_metadata(
            SystemFields(original_filename="a.pdf", logical_name="a"), []
        )

        assert "year" not in metadata
        assert "month" not in metadata


class TestBuildUpdateMetadata:
    """Tests for merging an editor submission."""

    def test_changed_reserved_key_rejected(self, existing_metadata):
        """Should reject a different year and keep the stored one."""
        result = build_update_metadata(existing_metadata, [pair("year", "1999")])

        assert not result.is_valid
        assert result.rejected_keys == ["year"]
        assert result.metadata["year"] == "2024"

    def test_echoed_reserved_values_accepted(self, existing_metadata):
        """Should accept reserved entries submitted unchanged."""
        submission = [pair(key, value) for key, value in existing_metadata.items()]

        result = build_update_metadata(existing_metadata, submission)

        assert result.is_valid
        assert result.metadata == existing_metadata

    def test_reserved_key_matched_after_normalization(self, existing_metadata):
        result = build_update_metadata(existing_metadata, [pair(" Topology ", "Other")])

        assert result.rejected_keys == ["topology"]

    def test_rejected_keys_reported_once(self, existing_metadata):
        result = build_update_metadata(
            existing_metadata,
            [pair("year", "1999"), pair("YEAR", "2000"), pair("month", "Jan")],
        )

        assert result.rejected_keys == ["year", "month"]

    def test_reserved_key_without_stored_value_rejected(self):
        """Should reject a reserved key the document never had."""
        result = build_update_metadata({"topology": "Report"}, [pair("year", "2024")])

        assert result.rejected_keys == ["year"]
        assert "year" not in result.metadata

    def test_empty_echo_of_missing_reserved_key_accepted(self):
        """Should treat an empty reserved entry the record never had as unchanged."""
        result = build_update_metadata(
            {"topology": "Report"}, [pair("topology", "Report"), pair("year", "")]
        )

        assert result.is_valid
        assert result.metadata == {"topology": "Report"}

    def test_omitted_user_keys_removed(self, existing_metadata):
        """Should drop user keys missing from the submission."""
        result = build_update_metadata(existing_metadata, [pair("department", "legal")])

        assert result.is_valid
        assert result.metadata["department"] == "legal"
        assert "owner" not in result.metadata

    def test_reserved_entries_survive_empty_submission(self, existing_metadata):
        result = build_update_metadata(existing_metadata, [])

        assert result.metadata == {
            "original-filename": "report.pdf",
            "topology": "Report",
            "year": "2024",
            "month": "Mar",
        }

    def test_new_user_keys_normalized_and_blank_keys_dropped(self, existing_metadata):
        result = build_update_metadata(
            existing_metadata, [pair("Review Date", "2024-04-01"), pair(" ", "x")]
        )

        assert result.metadata["review-date"] == "2024-04-01"
        assert "" not in result.metadata

    def test_existing_metadata_not_mutated(self, existing_metadata):
        snapshot = dict(existing_metadata)

        build_update_metadata(existing_metadata, [pair("year", "1999"), pair("new", "v")])

        assert existing_metadata == snapshot


class TestHelpers:
    """Tests for small metadata helpers."""

    @pytest.mark.parametrize(
        "file_name, expected",
        [
            ("report.pdf", "report"),
            ("archive.tar.gz", "archive.tar"),
            ("README", "README"),
            (".env", ".env"),
        ],
    )
    def test_logical_name_from_file_name(self, file_name, expected):
        assert logical_name_from_file_name(file_name) == expected

    def test_user_metadata_filters_reserved_and_control_keys(self, existing_metadata):
        headers = dict(existing_metadata, **{"access-level": "public", "content-type": "text/plain"})

        assert user_metadata(headers) == {"department": "finance", "owner": "alice"}
