"""
Unit tests for document_repository.py module.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from app.models.document import AccessLevel


class TestDocumentRepository:
    """Tests for DocumentRepository."""

    def test_create_assigns_id_and_defaults(self, make_document):
        document = make_document()

        assert document.id is not None
        assert document.access_level == AccessLevel.PRIVATE
        assert document.uploaded_at is not None
        assert document.last_updated is not None

    def test_duplicate_file_key_rejected(self, make_document):
        make_document(file_key="same-key")

        with pytest.raises(IntegrityError):
            make_document(file_key="same-key")

    def test_create_if_absent_returns_none_for_known_key(self, repository, make_document):
        make_document(file_key="same-key")

        result = repository.create_if_absent(
            file_name="other.pdf",
            file_key="same-key",
            file_size=1,
            file_type="application/pdf",
            name="Other",
            document_metadata={},
        )

        assert result is None
        assert len(repository.list()) == 1

    def test_session_usable_after_conflict(self, repository, make_document):
        make_document(file_key="same-key")
        repository.create_if_absent(
            file_name="x", file_key="same-key", file_size=1, file_type="text/plain", name="x"
        )

        assert make_document(file_key="next-key").id is not None

    def test_list_newest_first(self, repository, make_document):
        first = make_document(file_key="a")
        second = make_document(file_key="b")

        assert [document.id for document in repository.list()] == [second.id, first.id]

    def test_update_changes_mutable_fields(self, repository, make_document):
        document = make_document()
        uploaded_at = document.uploaded_at

        updated = repository.update(
            document.id,
            name="Renamed",
            access_level=AccessLevel.PUBLIC,
            document_metadata={"topology": "Renamed"},
        )

        assert updated.name == "Renamed"
        assert updated.access_level == AccessLevel.PUBLIC
        assert updated.document_metadata == {"topology": "Renamed"}
        assert updated.uploaded_at == uploaded_at
        assert updated.last_updated >= uploaded_at

    @pytest.mark.parametrize("field", ["file_key", "file_name", "file_size", "file_type", "uploaded_at"])
    def test_update_refuses_immutable_fields(self, repository, make_document, field):
        document = make_document()

        with pytest.raises(ValueError):
            repository.update(document.id, **{field: "changed"})

    def test_update_missing_document(self, repository):
        assert repository.update(999, name="x") is None

    def test_delete(self, repository, make_document):
        document = make_document()

        assert repository.delete(document.id) is True
        assert repository.get(document.id) is None
        assert repository.delete(document.id) is False

    def test_file_key_lookups(self, repository, make_document):
        make_document(file_key="a")
        make_document(file_key="b")

        assert repository.exists_by_file_key("a")
        assert not repository.exists_by_file_key("c")
        assert repository.list_file_keys() == {"a", "b"}
